from django.urls import path
from . import views

urlpatterns = [
    path('admin/data/export/', views.export_data, name='data-export'),
    path('admin/data/import/', views.import_data, name='data-import'),
    path('admin/data/jobs/', views.job_list, name='data-job-list'),
    path('admin/data/jobs/<int:pk>/', views.job_detail, name='data-job-detail'),
]
