from django.urls import path
from . import views

urlpatterns = [
    path('reviews/', views.review_list_create, name='review-list'),
    path('reviews/stats/', views.review_stats, name='review-stats'),
    path('reviews/<int:pk>/helpful/', views.review_helpful, name='review-helpful'),
    path('admin/reviews/<int:pk>/', views.admin_review_detail, name='admin-review-detail'),
]
