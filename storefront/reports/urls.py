from django.urls import path
from . import views

urlpatterns = [
    path('admin/stats/', views.admin_stats, name='admin-stats'),
    path('admin/analytics/revenue/', views.revenue_analytics, name='analytics-revenue'),
    path('admin/analytics/daily-revenue/', views.daily_revenue_analytics, name='analytics-daily-revenue'),
    path('admin/analytics/products/', views.product_analytics, name='analytics-products'),
    path('admin/analytics/orders/', views.order_analytics, name='analytics-orders'),
    path('admin/analytics/customers/', views.customer_analytics, name='analytics-customers'),
]
