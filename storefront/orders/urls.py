from django.urls import path
from .views import (
    order_create, my_orders, my_order_detail, order_cancel, order_track,
    admin_order_list, admin_order_detail, admin_order_status, admin_order_bulk_status, admin_order_stats
)

urlpatterns = [
    # Customer order endpoints
    path('orders/', order_create, name='order-create'),
    path('orders/my-orders/', my_orders, name='my-orders'),
    path('orders/my-orders/<int:pk>/', my_order_detail, name='my-order-detail'),
    path('orders/<int:pk>/cancel/', order_cancel, name='order-cancel'),
    path('orders/track/<str:order_number>/', order_track, name='order-track'),

    # Admin order endpoints
    path('admin/orders/', admin_order_list, name='admin-order-list'),
    path('admin/orders/stats/', admin_order_stats, name='admin-order-stats'),
    path('admin/orders/bulk-status/', admin_order_bulk_status, name='admin-order-bulk-status'),
    path('admin/orders/<int:pk>/', admin_order_detail, name='admin-order-detail'),
    path('admin/orders/<int:pk>/status/', admin_order_status, name='admin-order-status'),
]
