from django.urls import path
from . import views

urlpatterns = [
    path('shipping-methods/', views.shipping_method_list, name='shipping-method-list'),
    path('shipping-methods/quote/', views.shipping_quote, name='shipping-quote'),

    path('admin/shipping/methods/', views.admin_method_list_create, name='admin-shipping-method-list'),
    path('admin/shipping/methods/<int:pk>/', views.admin_method_detail, name='admin-shipping-method-detail'),
    path('admin/shipping/shipments/', views.admin_shipment_list_create, name='admin-shipment-list'),
    path('admin/shipping/shipments/<int:pk>/', views.admin_shipment_detail, name='admin-shipment-detail'),
    path('admin/shipping/shipments/<int:pk>/status/', views.admin_shipment_status, name='admin-shipment-status'),
    path('admin/shipping/shipments/<int:pk>/tracking/', views.admin_shipment_tracking, name='admin-shipment-tracking'),
    path('admin/shipping/stats/', views.admin_shipping_stats, name='admin-shipping-stats'),
]
