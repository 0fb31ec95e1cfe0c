from django.urls import path
from . import views

urlpatterns = [
    path('payment-methods/', views.payment_method_list, name='payment-method-list'),
    path('payment-methods/saved/', views.saved_method_list_create, name='saved-payment-method-list'),
    path('payment-methods/saved/<int:pk>/', views.saved_method_detail, name='saved-payment-method-detail'),
    path('payment-methods/saved/<int:pk>/default/', views.saved_method_set_default, name='saved-payment-method-default'),

    path('admin/payments/methods/', views.admin_method_list_create, name='admin-payment-method-list'),
    path('admin/payments/methods/<int:pk>/', views.admin_method_detail, name='admin-payment-method-detail'),
    path('admin/payments/transactions/', views.admin_transaction_list_create, name='admin-transaction-list'),
    path('admin/payments/transactions/<int:pk>/', views.admin_transaction_detail, name='admin-transaction-detail'),
    path('admin/payments/transactions/<int:pk>/status/', views.admin_transaction_status, name='admin-transaction-status'),
    path('admin/payments/transactions/<int:pk>/refund/', views.admin_transaction_refund, name='admin-transaction-refund'),
    path('admin/payments/refunds/', views.admin_refund_list, name='admin-refund-list'),
    path('admin/payments/refunds/<int:pk>/status/', views.admin_refund_status, name='admin-refund-status'),
    path('admin/payments/stats/', views.admin_payment_stats, name='admin-payment-stats'),
]
