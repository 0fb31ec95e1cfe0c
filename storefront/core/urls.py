from django.urls import path
from .views import (
    CustomTokenObtainPairView, AdminTokenObtainPairView, CustomTokenRefreshView,
    register, profile, forgot_password, reset_password,
    address_list_create, address_detail, address_set_default,
    admin_user_list_create, admin_user_detail, admin_user_bulk_status,
    public_settings, admin_settings,
    activity_log_list, activity_log_stats
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/admin/login/', AdminTokenObtainPairView.as_view(), name='admin-login'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/profile/', profile, name='profile'),
    path('auth/addresses/', address_list_create, name='address-list-create'),
    path('auth/addresses/<int:pk>/', address_detail, name='address-detail'),
    path('auth/addresses/<int:pk>/default/', address_set_default, name='address-set-default'),
    path('auth/forgot-password/', forgot_password, name='forgot-password'),
    path('auth/reset-password/', reset_password, name='reset-password'),

    # Admin user management
    path('admin/users/', admin_user_list_create, name='admin-user-list-create'),
    path('admin/users/bulk-status/', admin_user_bulk_status, name='admin-user-bulk-status'),
    path('admin/users/<int:pk>/', admin_user_detail, name='admin-user-detail'),

    # Settings endpoints
    path('settings/public/', public_settings, name='public-settings'),
    path('admin/settings/', admin_settings, name='admin-settings'),

    # Activity log endpoints
    path('admin/activity/logs/', activity_log_list, name='activity-log-list'),
    path('admin/activity/stats/', activity_log_stats, name='activity-log-stats'),
]
