from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Address, SiteSettings, ActivityLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'status', 'total_orders', 'total_spent', 'created_at']
    list_filter = ['role', 'status', 'is_superuser', 'created_at']
    search_fields = ['email', 'name', 'phone', 'username']
    ordering = ['-created_at']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Storefront', {'fields': ('name', 'phone', 'address', 'role', 'status', 'total_orders', 'total_spent', 'last_active')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Storefront', {'fields': ('email', 'name', 'role')}),
    )
    readonly_fields = ['total_orders', 'total_spent', 'last_active']


@admin.register(SiteSettings)
class SiteSettingsAdmin(admin.ModelAdmin):
    list_display = ['website_name', 'contact_email', 'maintenance_mode', 'updated_at']
    readonly_fields = ['updated_at']


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_id', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__email', 'model_name', 'object_id', 'object_name']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_name', 'changes', 'ip_address', 'created_at']


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'user', 'type', 'city', 'country', 'is_default', 'created_at']
    list_filter = ['type', 'is_default', 'country']
    search_fields = ['full_name', 'phone', 'user__email', 'city']
