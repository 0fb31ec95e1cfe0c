from django.contrib import admin
from .models import ShippingMethod, Shipment, TrackingEvent


@admin.register(ShippingMethod)
class ShippingMethodAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'cost', 'free_shipping_threshold', 'estimated_days', 'is_active']
    list_filter = ['type', 'is_active']
    search_fields = ['name', 'name_en', 'name_ja']


class TrackingEventInline(admin.TabularInline):
    model = TrackingEvent
    extra = 0


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = ['tracking_number', 'order', 'shipping_method', 'status', 'carrier', 'created_at']
    list_filter = ['status', 'shipping_method', 'created_at']
    search_fields = ['tracking_number', 'customer_name', 'order__order_number']
    raw_id_fields = ['order']
    readonly_fields = ['tracking_number', 'actual_delivery', 'created_at', 'updated_at']
    inlines = [TrackingEventInline]
