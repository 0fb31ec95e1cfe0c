from rest_framework import serializers

from storefront.catalog.serializers import LocalizedFieldsMixin
from .models import ShippingMethod, Shipment, TrackingEvent


class ShippingMethodSerializer(LocalizedFieldsMixin, serializers.ModelSerializer):
    display_name = serializers.SerializerMethodField()
    display_description = serializers.SerializerMethodField()
    supported_regions = serializers.ListField(child=serializers.CharField(), required=False)

    class Meta:
        model = ShippingMethod
        fields = ['id', 'name', 'name_en', 'name_ja', 'display_name',
                  'description', 'description_en', 'description_ja', 'display_description',
                  'type', 'cost', 'free_shipping_threshold', 'estimated_days', 'is_active',
                  'supported_regions', 'weight_limit', 'dimensions_limit', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class ShippingMethodSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = ShippingMethod
        fields = ['id', 'name', 'name_en', 'name_ja', 'type', 'estimated_days']


class TrackingEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = TrackingEvent
        fields = ['id', 'status', 'location', 'description', 'timestamp', 'carrier']


class ShipmentSerializer(serializers.ModelSerializer):
    shipping_method = ShippingMethodSummarySerializer(read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    tracking_events = TrackingEventSerializer(many=True, read_only=True)

    class Meta:
        model = Shipment
        fields = ['id', 'order', 'order_number', 'tracking_number', 'shipping_method', 'status', 'status_display',
                  'customer_name', 'customer_phone', 'shipping_address', 'carrier', 'carrier_tracking_url',
                  'estimated_delivery', 'actual_delivery', 'notes', 'weight', 'dimensions', 'shipping_cost',
                  'tracking_events', 'created_at', 'updated_at']
        read_only_fields = fields


class ShipmentCreateSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    shipping_method_id = serializers.IntegerField()
    carrier = serializers.CharField(max_length=100, required=False, allow_blank=True)
    carrier_tracking_url = serializers.URLField(max_length=500, required=False, allow_blank=True)
    estimated_delivery = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    weight = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, allow_null=True)
    dimensions = serializers.JSONField(required=False, allow_null=True)


class ShipmentUpdateSerializer(serializers.ModelSerializer):
    """Editable shipment details; status changes go through the status endpoint"""

    class Meta:
        model = Shipment
        fields = ['customer_name', 'customer_phone', 'shipping_address', 'carrier', 'carrier_tracking_url',
                  'estimated_delivery', 'notes', 'weight', 'dimensions', 'shipping_cost']


class ShipmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Shipment.STATUS_CHOICES)
    location = serializers.CharField(max_length=200, required=False, allow_blank=True)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class TrackingEventCreateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Shipment.STATUS_CHOICES)
    location = serializers.CharField(max_length=200, required=False, allow_blank=True)
    description = serializers.CharField(max_length=500)
    timestamp = serializers.DateTimeField(required=False)
    carrier = serializers.CharField(max_length=100, required=False, allow_blank=True)
