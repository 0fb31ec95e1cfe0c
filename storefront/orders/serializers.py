from rest_framework import serializers
from .models import Order, OrderItem


class AddressSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    phone = serializers.CharField(max_length=30)
    address = serializers.CharField(max_length=500)
    city = serializers.CharField(max_length=100)
    district = serializers.CharField(max_length=100)


class OrderItemSerializer(serializers.ModelSerializer):
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'name', 'name_vi', 'quantity', 'price', 'size', 'color', 'line_total']

    def get_line_total(self, obj):
        return str(obj.get_line_total())


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)
    user_name = serializers.CharField(source='user.name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'user', 'user_email', 'user_name', 'status', 'status_display',
                  'items', 'subtotal', 'shipping_cost', 'total_amount', 'shipping_address', 'billing_address',
                  'payment_method', 'payment_status', 'shipping_method', 'notes', 'created_at', 'updated_at']
        read_only_fields = fields


class OrderCreateItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    size = serializers.CharField(max_length=50, required=False, allow_blank=True)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True)


class OrderCreateSerializer(serializers.Serializer):
    items = OrderCreateItemSerializer(many=True, allow_empty=False,
                                      error_messages={'empty': 'Order must contain at least one item'})
    shipping_address = AddressSerializer()
    billing_address = AddressSerializer(required=False, allow_null=True)
    payment_method = serializers.CharField(max_length=50)
    shipping_method_id = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class OrderAdminUpdateSerializer(serializers.ModelSerializer):
    """Fields the back-office may edit directly; status changes go through the status rules"""
    shipping_address = AddressSerializer(required=False)
    billing_address = AddressSerializer(required=False, allow_null=True)

    class Meta:
        model = Order
        fields = ['shipping_address', 'billing_address', 'payment_status', 'notes']

    def update(self, instance, validated_data):
        # Addresses are stored as plain JSON objects
        for attr, value in validated_data.items():
            setattr(instance, attr, dict(value) if isinstance(value, dict) else value)
        instance.save()
        return instance


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class BulkOrderStatusSerializer(serializers.Serializer):
    order_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
