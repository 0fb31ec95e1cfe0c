from rest_framework import serializers

from storefront.catalog.serializers import ProductCardSerializer
from .models import CartItem, WishlistItem


class CartItemSerializer(serializers.ModelSerializer):
    product = ProductCardSerializer(read_only=True)
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = CartItem
        fields = ['id', 'product', 'quantity', 'size', 'color', 'line_total', 'created_at', 'updated_at']

    def get_line_total(self, obj):
        return str(obj.get_line_total())


class CartAddSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    size = serializers.CharField(max_length=50, required=False, allow_blank=True)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True)


class CartUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, required=False)
    size = serializers.CharField(max_length=50, required=False, allow_blank=True)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True)


class CartSyncSerializer(serializers.Serializer):
    """Guest cart kept in browser storage before login"""
    items = CartAddSerializer(many=True, allow_empty=True)


class WishlistItemSerializer(serializers.ModelSerializer):
    product = ProductCardSerializer(read_only=True)

    class Meta:
        model = WishlistItem
        fields = ['id', 'product', 'created_at']


class WishlistAddSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()


class WishlistSyncSerializer(serializers.Serializer):
    product_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
