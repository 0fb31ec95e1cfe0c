import re
from decimal import Decimal

from rest_framework import serializers

from storefront.catalog.serializers import LocalizedFieldsMixin
from .models import PaymentMethod, SavedPaymentMethod, Transaction, Refund


class PaymentMethodSerializer(LocalizedFieldsMixin, serializers.ModelSerializer):
    display_name = serializers.SerializerMethodField()
    display_description = serializers.SerializerMethodField()
    supported_currencies = serializers.ListField(child=serializers.CharField(max_length=3), required=False)

    class Meta:
        model = PaymentMethod
        fields = ['id', 'name', 'name_en', 'name_ja', 'display_name', 'type', 'provider', 'is_active',
                  'processing_fee', 'min_amount', 'max_amount', 'supported_currencies', 'icon',
                  'description', 'description_en', 'description_ja', 'display_description',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        min_amount = attrs.get('min_amount', getattr(self.instance, 'min_amount', None))
        max_amount = attrs.get('max_amount', getattr(self.instance, 'max_amount', None))
        if min_amount is not None and max_amount is not None and min_amount > max_amount:
            raise serializers.ValidationError({'max_amount': 'Maximum amount must not be below the minimum amount'})
        return attrs


def detect_card_brand(card_number):
    if card_number.startswith('4'):
        return 'Visa'
    if re.match(r'^5[1-5]', card_number):
        return 'Mastercard'
    if re.match(r'^3[47]', card_number):
        return 'American Express'
    return ''


class SavedPaymentMethodSerializer(serializers.ModelSerializer):
    """
    Customer payment method. The card number is write-only and only its
    last four digits and brand are stored.
    """
    card_number = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = SavedPaymentMethod
        fields = ['id', 'type', 'name', 'card_number', 'last4', 'expiry_month', 'expiry_year', 'brand',
                  'paypal_email', 'is_default', 'created_at', 'updated_at']
        read_only_fields = ['last4', 'brand', 'is_default', 'created_at', 'updated_at']
        extra_kwargs = {'name': {'required': False}}

    def validate_card_number(self, value):
        digits = re.sub(r'\s|-', '', value or '')
        if digits and (not digits.isdigit() or not 12 <= len(digits) <= 19):
            raise serializers.ValidationError('Invalid card number')
        return digits

    def validate_expiry_month(self, value):
        if value and (not value.isdigit() or not 1 <= int(value) <= 12):
            raise serializers.ValidationError('Invalid expiry month')
        return value.zfill(2) if value else value

    def validate(self, attrs):
        method_type = attrs.get('type', getattr(self.instance, 'type', None))
        if method_type == 'paypal':
            if not attrs.get('paypal_email', getattr(self.instance, 'paypal_email', '')):
                raise serializers.ValidationError({'paypal_email': 'PayPal email is required'})
            if self.instance is None:
                attrs['name'] = attrs['paypal_email']
        elif self.instance is None:
            if not attrs.get('name'):
                raise serializers.ValidationError({'name': 'Name is required'})
            if not (attrs.get('card_number') and attrs.get('expiry_month') and attrs.get('expiry_year')):
                raise serializers.ValidationError({'card_number': 'Card details are required'})

        card_number = attrs.pop('card_number', '')
        if card_number:
            attrs['last4'] = card_number[-4:]
            attrs['brand'] = detect_card_brand(card_number)
        return attrs


class TransactionSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Transaction
        fields = ['id', 'order', 'order_number', 'transaction_id', 'payment_method', 'payment_provider',
                  'amount', 'currency', 'status', 'status_display', 'customer_name', 'customer_email',
                  'customer_phone', 'gateway_response', 'gateway_transaction_id', 'refund_amount',
                  'refund_reason', 'processed_at', 'failed_at', 'refunded_at', 'notes', 'created_at', 'updated_at']
        read_only_fields = fields


class TransactionCreateSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    payment_provider = serializers.CharField(max_length=100, required=False, allow_blank=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    currency = serializers.CharField(max_length=3, required=False)
    gateway_transaction_id = serializers.CharField(max_length=200, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class TransactionStatusSerializer(serializers.Serializer):
    # Refund statuses are only reached through the refund endpoint
    status = serializers.ChoiceField(choices=[
        choice for choice in Transaction.STATUS_CHOICES
        if choice[0] not in (Transaction.STATUS_REFUNDED, Transaction.STATUS_PARTIALLY_REFUNDED)
    ])
    notes = serializers.CharField(required=False, allow_blank=True)
    gateway_transaction_id = serializers.CharField(max_length=200, required=False, allow_blank=True)
    gateway_response = serializers.JSONField(required=False, allow_null=True)


class RefundSerializer(serializers.ModelSerializer):
    transaction_id = serializers.CharField(source='transaction.transaction_id', read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    requested_by_email = serializers.EmailField(source='requested_by.email', read_only=True, default=None)
    approved_by_email = serializers.EmailField(source='approved_by.email', read_only=True, default=None)

    class Meta:
        model = Refund
        fields = ['id', 'transaction', 'transaction_id', 'order', 'order_number', 'amount', 'reason', 'status',
                  'requested_by', 'requested_by_email', 'approved_by', 'approved_by_email', 'processed_at',
                  'created_at', 'updated_at']
        read_only_fields = fields


class RefundCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    reason = serializers.CharField(max_length=1000)


class RefundStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Refund.STATUS_CHOICES)
