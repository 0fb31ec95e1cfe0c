from django.contrib import admin
from .models import PaymentMethod, SavedPaymentMethod, Transaction, Refund


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'provider', 'processing_fee', 'is_active']
    list_filter = ['type', 'is_active']
    search_fields = ['name', 'provider']


@admin.register(SavedPaymentMethod)
class SavedPaymentMethodAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'name', 'last4', 'brand', 'is_default']
    list_filter = ['type', 'is_default']
    search_fields = ['user__email', 'name']
    raw_id_fields = ['user']


class RefundInline(admin.TabularInline):
    model = Refund
    extra = 0
    raw_id_fields = ['order', 'requested_by', 'approved_by']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['transaction_id', 'order', 'amount', 'currency', 'status', 'created_at']
    list_filter = ['status', 'payment_method', 'created_at']
    search_fields = ['transaction_id', 'order__order_number', 'customer_email']
    raw_id_fields = ['order']
    readonly_fields = ['transaction_id', 'refund_amount', 'processed_at', 'failed_at', 'refunded_at',
                       'created_at', 'updated_at']
    inlines = [RefundInline]


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = ['transaction', 'order', 'amount', 'status', 'created_at']
    list_filter = ['status']
    raw_id_fields = ['transaction', 'order', 'requested_by', 'approved_by']
