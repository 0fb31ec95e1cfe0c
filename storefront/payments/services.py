"""
Transactions, refunds and saved customer payment methods.

A transaction's status drives its order's payment_status: completed marks the
order paid, failed marks it failed.
"""
import logging
import secrets

from django.db import transaction as db_transaction
from django.utils import timezone

from storefront.orders.models import Order
from .models import SavedPaymentMethod, Transaction, Refund

logger = logging.getLogger(__name__)

TRANSACTION_ID_ATTEMPTS = 10
REFUNDABLE_STATUSES = (Transaction.STATUS_COMPLETED, Transaction.STATUS_PARTIALLY_REFUNDED)


class PaymentError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


def generate_transaction_id(now=None):
    """TXN<YYYYMMDDHHMMSS><8 hex chars>"""
    now = now or timezone.localtime()
    for _ in range(TRANSACTION_ID_ATTEMPTS):
        candidate = f"TXN{now:%Y%m%d%H%M%S}{secrets.token_hex(4).upper()}"
        if not Transaction.objects.filter(transaction_id=candidate).exists():
            return candidate
    raise PaymentError('Could not generate a unique transaction id, please try again')


def create_transaction(order, amount=None, payment_provider='', currency='VND', gateway_transaction_id='', notes=''):
    """Record a payment attempt for `order`, defaulting to the order total"""
    if order.status == Order.STATUS_CANCELLED:
        raise PaymentError('Cannot record a payment for a cancelled order')

    address = order.shipping_address or {}
    txn = Transaction.objects.create(
        order=order,
        transaction_id=generate_transaction_id(),
        payment_method=order.payment_method,
        payment_provider=payment_provider or order.payment_method,
        amount=order.total_amount if amount is None else amount,
        currency=currency or 'VND',
        customer_name=address.get('name') or order.user.name or order.user.email,
        customer_email=order.user.email,
        customer_phone=address.get('phone', ''),
        gateway_transaction_id=gateway_transaction_id or '',
        notes=notes or '',
    )
    logger.info(f"Transaction {txn.transaction_id} created for order {order.order_number}: {txn.amount}")
    return txn


def update_transaction_status(txn, new_status, notes=None, gateway_transaction_id=None, gateway_response=None):
    now = timezone.now()
    with db_transaction.atomic():
        txn = Transaction.objects.select_for_update().select_related('order').get(pk=txn.pk)
        txn.status = new_status
        if notes is not None:
            txn.notes = notes
        if gateway_transaction_id:
            txn.gateway_transaction_id = gateway_transaction_id
        if gateway_response is not None:
            txn.gateway_response = gateway_response

        order_payment_status = None
        if new_status == Transaction.STATUS_COMPLETED:
            txn.processed_at = now
            order_payment_status = Order.PAYMENT_PAID
        elif new_status == Transaction.STATUS_FAILED:
            txn.failed_at = now
            order_payment_status = Order.PAYMENT_FAILED
        txn.save()

        if order_payment_status:
            Order.objects.filter(pk=txn.order_id).update(payment_status=order_payment_status, updated_at=now)

    logger.info(f"Transaction {txn.transaction_id} status changed to {new_status}")
    return txn


def process_refund(txn, amount, reason, requested_by=None):
    """
    Refund part or all of a completed transaction. Refunds add up to at most
    the transaction amount.
    """
    with db_transaction.atomic():
        txn = Transaction.objects.select_for_update().get(pk=txn.pk)
        if txn.status not in REFUNDABLE_STATUSES:
            raise PaymentError('Only completed transactions can be refunded')
        if amount > txn.refundable_amount:
            raise PaymentError('Refund amount cannot exceed transaction amount')

        refund = Refund.objects.create(
            transaction=txn,
            order_id=txn.order_id,
            amount=amount,
            reason=reason,
            requested_by=requested_by,
        )
        txn.refund_amount += amount
        txn.refund_reason = reason
        txn.refunded_at = timezone.now()
        if txn.refund_amount >= txn.amount:
            txn.status = Transaction.STATUS_REFUNDED
        else:
            txn.status = Transaction.STATUS_PARTIALLY_REFUNDED
        txn.save()

    logger.info(f"Refund of {amount} recorded for transaction {txn.transaction_id}, status {txn.status}")
    return refund


def update_refund_status(refund, new_status, approved_by=None):
    refund.status = new_status
    refund.approved_by = approved_by
    if new_status in ('approved', 'processed'):
        refund.processed_at = timezone.now()
    refund.save()
    return refund


# Saved customer payment methods
def add_saved_method(user, **fields):
    """The first saved method becomes the default"""
    with db_transaction.atomic():
        is_first = not SavedPaymentMethod.objects.filter(user=user).exists()
        return SavedPaymentMethod.objects.create(user=user, is_default=is_first, **fields)


def set_default_method(method):
    with db_transaction.atomic():
        SavedPaymentMethod.objects.filter(user_id=method.user_id).exclude(pk=method.pk).update(is_default=False)
        method.is_default = True
        method.save(update_fields=['is_default', 'updated_at'])
    return method


def delete_saved_method(method):
    """Delete a saved method; removing the default promotes the newest remaining one"""
    with db_transaction.atomic():
        was_default = method.is_default
        user_id = method.user_id
        method.delete()
        if was_default:
            newest = SavedPaymentMethod.objects.filter(user_id=user_id).order_by('-created_at', '-id').first()
            if newest is not None:
                set_default_method(newest)
