"""
Order lifecycle: numbering, checkout, cancellation and status changes.

Stock and customer totals are only touched inside transaction.atomic() with
the affected product rows locked.
"""
import logging
from collections import OrderedDict
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from storefront.catalog.models import Product
from storefront.core.cache_utils import invalidate_catalog_cache
from storefront.shop.models import CartItem
from .models import Order, OrderItem

logger = logging.getLogger(__name__)
User = get_user_model()

ORDER_NUMBER_ATTEMPTS = 10

# Completed and cancelled orders are final
ALLOWED_TRANSITIONS = {
    Order.STATUS_PENDING: {Order.STATUS_PROCESSING, Order.STATUS_COMPLETED, Order.STATUS_CANCELLED},
    Order.STATUS_PROCESSING: {Order.STATUS_PENDING, Order.STATUS_COMPLETED, Order.STATUS_CANCELLED},
    Order.STATUS_COMPLETED: set(),
    Order.STATUS_CANCELLED: set(),
}


class OrderError(Exception):
    """Business rule violation while placing or changing an order"""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


def generate_order_number(today=None):
    """
    ORD<YYYYMMDD><NNN>, NNN being today's order count + 1.
    Collisions (concurrent checkouts, deleted orders) move on to the next number.
    """
    today = today or timezone.localdate()
    prefix = f"ORD{today:%Y%m%d}"
    count = Order.objects.filter(order_number__startswith=prefix).count()
    for attempt in range(ORDER_NUMBER_ATTEMPTS):
        candidate = f"{prefix}{count + 1 + attempt:03d}"
        if not Order.objects.filter(order_number=candidate).exists():
            return candidate
    raise OrderError('Could not generate a unique order number, please try again')


def _group_quantities(items):
    """Total requested quantity per product, keeping the first-seen order"""
    totals = OrderedDict()
    for entry in items:
        totals[entry['product_id']] = totals.get(entry['product_id'], 0) + entry['quantity']
    return totals


def get_shipping_quote(shipping_method_id, subtotal):
    """(method name, cost) for an active shipping method; ('', 0) when none chosen"""
    if not shipping_method_id:
        return '', Decimal('0.00')
    from storefront.shipping.models import ShippingMethod
    method = ShippingMethod.objects.filter(pk=shipping_method_id, is_active=True).first()
    if method is None:
        raise OrderError('Shipping method not found')
    return method.name, method.cost_for(subtotal)


def place_order(user, items, shipping_address, payment_method, billing_address=None,
                notes='', shipping_method_id=None):
    """
    Create an order for `user`.

    items: [{'product_id', 'quantity', 'size', 'color'}]
    Prices come from the products' current effective price. Stock is
    decremented, the customer's totals incremented and the ordered products
    removed from the customer's cart.
    """
    if not items:
        raise OrderError('Order must contain at least one item')

    requested = _group_quantities(items)

    with transaction.atomic():
        products = {
            p.id: p for p in Product.objects.select_for_update().filter(id__in=list(requested.keys()))
        }

        problems = []
        for product_id, quantity in requested.items():
            product = products.get(product_id)
            if product is None or not product.is_active:
                problems.append({'product_id': product_id, 'error': 'Product not found'})
            elif product.stock < quantity:
                problems.append({
                    'product_id': product_id,
                    'error': f'Insufficient stock for {product.name}',
                    'available': product.stock,
                    'requested': quantity,
                })
        if problems:
            raise OrderError(problems[0]['error'], details=problems)

        lines = []
        subtotal = Decimal('0.00')
        for entry in items:
            product = products[entry['product_id']]
            price = product.effective_price
            subtotal += price * entry['quantity']
            lines.append(OrderItem(
                product=product,
                name=product.name_en or product.name,
                name_vi=product.name,
                quantity=entry['quantity'],
                price=price,
                size=entry.get('size') or '',
                color=entry.get('color') or '',
            ))

        shipping_method_name, shipping_cost = get_shipping_quote(shipping_method_id, subtotal)
        total = subtotal + shipping_cost

        order = Order.objects.create(
            order_number=generate_order_number(),
            user=user,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            total_amount=total,
            shipping_address=shipping_address,
            billing_address=billing_address,
            payment_method=payment_method,
            shipping_method=shipping_method_name,
            notes=notes or '',
        )
        for line in lines:
            line.order = order
        OrderItem.objects.bulk_create(lines)

        for product_id, quantity in requested.items():
            Product.objects.filter(id=product_id).update(stock=F('stock') - quantity)
        # update() sends no post_save
        transaction.on_commit(invalidate_catalog_cache)

        User.objects.filter(pk=user.pk).update(
            total_orders=F('total_orders') + 1,
            total_spent=F('total_spent') + total,
        )
        CartItem.objects.filter(cart__user=user, product_id__in=list(requested.keys())).delete()

    logger.info(f"Order {order.order_number} placed by user {user.pk}: {len(lines)} lines, total {total}")
    return order


def restore_stock_and_totals(order):
    """Put the order's quantities back in stock and take the order off the customer's totals"""
    quantities = {}
    for item in order.items.all():
        if item.product_id:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
    for product_id, quantity in quantities.items():
        Product.objects.filter(id=product_id).update(stock=F('stock') + quantity)
    transaction.on_commit(invalidate_catalog_cache)

    User.objects.filter(pk=order.user_id, total_orders__gt=0).update(total_orders=F('total_orders') - 1)
    User.objects.filter(pk=order.user_id, total_spent__gte=order.total_amount).update(
        total_spent=F('total_spent') - order.total_amount
    )


def cancel_order(order):
    """Cancel a pending order, returning its stock and reverting the customer's totals"""
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        if order.status != Order.STATUS_PENDING:
            raise OrderError('Only pending orders can be cancelled')
        restore_stock_and_totals(order)
        order.status = Order.STATUS_CANCELLED
        order.save(update_fields=['status', 'updated_at'])
    logger.info(f"Order {order.order_number} cancelled")
    return order


def change_order_status(order, new_status):
    """
    Move an order to `new_status`.
    Cancelling through this path also returns stock, like a customer cancellation.
    """
    if new_status not in dict(Order.STATUS_CHOICES):
        raise OrderError('Invalid status')

    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        if new_status == order.status:
            return order
        if new_status not in ALLOWED_TRANSITIONS[order.status]:
            raise OrderError(f'Cannot change order status from {order.status} to {new_status}')
        if new_status == Order.STATUS_CANCELLED:
            restore_stock_and_totals(order)
        order.status = new_status
        order.save(update_fields=['status', 'updated_at'])
    logger.info(f"Order {order.order_number} status changed to {new_status}")
    return order
