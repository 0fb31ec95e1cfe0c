"""
Test suite for checkout, order tracking and order administration
"""
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from storefront.catalog.models import Product
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient, DEFAULT_ADDRESS
from storefront.orders.models import Order
from storefront.orders.services import (
    OrderError, generate_order_number, place_order, cancel_order, change_order_status
)
from storefront.shop.models import Cart, CartItem


class OrderNumberTests(TestCase):
    """Test order number generation"""

    def test_first_number_of_the_day(self):
        self.assertEqual(generate_order_number(date(2024, 3, 5)), 'ORD20240305001')

    def test_skips_taken_numbers(self):
        order = TestDataFactory.create_order()
        prefix = order.order_number[:11]
        Order.objects.filter(pk=order.pk).update(order_number=f'{prefix}002')
        # one order today, so the next candidate (002) is taken and 003 is used
        self.assertEqual(generate_order_number(), f'{prefix}003')


class PlaceOrderTests(TestCase):
    """Test the checkout service"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.kimono = TestDataFactory.create_product(price=Decimal('500000'), stock=5)
        self.obi = TestDataFactory.create_product(
            price=Decimal('200000'), sale_price=Decimal('150000'), on_sale=True, stock=3
        )

    def _place(self, items, **kwargs):
        return place_order(user=self.user, items=items, shipping_address=dict(DEFAULT_ADDRESS),
                           payment_method='cod', **kwargs)

    def test_totals_stock_and_customer(self):
        order = self._place([
            {'product_id': self.kimono.id, 'quantity': 2},
            {'product_id': self.obi.id, 'quantity': 1, 'size': 'M'},
        ])
        self.assertEqual(order.subtotal, Decimal('1150000'))
        self.assertEqual(order.total_amount, Decimal('1150000'))
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.items.get(product=self.obi).price, Decimal('150000'))

        self.kimono.refresh_from_db()
        self.obi.refresh_from_db()
        self.assertEqual(self.kimono.stock, 3)
        self.assertEqual(self.obi.stock, 2)

        self.user.refresh_from_db()
        self.assertEqual(self.user.total_orders, 1)
        self.assertEqual(self.user.total_spent, Decimal('1150000'))

    def test_stock_checked_against_combined_quantity(self):
        """Test two lines of the same product cannot exceed its stock together"""
        with self.assertRaises(OrderError) as ctx:
            self._place([
                {'product_id': self.obi.id, 'quantity': 2, 'size': 'S'},
                {'product_id': self.obi.id, 'quantity': 2, 'size': 'M'},
            ])
        self.assertEqual(ctx.exception.details[0]['available'], 3)
        self.assertEqual(ctx.exception.details[0]['requested'], 4)
        self.obi.refresh_from_db()
        self.assertEqual(self.obi.stock, 3)
        self.assertFalse(Order.objects.exists())

    def test_inactive_product_rejected(self):
        self.kimono.is_active = False
        self.kimono.save()
        with self.assertRaises(OrderError):
            self._place([{'product_id': self.kimono.id, 'quantity': 1}])

    def test_shipping_method_cost(self):
        method = TestDataFactory.create_shipping_method(name='Nhanh', cost=Decimal('30000'))
        order = self._place([{'product_id': self.obi.id, 'quantity': 1}], shipping_method_id=method.id)
        self.assertEqual(order.shipping_method, 'Nhanh')
        self.assertEqual(order.shipping_cost, Decimal('30000'))
        self.assertEqual(order.total_amount, Decimal('180000'))

    def test_free_shipping_threshold(self):
        method = TestDataFactory.create_shipping_method(cost=Decimal('30000'), free_shipping_threshold=Decimal('500000'))
        order = self._place([{'product_id': self.kimono.id, 'quantity': 1}], shipping_method_id=method.id)
        self.assertEqual(order.shipping_cost, Decimal('0.00'))

    def test_unknown_shipping_method(self):
        with self.assertRaises(OrderError):
            self._place([{'product_id': self.kimono.id, 'quantity': 1}], shipping_method_id=99999)
        self.kimono.refresh_from_db()
        self.assertEqual(self.kimono.stock, 5)

    def test_ordered_products_leave_cart(self):
        cart = Cart.objects.create(user=self.user)
        CartItem.objects.create(cart=cart, product=self.kimono, quantity=1)
        CartItem.objects.create(cart=cart, product=self.obi, quantity=1)
        self._place([{'product_id': self.kimono.id, 'quantity': 1}])
        self.assertEqual(list(cart.items.values_list('product_id', flat=True)), [self.obi.id])


class CheckoutCacheTests(TestCase):
    """Test cached product payloads follow stock changes from checkout and cancellation"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(stock=2, is_featured=True)

    def _featured_stock(self):
        response = self.client.get('/api/v1/products/featured/')
        return {p['id']: (p['stock'], p['in_stock']) for p in response.data['products']}[self.product.id]

    def test_checkout_and_cancel_refresh_featured(self):
        self.assertEqual(self._featured_stock(), (2, True))

        with self.captureOnCommitCallbacks(execute=True):
            order = place_order(user=self.user, items=[{'product_id': self.product.id, 'quantity': 2}],
                                shipping_address=dict(DEFAULT_ADDRESS), payment_method='cod')
        self.assertEqual(self._featured_stock(), (0, False))

        with self.captureOnCommitCallbacks(execute=True):
            cancel_order(order)
        self.assertEqual(self._featured_stock(), (2, True))

    def test_stock_changes_invalidate_catalog_cache(self):
        with patch('storefront.orders.services.invalidate_catalog_cache') as invalidate:
            with self.captureOnCommitCallbacks(execute=True):
                order = place_order(user=self.user, items=[{'product_id': self.product.id, 'quantity': 1}],
                                    shipping_address=dict(DEFAULT_ADDRESS), payment_method='cod')
            self.assertEqual(invalidate.call_count, 1)

            with self.captureOnCommitCallbacks(execute=True):
                change_order_status(order, Order.STATUS_CANCELLED)
            self.assertEqual(invalidate.call_count, 2)


class OrderStatusServiceTests(TestCase):
    """Test cancellation and status transitions"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(price=Decimal('100000'), stock=5)
        self.order = place_order(user=self.user, items=[{'product_id': self.product.id, 'quantity': 2}],
                                 shipping_address=dict(DEFAULT_ADDRESS), payment_method='cod')

    def test_cancel_restores_stock_and_totals(self):
        cancel_order(self.order)
        self.product.refresh_from_db()
        self.user.refresh_from_db()
        self.assertEqual(self.product.stock, 5)
        self.assertEqual(self.user.total_orders, 0)
        self.assertEqual(self.user.total_spent, Decimal('0'))

    def test_cancel_only_pending(self):
        change_order_status(self.order, Order.STATUS_PROCESSING)
        with self.assertRaises(OrderError):
            cancel_order(self.order)

    def test_final_states(self):
        change_order_status(self.order, Order.STATUS_COMPLETED)
        with self.assertRaises(OrderError):
            change_order_status(self.order, Order.STATUS_PENDING)

    def test_admin_cancel_restores_stock(self):
        change_order_status(self.order, Order.STATUS_PROCESSING)
        change_order_status(self.order, Order.STATUS_CANCELLED)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 5)

    def test_same_status_is_noop(self):
        order = change_order_status(self.order, Order.STATUS_PENDING)
        self.assertEqual(order.status, Order.STATUS_PENDING)

    def test_invalid_status(self):
        with self.assertRaises(OrderError):
            change_order_status(self.order, 'shipped')


class CustomerOrderAPITests(TestCase):
    """Test customer order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(price=Decimal('250000'), stock=4)

    def _payload(self, quantity=1):
        return {
            'items': [{'product_id': self.product.id, 'quantity': quantity, 'size': 'M', 'color': 'Red'}],
            'shipping_address': dict(DEFAULT_ADDRESS),
            'payment_method': 'cod',
            'notes': 'Giao giờ hành chính',
        }

    def test_create_order(self):
        response = self.client.post('/api/v1/orders/', self._payload(2), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = response.data['order']
        self.assertTrue(order['order_number'].startswith('ORD'))
        self.assertEqual(order['total_amount'], '500000.00')
        self.assertEqual(order['items'][0]['line_total'], '500000.00')
        self.assertEqual(order['status'], 'pending')

    def test_create_insufficient_stock(self):
        response = self.client.post('/api/v1/orders/', self._payload(10), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])
        self.assertEqual(response.data['details'][0]['available'], 4)

    def test_create_empty_items(self):
        payload = self._payload()
        payload['items'] = []
        response = self.client.post('/api/v1/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_create_requires_address(self):
        payload = self._payload()
        del payload['shipping_address']
        response = self.client.post('/api/v1/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_orders_only_own(self):
        TestDataFactory.create_order(user=self.user)
        TestDataFactory.create_order()
        response = self.client.get('/api/v1/orders/my-orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_other_users_order_not_found(self):
        other = TestDataFactory.create_order()
        response = self.client.get(f'/api/v1/orders/my-orders/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cancel_own_order(self):
        created = self.client.post('/api/v1/orders/', self._payload(2), format='json')
        response = self.client.post(f"/api/v1/orders/{created.data['order']['id']}/cancel/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order']['status'], 'cancelled')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 4)

    def test_cannot_cancel_others_order(self):
        other = TestDataFactory.create_order()
        response = self.client.post(f'/api/v1/orders/{other.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_public_tracking(self):
        order = TestDataFactory.create_order(user=self.user)
        self.client.logout()
        response = self.client.get(f'/api/v1/orders/track/{order.order_number.lower()}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order_number'], order.order_number)
        self.assertEqual(response.data['shipments'], [])
        self.assertNotIn('shipping_address', response.data)


class AdminOrderAPITests(TestCase):
    """Test admin order endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.customer = TestDataFactory.create_user(name='Tanaka')
        self.product = TestDataFactory.create_product(stock=10)
        self.pending = place_order(user=self.customer, items=[{'product_id': self.product.id, 'quantity': 2}],
                                   shipping_address=dict(DEFAULT_ADDRESS), payment_method='cod')
        self.completed = TestDataFactory.create_order(status=Order.STATUS_COMPLETED)

    def test_customer_forbidden(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/admin/orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filters(self):
        response = self.client.get('/api/v1/admin/orders/', {'status': 'completed'})
        self.assertEqual([o['id'] for o in response.data['orders']], [self.completed.id])
        response = self.client.get('/api/v1/admin/orders/', {'search': 'tanaka'})
        self.assertEqual([o['id'] for o in response.data['orders']], [self.pending.id])

    def test_list_by_user(self):
        response = self.client.get('/api/v1/admin/orders/', {'user': self.customer.id})
        self.assertEqual([o['id'] for o in response.data['orders']], [self.pending.id])
        response = self.client.get('/api/v1/admin/orders/', {'user': 'tanaka'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid user')

    def test_update_status(self):
        response = self.client.patch(f'/api/v1/admin/orders/{self.pending.id}/status/', {'status': 'processing'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order']['status'], 'processing')

    def test_update_final_status_rejected(self):
        response = self.client.patch(f'/api/v1/admin/orders/{self.completed.id}/status/', {'status': 'pending'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_order_fields(self):
        response = self.client.patch(f'/api/v1/admin/orders/{self.pending.id}/', {
            'payment_status': 'paid', 'notes': 'Đã chuyển khoản',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.pending.refresh_from_db()
        self.assertEqual(self.pending.payment_status, Order.PAYMENT_PAID)

    def test_bulk_status_reports_failures(self):
        response = self.client.post('/api/v1/admin/orders/bulk-status/', {
            'order_ids': [self.pending.id, self.completed.id], 'status': 'cancelled',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 1)
        self.assertEqual(response.data['failed'][0]['order_id'], self.completed.id)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_delete_pending_restores_stock(self):
        response = self.client.delete(f'/api/v1/admin/orders/{self.pending.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Order.objects.filter(pk=self.pending.pk).exists())
        self.assertEqual(Product.objects.get(pk=self.product.pk).stock, 10)

    def test_stats(self):
        response = self.client.get('/api/v1/admin/orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['pending_orders'], 1)
        self.assertEqual(response.data['completed_orders'], 1)
        self.assertEqual(response.data['total_revenue'], float(self.completed.total_amount))
