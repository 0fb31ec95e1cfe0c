"""
Test suite for dashboard stats and analytics
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from storefront.core.cache_signals import suspend_cache_signals
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.orders.models import Order
from storefront.reports import services


class DashboardStatsTests(TestCase):
    """Test the dashboard totals and their invalidation"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.product = TestDataFactory.create_product(price=Decimal('100000'))
        self.customer = TestDataFactory.create_user()
        TestDataFactory.create_order(user=self.customer, products=[self.product], status=Order.STATUS_COMPLETED)
        old = TestDataFactory.create_order(user=self.customer, products=[self.product], status=Order.STATUS_COMPLETED)
        Order.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=60))

    def test_requires_admin(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/admin/stats/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_totals_and_trends(self):
        response = self.client.get('/api/v1/admin/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['total_products'], 1)
        self.assertEqual(response.data['total_users'], 2)
        self.assertEqual(response.data['total_revenue'], 200000.0)
        self.assertEqual(response.data['orders_trend'], 50.0)
        self.assertEqual(response.data['revenue_trend'], 50.0)
        self.assertEqual(response.data['products_trend'], 100.0)

    def test_new_order_invalidates_stats(self):
        self.client.get('/api/v1/admin/stats/')
        TestDataFactory.create_order(user=self.customer, products=[self.product])
        response = self.client.get('/api/v1/admin/stats/')
        self.assertEqual(response.data['total_orders'], 3)

    def test_suspended_signals_keep_cache(self):
        """Test writes under suspend_cache_signals leave cached stats alone"""
        self.client.get('/api/v1/admin/stats/')
        with suspend_cache_signals():
            TestDataFactory.create_order(user=self.customer, products=[self.product])
        response = self.client.get('/api/v1/admin/stats/')
        self.assertEqual(response.data['total_orders'], 2)

    def test_empty_database_trends(self):
        Order.objects.all().delete()
        cache.clear()
        stats = services.dashboard_stats()
        self.assertEqual(stats['total_orders'], 0)
        self.assertEqual(stats['orders_trend'], 0)
        self.assertEqual(stats['total_revenue'], 0.0)


class RevenueAnalyticsTests(TestCase):
    """Test monthly and daily revenue"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        product = TestDataFactory.create_product(price=Decimal('250000'))
        TestDataFactory.create_order(products=[product], status=Order.STATUS_COMPLETED)
        TestDataFactory.create_order(products=[product], status=Order.STATUS_COMPLETED, quantity=2)
        TestDataFactory.create_order(products=[product], status=Order.STATUS_CANCELLED)

    def test_monthly(self):
        response = self.client.get('/api/v1/admin/analytics/revenue/', {'months': 3})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['months'], 3)
        breakdown = response.data['monthly_breakdown']
        self.assertEqual(len(breakdown), 3)
        self.assertEqual(breakdown[-1]['month'], timezone.localdate().strftime('%Y-%m'))
        self.assertEqual(breakdown[-1]['revenue'], 750000.0)
        self.assertEqual(breakdown[-1]['orders'], 2)
        self.assertEqual(breakdown[0]['revenue'], 0.0)
        self.assertEqual(response.data['total_revenue'], 750000.0)

    def test_months_default_and_clamp(self):
        response = self.client.get('/api/v1/admin/analytics/revenue/')
        self.assertEqual(len(response.data['monthly_breakdown']), 12)
        response = self.client.get('/api/v1/admin/analytics/revenue/', {'months': 500})
        self.assertEqual(len(response.data['monthly_breakdown']), 36)

    def test_daily(self):
        response = self.client.get('/api/v1/admin/analytics/daily-revenue/', {'days': 7})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        breakdown = response.data['daily_breakdown']
        self.assertEqual(len(breakdown), 7)
        self.assertEqual(breakdown[-1]['date'], timezone.localdate().isoformat())
        self.assertEqual(breakdown[-1]['orders'], 2)
        self.assertEqual(response.data['total_revenue'], 750000.0)


class ProductOrderCustomerAnalyticsTests(TestCase):
    """Test product, order and customer analytics"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.category = TestDataFactory.create_category(name='Kimono', slug='kimono')
        self.best = TestDataFactory.create_product(category=self.category, name='Best', stock=50)
        self.low = TestDataFactory.create_product(category=self.category, name='Low', stock=2)
        self.empty = TestDataFactory.create_product(name='Empty', stock=0)
        self.spender = TestDataFactory.create_user(total_spent=Decimal('900000'), total_orders=3)
        TestDataFactory.create_order(user=self.spender, products=[self.best], quantity=3)
        TestDataFactory.create_order(user=self.spender, products=[self.best, self.low], quantity=1,
                                     status=Order.STATUS_COMPLETED)
        TestDataFactory.create_order(products=[self.low], quantity=5, status=Order.STATUS_CANCELLED)

    def test_products(self):
        response = self.client.get('/api/v1/admin/analytics/products/', {'threshold': 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        top = response.data['top_sellers']
        self.assertEqual(top[0]['product_id'], self.best.id)
        self.assertEqual(top[0]['total_quantity'], 4)
        self.assertEqual(top[0]['order_count'], 2)
        self.assertEqual(top[1]['total_quantity'], 1)
        self.assertEqual([p['id'] for p in response.data['low_stock']], [self.empty.id, self.low.id])
        self.assertEqual(response.data['out_of_stock'], 1)
        kimono = next(c for c in response.data['products_by_category'] if c['slug'] == 'kimono')
        self.assertEqual(kimono['count'], 2)

    def test_orders(self):
        response = self.client.get('/api/v1/admin/analytics/orders/')
        self.assertEqual(response.data['total_orders'], 3)
        self.assertEqual(response.data['by_status']['cancelled'], 1)
        self.assertEqual(response.data['by_status']['processing'], 0)
        self.assertEqual(response.data['by_payment_status']['pending'], 3)
        self.assertEqual(response.data['average_order_value'], 250000.0)

    def test_customers(self):
        response = self.client.get('/api/v1/admin/analytics/customers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['top_spenders'][0]['id'], self.spender.id)
        self.assertEqual(response.data['top_spenders'][0]['total_spent'], 900000.0)
        self.assertEqual(response.data['new_customers'], response.data['total_customers'])
