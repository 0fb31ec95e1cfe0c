"""
Test suite for shipping methods, quotes, shipments and tracking
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.orders.models import Order
from storefront.shipping.models import Shipment, ShippingMethod, TrackingEvent
from storefront.shipping.services import (
    ShipmentError, create_shipment, generate_tracking_number, update_shipment_status
)


class ShippingMethodModelTests(TestCase):
    """Test shipping cost and region helpers"""

    def test_cost_for_threshold(self):
        method = ShippingMethod(cost=Decimal('30000'), free_shipping_threshold=Decimal('500000'))
        self.assertEqual(method.cost_for(Decimal('499999')), Decimal('30000'))
        self.assertEqual(method.cost_for(Decimal('500000')), Decimal('0.00'))

    def test_no_threshold(self):
        method = ShippingMethod(cost=Decimal('30000'))
        self.assertEqual(method.cost_for(Decimal('10000000')), Decimal('30000'))

    def test_serves_region(self):
        method = ShippingMethod(supported_regions=['Ha Noi', 'Ho Chi Minh'])
        self.assertTrue(method.serves_region('ho chi minh'))
        self.assertFalse(method.serves_region('Da Nang'))
        self.assertTrue(method.serves_region(''))
        self.assertTrue(ShippingMethod(supported_regions=[]).serves_region('Da Nang'))


class ShipmentServiceTests(TestCase):
    """Test shipment creation and status changes"""

    def setUp(self):
        self.method = TestDataFactory.create_shipping_method()
        self.order = TestDataFactory.create_order(shipping_cost=Decimal('30000'))

    def test_tracking_number_format(self):
        number = generate_tracking_number()
        self.assertTrue(number.startswith('SHP'))
        self.assertEqual(len(number), 17)

    def test_create_copies_recipient(self):
        shipment = create_shipment(self.order, self.method, carrier='GHN')
        self.assertEqual(shipment.customer_name, 'Nguyen Van A')
        self.assertEqual(shipment.customer_phone, '0901234567')
        self.assertEqual(shipment.shipping_cost, Decimal('30000'))
        self.assertEqual(shipment.status, 'pending')
        event = shipment.tracking_events.get()
        self.assertEqual(event.description, 'Shipment created')
        self.assertEqual(event.carrier, 'GHN')

    def test_cancelled_order_cannot_ship(self):
        self.order.status = Order.STATUS_CANCELLED
        self.order.save()
        with self.assertRaises(ShipmentError):
            create_shipment(self.order, self.method)

    def test_status_update_records_event(self):
        shipment = create_shipment(self.order, self.method)
        update_shipment_status(shipment, 'in_transit', location='Kho Thu Duc')
        event = shipment.tracking_events.order_by('-id').first()
        self.assertEqual(event.status, 'in_transit')
        self.assertEqual(event.location, 'Kho Thu Duc')
        self.assertEqual(event.description, 'Status updated to in_transit')

    def test_delivery_completes_order(self):
        shipment = create_shipment(self.order, self.method)
        update_shipment_status(shipment, 'delivered')
        shipment.refresh_from_db()
        self.order.refresh_from_db()
        self.assertIsNotNone(shipment.actual_delivery)
        self.assertEqual(self.order.status, Order.STATUS_COMPLETED)

    def test_delivery_leaves_completed_order(self):
        shipment = create_shipment(self.order, self.method)
        Order.objects.filter(pk=self.order.pk).update(status=Order.STATUS_COMPLETED)
        update_shipment_status(shipment, 'delivered')
        self.assertEqual(Order.objects.get(pk=self.order.pk).status, Order.STATUS_COMPLETED)


class PublicShippingAPITests(TestCase):
    """Test public shipping endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.standard = TestDataFactory.create_shipping_method(
            name='Tiêu chuẩn', name_en='Standard', cost=Decimal('30000'),
            free_shipping_threshold=Decimal('500000'),
        )
        self.express = TestDataFactory.create_shipping_method(
            name='Hỏa tốc', cost=Decimal('60000'), type='express', supported_regions=['Ho Chi Minh'],
        )
        TestDataFactory.create_shipping_method(name='Cũ', is_active=False)

    def test_list_active(self):
        response = self.client.get('/api/v1/shipping-methods/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['id'] for m in response.data['shipping_methods']], [self.standard.id, self.express.id])

    def test_list_by_region(self):
        response = self.client.get('/api/v1/shipping-methods/', {'region': 'Da Nang'})
        self.assertEqual([m['id'] for m in response.data['shipping_methods']], [self.standard.id])

    def test_quote(self):
        response = self.client.get('/api/v1/shipping-methods/quote/', {'subtotal': '600000', 'lang': 'en'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        quotes = {q['shipping_method_id']: q for q in response.data['quotes']}
        self.assertTrue(quotes[self.standard.id]['is_free'])
        self.assertEqual(quotes[self.standard.id]['name'], 'Standard')
        self.assertEqual(quotes[self.express.id]['cost'], '60000.00')

    def test_quote_invalid_subtotal(self):
        response = self.client.get('/api/v1/shipping-methods/quote/', {'subtotal': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/shipping-methods/quote/', {'subtotal': '-5'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_quote_non_finite_subtotal(self):
        for value in ('NaN', 'Infinity', '-inf'):
            response = self.client.get('/api/v1/shipping-methods/quote/', {'subtotal': value})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(response.data['error'], 'Invalid subtotal')


class AdminShippingAPITests(TestCase):
    """Test admin shipping management"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.method = TestDataFactory.create_shipping_method()
        self.order = TestDataFactory.create_order()

    def test_customer_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/admin/shipping/shipments/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_method(self):
        response = self.client.post('/api/v1/admin/shipping/methods/', {
            'name': 'Nhận tại cửa hàng', 'type': 'pickup', 'cost': '0', 'estimated_days': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['shipping_method']['type'], 'pickup')

    def test_delete_method_in_use(self):
        create_shipment(self.order, self.method)
        response = self.client.delete(f'/api/v1/admin/shipping/methods/{self.method.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(ShippingMethod.objects.filter(pk=self.method.pk).exists())

    def test_create_shipment(self):
        response = self.client.post('/api/v1/admin/shipping/shipments/', {
            'order_id': self.order.id, 'shipping_method_id': self.method.id, 'carrier': 'GHTK',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        shipment = response.data['shipment']
        self.assertEqual(shipment['order_number'], self.order.order_number)
        self.assertEqual(len(shipment['tracking_events']), 1)

    def test_create_shipment_unknown_order(self):
        response = self.client.post('/api/v1/admin/shipping/shipments/', {
            'order_id': 99999, 'shipping_method_id': self.method.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Order not found')

    def test_list_search(self):
        shipment = create_shipment(self.order, self.method)
        create_shipment(TestDataFactory.create_order(), self.method)
        response = self.client.get('/api/v1/admin/shipping/shipments/', {'search': shipment.tracking_number})
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['shipments'][0]['id'], shipment.id)

    def test_status_endpoint_delivers(self):
        shipment = create_shipment(self.order, self.method)
        response = self.client.patch(f'/api/v1/admin/shipping/shipments/{shipment.id}/status/', {
            'status': 'delivered', 'location': 'Quan 1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['shipment']['status'], 'delivered')
        self.assertEqual(Order.objects.get(pk=self.order.pk).status, Order.STATUS_COMPLETED)

    def test_add_tracking_event(self):
        shipment = create_shipment(self.order, self.method)
        response = self.client.post(f'/api/v1/admin/shipping/shipments/{shipment.id}/tracking/', {
            'status': 'in_transit', 'description': 'Đã rời kho',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['event']['location'], 'Unknown')

        response = self.client.get(f'/api/v1/admin/shipping/shipments/{shipment.id}/tracking/')
        self.assertEqual(len(response.data['events']), 2)

    def test_delete_shipment(self):
        shipment = create_shipment(self.order, self.method)
        response = self.client.delete(f'/api/v1/admin/shipping/shipments/{shipment.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Shipment.objects.exists())
        self.assertFalse(TrackingEvent.objects.exists())

    def test_stats(self):
        first = create_shipment(self.order, self.method)
        create_shipment(TestDataFactory.create_order(), self.method)
        update_shipment_status(first, 'out_for_delivery')
        response = self.client.get('/api/v1/admin/shipping/stats/')
        self.assertEqual(response.data['total_shipments'], 2)
        self.assertEqual(response.data['pending_shipments'], 1)
        self.assertEqual(response.data['in_transit_shipments'], 1)
        self.assertEqual(response.data['active_methods'], 1)
