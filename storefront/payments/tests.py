"""
Test suite for payment methods, transactions, refunds and saved customer methods
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.orders.models import Order
from storefront.payments.models import SavedPaymentMethod, Transaction, Refund
from storefront.payments.serializers import detect_card_brand
from storefront.payments.services import (
    PaymentError, create_transaction, update_transaction_status, process_refund,
    add_saved_method, delete_saved_method, generate_transaction_id
)


class TransactionServiceTests(TestCase):
    """Test transaction recording, status changes and refunds"""

    def setUp(self):
        self.order = TestDataFactory.create_order(payment_method='bank_transfer')

    def test_transaction_id_format(self):
        txn_id = generate_transaction_id()
        self.assertTrue(txn_id.startswith('TXN'))
        self.assertEqual(len(txn_id), 25)

    def test_create_defaults_to_order_total(self):
        txn = create_transaction(self.order)
        self.assertEqual(txn.amount, self.order.total_amount)
        self.assertEqual(txn.payment_method, 'bank_transfer')
        self.assertEqual(txn.currency, 'VND')
        self.assertEqual(txn.customer_email, self.order.user.email)
        self.assertEqual(txn.status, Transaction.STATUS_PENDING)

    def test_cancelled_order_rejected(self):
        self.order.status = Order.STATUS_CANCELLED
        self.order.save()
        with self.assertRaises(PaymentError):
            create_transaction(self.order)

    def test_completed_marks_order_paid(self):
        txn = update_transaction_status(create_transaction(self.order), Transaction.STATUS_COMPLETED)
        self.assertIsNotNone(txn.processed_at)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PAID)

    def test_failed_marks_order_failed(self):
        txn = update_transaction_status(create_transaction(self.order), Transaction.STATUS_FAILED,
                                        gateway_response={'code': '51'})
        self.assertIsNotNone(txn.failed_at)
        self.assertEqual(txn.gateway_response, {'code': '51'})
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_FAILED)

    def test_partial_then_full_refund(self):
        txn = create_transaction(self.order, amount=Decimal('100000'))
        update_transaction_status(txn, Transaction.STATUS_COMPLETED)

        process_refund(txn, Decimal('40000'), 'Thiếu hàng')
        txn.refresh_from_db()
        self.assertEqual(txn.status, Transaction.STATUS_PARTIALLY_REFUNDED)
        self.assertEqual(txn.refundable_amount, Decimal('60000'))

        with self.assertRaises(PaymentError):
            process_refund(txn, Decimal('60000.01'), 'Quá số tiền')

        refund = process_refund(txn, Decimal('60000'), 'Trả hàng')
        txn.refresh_from_db()
        self.assertEqual(txn.status, Transaction.STATUS_REFUNDED)
        self.assertEqual(refund.order_id, self.order.id)
        self.assertEqual(Refund.objects.filter(transaction=txn).count(), 2)

    def test_pending_transaction_cannot_be_refunded(self):
        txn = create_transaction(self.order)
        with self.assertRaises(PaymentError):
            process_refund(txn, Decimal('1000'), 'Sớm quá')


class SavedMethodServiceTests(TestCase):
    """Test default handling of saved payment methods"""

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_first_method_is_default(self):
        first = add_saved_method(self.user, type='credit_card', name='Visa', last4='4242')
        second = add_saved_method(self.user, type='credit_card', name='Master', last4='4444')
        self.assertTrue(first.is_default)
        self.assertFalse(second.is_default)

    def test_deleting_default_promotes_newest(self):
        first = add_saved_method(self.user, type='credit_card', name='A', last4='1111')
        add_saved_method(self.user, type='credit_card', name='B', last4='2222')
        third = add_saved_method(self.user, type='credit_card', name='C', last4='3333')
        delete_saved_method(first)
        third.refresh_from_db()
        self.assertTrue(third.is_default)
        self.assertEqual(SavedPaymentMethod.objects.filter(user=self.user, is_default=True).count(), 1)

    def test_card_brand(self):
        self.assertEqual(detect_card_brand('4111111111111111'), 'Visa')
        self.assertEqual(detect_card_brand('5500000000000004'), 'Mastercard')
        self.assertEqual(detect_card_brand('340000000000009'), 'American Express')
        self.assertEqual(detect_card_brand('6011000000000004'), '')


class PaymentMethodAPITests(TestCase):
    """Test public and admin payment method endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.cod = TestDataFactory.create_payment_method(name='COD', max_amount=Decimal('2000000'))
        self.bank = TestDataFactory.create_payment_method(name='Chuyển khoản', type='bank_transfer', provider='vietqr')
        TestDataFactory.create_payment_method(name='Tắt', is_active=False)

    def test_list_active(self):
        response = self.client.get('/api/v1/payment-methods/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['payment_methods']), 2)

    def test_list_by_amount(self):
        response = self.client.get('/api/v1/payment-methods/', {'amount': '5000000'})
        self.assertEqual([m['id'] for m in response.data['payment_methods']], [self.bank.id])

    def test_list_invalid_amount(self):
        response = self.client.get('/api/v1/payment-methods/', {'amount': 'many'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_non_finite_amount(self):
        for value in ('NaN', 'sNaN', 'Infinity'):
            response = self.client.get('/api/v1/payment-methods/', {'amount': value})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_create_validates_range(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/admin/payments/methods/', {
            'name': 'MoMo', 'type': 'e_wallet', 'provider': 'momo',
            'min_amount': '100000', 'max_amount': '50000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('max_amount', response.data)

        response = self.client.post('/api/v1/admin/payments/methods/', {
            'name': 'MoMo', 'type': 'e_wallet', 'provider': 'momo', 'supported_currencies': ['VND'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)


class SavedMethodAPITests(TestCase):
    """Test the customer's saved payment methods"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_add_card_keeps_only_last4(self):
        response = self.client.post('/api/v1/payment-methods/saved/', {
            'type': 'credit_card', 'name': 'Thẻ chính', 'card_number': '4111 1111 1111 1234',
            'expiry_month': '7', 'expiry_year': '2030',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        method = response.data['payment_method']
        self.assertEqual(method['last4'], '1234')
        self.assertEqual(method['brand'], 'Visa')
        self.assertEqual(method['expiry_month'], '07')
        self.assertTrue(method['is_default'])
        self.assertNotIn('card_number', method)

    def test_add_card_requires_details(self):
        response = self.client.post('/api/v1/payment-methods/saved/', {
            'type': 'credit_card', 'name': 'Thẻ',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('card_number', response.data)

    def test_add_paypal(self):
        response = self.client.post('/api/v1/payment-methods/saved/', {
            'type': 'paypal', 'paypal_email': 'me@paypal.example.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment_method']['name'], 'me@paypal.example.com')

        response = self.client.post('/api/v1/payment-methods/saved/', {'type': 'paypal'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_set_default(self):
        add_saved_method(self.user, type='credit_card', name='A', last4='1111')
        second = add_saved_method(self.user, type='credit_card', name='B', last4='2222')
        response = self.client.post(f'/api/v1/payment-methods/saved/{second.id}/default/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['payment_method']['is_default'])
        response = self.client.get('/api/v1/payment-methods/saved/')
        self.assertEqual(response.data['payment_methods'][0]['id'], second.id)

    def test_other_users_method_not_found(self):
        other = add_saved_method(TestDataFactory.create_user(), type='credit_card', name='X', last4='9999')
        response = self.client.delete(f'/api/v1/payment-methods/saved/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(SavedPaymentMethod.objects.filter(pk=other.pk).exists())


class AdminTransactionAPITests(TestCase):
    """Test admin transaction and refund endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.admin)
        self.order = TestDataFactory.create_order()

    def test_customer_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/admin/payments/transactions/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_transaction(self):
        response = self.client.post('/api/v1/admin/payments/transactions/', {
            'order_id': self.order.id, 'payment_provider': 'vnpay',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['transaction']['payment_provider'], 'vnpay')
        self.assertEqual(Decimal(response.data['transaction']['amount']), self.order.total_amount)

    def test_create_for_unknown_order(self):
        response = self.client.post('/api/v1/admin/payments/transactions/', {'order_id': 99999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_and_refund_flow(self):
        txn = create_transaction(self.order, amount=Decimal('100000'))
        response = self.client.patch(f'/api/v1/admin/payments/transactions/{txn.id}/status/',
                                     {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Order.objects.get(pk=self.order.pk).payment_status, Order.PAYMENT_PAID)

        response = self.client.post(f'/api/v1/admin/payments/transactions/{txn.id}/refund/', {
            'amount': '30000', 'reason': 'Sản phẩm lỗi',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['transaction']['status'], 'partially_refunded')
        refund_id = response.data['refund']['id']

        response = self.client.patch(f'/api/v1/admin/payments/refunds/{refund_id}/status/',
                                     {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        refund = Refund.objects.get(pk=refund_id)
        self.assertEqual(refund.approved_by, self.admin)
        self.assertIsNotNone(refund.processed_at)

        response = self.client.get(f'/api/v1/admin/payments/transactions/{txn.id}/')
        self.assertEqual(len(response.data['refunds']), 1)

    def test_refund_over_amount(self):
        txn = update_transaction_status(create_transaction(self.order, amount=Decimal('100000')), 'completed')
        response = self.client.post(f'/api/v1/admin/payments/transactions/{txn.id}/refund/', {
            'amount': '100001', 'reason': 'Nhầm',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Refund amount cannot exceed transaction amount')

    def test_status_cannot_be_set_to_refunded_directly(self):
        txn = create_transaction(self.order)
        response = self.client.patch(f'/api/v1/admin/payments/transactions/{txn.id}/status/',
                                     {'status': 'refunded'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_search(self):
        txn = create_transaction(self.order)
        create_transaction(TestDataFactory.create_order())
        response = self.client.get('/api/v1/admin/payments/transactions/', {'search': txn.transaction_id})
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_list_by_order(self):
        txn = create_transaction(self.order)
        create_transaction(TestDataFactory.create_order())
        response = self.client.get('/api/v1/admin/payments/transactions/', {'order': self.order.id})
        self.assertEqual([t['id'] for t in response.data['transactions']], [txn.id])
        response = self.client.get('/api/v1/admin/payments/transactions/', {'order': self.order.order_number})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stats(self):
        done = update_transaction_status(create_transaction(self.order, amount=Decimal('100000')), 'completed')
        process_refund(done, Decimal('20000'), 'Giảm giá')
        create_transaction(TestDataFactory.create_order())
        response = self.client.get('/api/v1/admin/payments/stats/')
        self.assertEqual(response.data['total_transactions'], 2)
        self.assertEqual(response.data['pending_transactions'], 1)
        self.assertEqual(response.data['refunded_transactions'], 1)
        self.assertEqual(response.data['total_amount'], 100000.0)
        self.assertEqual(response.data['refunded_amount'], 20000.0)
        self.assertEqual(response.data['refund_stats']['pending']['count'], 1)
