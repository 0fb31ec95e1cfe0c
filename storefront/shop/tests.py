"""
Test suite for the shopping cart and wishlist
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.shop.models import CartItem, WishlistItem


class CartTests(TestCase):
    """Test cart endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(price=Decimal('200000'), stock=5)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_empty_cart(self):
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [])
        self.assertEqual(response.data['total'], '0.00')
        self.assertEqual(response.data['item_count'], 0)

    def test_add_item(self):
        response = self.client.post('/api/v1/cart/', {
            'product_id': self.product.id, 'quantity': 2, 'size': 'M',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['item_count'], 2)
        self.assertEqual(Decimal(response.data['total']), Decimal('400000'))
        self.assertEqual(response.data['items'][0]['size'], 'M')

    def test_add_same_product_merges_line(self):
        """Test adding a product twice keeps one line and updates the options"""
        self.client.post('/api/v1/cart/', {'product_id': self.product.id, 'quantity': 1, 'size': 'S'}, format='json')
        response = self.client.post('/api/v1/cart/', {
            'product_id': self.product.id, 'quantity': 2, 'size': 'L',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(CartItem.objects.filter(cart__user=self.user).count(), 1)
        item = CartItem.objects.get(cart__user=self.user)
        self.assertEqual(item.quantity, 3)
        self.assertEqual(item.size, 'L')

    def test_add_over_stock(self):
        self.client.post('/api/v1/cart/', {'product_id': self.product.id, 'quantity': 4}, format='json')
        response = self.client.post('/api/v1/cart/', {'product_id': self.product.id, 'quantity': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock')
        self.assertEqual(response.data['available'], 5)

    def test_add_inactive_product(self):
        hidden = TestDataFactory.create_product(is_active=False)
        response = self.client.post('/api/v1/cart/', {'product_id': hidden.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_quantity(self):
        self.client.post('/api/v1/cart/', {'product_id': self.product.id, 'quantity': 1}, format='json')
        response = self.client.patch(f'/api/v1/cart/{self.product.id}/', {'quantity': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['item_count'], 4)

        response = self.client.patch(f'/api/v1/cart/{self.product.id}/', {'quantity': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_missing_item(self):
        response = self.client.patch(f'/api/v1/cart/{self.product.id}/', {'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_remove_item(self):
        self.client.post('/api/v1/cart/', {'product_id': self.product.id}, format='json')
        response = self.client.delete(f'/api/v1/cart/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [])

    def test_clear_cart(self):
        self.client.post('/api/v1/cart/', {'product_id': self.product.id}, format='json')
        response = self.client.delete('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(CartItem.objects.filter(cart__user=self.user).exists())

    def test_deactivated_product_hidden_from_cart(self):
        self.client.post('/api/v1/cart/', {'product_id': self.product.id}, format='json')
        self.product.is_active = False
        self.product.save()
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.data['items'], [])

    def test_sync_guest_cart(self):
        """Test guest lines are merged, clamped to stock and unavailable ones skipped"""
        other = TestDataFactory.create_product(stock=0)
        self.client.post('/api/v1/cart/', {'product_id': self.product.id, 'quantity': 3}, format='json')
        response = self.client.post('/api/v1/cart/sync/', {'items': [
            {'product_id': self.product.id, 'quantity': 4},
            {'product_id': other.id, 'quantity': 1},
            {'product_id': 99999, 'quantity': 1},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['item_count'], 5)
        reasons = {entry['product_id']: entry['reason'] for entry in response.data['skipped']}
        self.assertEqual(reasons[other.id], 'Out of stock')
        self.assertEqual(reasons[99999], 'Product not available')
        self.assertEqual(reasons[self.product.id], 'Quantity reduced to available stock')


class WishlistTests(TestCase):
    """Test wishlist endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()

    def test_add_and_list(self):
        response = self.client.post('/api/v1/wishlist/', {'product_id': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/wishlist/')
        self.assertEqual(response.data['items'][0]['product']['id'], self.product.id)

    def test_add_duplicate(self):
        WishlistItem.objects.create(user=self.user, product=self.product)
        response = self.client.post('/api/v1/wishlist/', {'product_id': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Product already in wishlist')

    def test_remove(self):
        WishlistItem.objects.create(user=self.user, product=self.product)
        response = self.client.delete(f'/api/v1/wishlist/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 0)

    def test_remove_missing(self):
        response = self.client.delete(f'/api/v1/wishlist/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_clear(self):
        WishlistItem.objects.create(user=self.user, product=self.product)
        response = self.client.delete('/api/v1/wishlist/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(WishlistItem.objects.filter(user=self.user).exists())

    def test_sync_ignores_duplicates_and_inactive(self):
        WishlistItem.objects.create(user=self.user, product=self.product)
        extra = TestDataFactory.create_product()
        hidden = TestDataFactory.create_product(is_active=False)
        response = self.client.post('/api/v1/wishlist/sync/', {
            'product_ids': [self.product.id, extra.id, hidden.id, 99999],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(WishlistItem.objects.filter(user=self.user).count(), 2)
