"""
Test suite for product reviews
"""
from django.test import TestCase
from rest_framework import status

from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.orders.models import Order
from storefront.reviews.models import Review
from storefront.reviews.views import has_purchased


class ReviewAPITests(TestCase):
    """Test review listing, posting and stats"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(name='Sato')
        self.product = TestDataFactory.create_product()
        self.other_product = TestDataFactory.create_product()

    def _review(self, user=None, product=None, rating=5, **extra):
        return Review.objects.create(user=user or TestDataFactory.create_user(), product=product or self.product,
                                     rating=rating, title='Đẹp', comment='Vải tốt', **extra)

    def _payload(self, **overrides):
        payload = {'product_id': self.product.id, 'rating': 4, 'title': 'Rất đẹp', 'comment': 'Giao nhanh'}
        payload.update(overrides)
        return payload

    def test_post_requires_authentication(self):
        response = self.client.post('/api/v1/reviews/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_post_review(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/reviews/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        review = response.data['review']
        self.assertEqual(review['user']['id'], self.user.id)
        self.assertEqual(review['product']['id'], self.product.id)
        self.assertFalse(review['verified'])

    def test_verified_after_completed_purchase(self):
        TestDataFactory.create_order(user=self.user, products=[self.product], status=Order.STATUS_COMPLETED)
        self.assertTrue(has_purchased(self.user, self.product))
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/reviews/', self._payload(), format='json')
        self.assertTrue(response.data['review']['verified'])

    def test_pending_order_not_verified(self):
        TestDataFactory.create_order(user=self.user, products=[self.product])
        self.assertFalse(has_purchased(self.user, self.product))

    def test_duplicate_review(self):
        self._review(user=self.user)
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/reviews/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'You have already reviewed this product')

    def test_rating_out_of_range(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/reviews/', self._payload(rating=6), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(str(response.data['rating'][0]), 'Rating must be between 1 and 5')

    def test_unknown_product(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/reviews/', self._payload(product_id=99999), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(str(response.data['product_id'][0]), 'Product not found')

    def test_customer_cannot_post_as_someone_else(self):
        other = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/reviews/', self._payload(user_id=other.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['review']['user']['id'], self.user.id)

    def test_admin_posts_on_behalf(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post('/api/v1/reviews/', self._payload(user_id=self.user.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['review']['user']['id'], self.user.id)

    def test_list_filters_and_sort(self):
        low = self._review(rating=2)
        high = self._review(rating=5, verified=True)
        self._review(product=self.other_product)
        response = self.client.get('/api/v1/reviews/', {'product': self.product.id, 'sort_by': 'rating',
                                                        'sort_order': 'asc'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['id'] for r in response.data['reviews']], [low.id, high.id])

        response = self.client.get('/api/v1/reviews/', {'product': self.product.id, 'verified': 'true'})
        self.assertEqual([r['id'] for r in response.data['reviews']], [high.id])

    def test_non_numeric_product_filter(self):
        self._review()
        response = self.client.get('/api/v1/reviews/', {'product': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid product')
        response = self.client.get('/api/v1/reviews/stats/', {'product': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stats(self):
        self._review(rating=5)
        self._review(rating=4)
        self._review(rating=4)
        self._review(product=self.other_product, rating=1)
        response = self.client.get('/api/v1/reviews/stats/', {'product': self.product.id})
        self.assertEqual(response.data['total_reviews'], 3)
        self.assertEqual(response.data['average_rating'], 4.3)
        self.assertEqual(response.data['rating_distribution'][0], {'rating': 5, 'count': 1})
        self.assertEqual(response.data['rating_distribution'][1], {'rating': 4, 'count': 2})
        self.assertEqual(response.data['rating_distribution'][4], {'rating': 1, 'count': 0})

    def test_stats_empty(self):
        response = self.client.get('/api/v1/reviews/stats/')
        self.assertEqual(response.data['total_reviews'], 0)
        self.assertEqual(response.data['average_rating'], 0)

    def test_helpful(self):
        review = self._review()
        self.client.post(f'/api/v1/reviews/{review.id}/helpful/')
        response = self.client.post(f'/api/v1/reviews/{review.id}/helpful/')
        self.assertEqual(response.data['helpful'], 2)


class AdminReviewAPITests(TestCase):
    """Test admin review moderation"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.review = Review.objects.create(user=TestDataFactory.create_user(),
                                            product=TestDataFactory.create_product(),
                                            rating=3, title='Tạm', comment='Ổn')

    def test_mark_verified(self):
        response = self.client.patch(f'/api/v1/admin/reviews/{self.review.id}/', {'verified': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.review.refresh_from_db()
        self.assertTrue(self.review.verified)

    def test_delete(self):
        response = self.client.delete(f'/api/v1/admin/reviews/{self.review.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Review.objects.exists())

    def test_customer_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.delete(f'/api/v1/admin/reviews/{self.review.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
