"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from storefront.catalog.models import Category, Product
from storefront.core.models import Address
from storefront.orders.models import Order, OrderItem
from storefront.orders.services import generate_order_number
from storefront.payments.models import PaymentMethod
from storefront.shipping.models import ShippingMethod
from decimal import Decimal
import random
import string

User = get_user_model()

DEFAULT_ADDRESS = {
    'name': 'Nguyen Van A',
    'phone': '0901234567',
    'address': '12 Le Loi',
    'city': 'Ho Chi Minh',
    'district': 'Quan 1',
}


class TestDataFactory:
    """Factory class for creating test data"""
    __test__ = False

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(email=None, password='testpass123', name='Test Customer', role=User.ROLE_CUSTOMER,
                    status=User.STATUS_ACTIVE, **extra):
        """Create a test user"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6)}@test.com'
        return User.objects.create_user(email=email, password=password, name=name, role=role,
                                        status=status, **extra)

    @staticmethod
    def create_admin(email=None, password='adminpass123'):
        """Create a storefront admin (role=admin, not a superuser)"""
        return TestDataFactory.create_user(email=email or f'admin_{TestDataFactory.random_string(6)}@test.com',
                                           password=password, name='Test Admin', role=User.ROLE_ADMIN)

    @staticmethod
    def create_address(user, is_default=False, **extra):
        """Create a saved address for a user"""
        fields = {
            'full_name': user.name or 'Nguyen Van A',
            'phone': '0901234567',
            'address': '12 Le Loi',
            'city': 'Ho Chi Minh',
            'state': 'Quan 1',
            'zip_code': '700000',
            'country': 'Vietnam',
        }
        fields.update(extra)
        return Address.objects.create(user=user, is_default=is_default, **fields)

    @staticmethod
    def create_category(name=None, slug=None, parent=None, **extra):
        """Create a test category"""
        if not name:
            name = f'Category {TestDataFactory.random_string(6)}'
        if not slug:
            slug = f'cat-{TestDataFactory.random_string(8)}'
        return Category.objects.create(name=name, slug=slug, parent=parent, **extra)

    @staticmethod
    def create_product(category=None, name=None, price=Decimal('100000.00'), stock=10, sku=None, **extra):
        """Create a test product"""
        if category is None:
            category = TestDataFactory.create_category()
        if not name:
            name = f'Product {TestDataFactory.random_string(6)}'
        if sku is None:
            sku = f'SKU-{TestDataFactory.random_string(8).upper()}'
        return Product.objects.create(name=name, price=price, stock=stock, sku=sku, category=category, **extra)

    @staticmethod
    def create_order(user=None, products=None, quantity=1, status=Order.STATUS_PENDING,
                     payment_method='cod', shipping_cost=Decimal('0.00')):
        """
        Create an order directly (no stock movement), one line per product.
        Use orders.services.place_order to exercise checkout.
        """
        if user is None:
            user = TestDataFactory.create_user()
        if products is None:
            products = [TestDataFactory.create_product()]
        subtotal = sum((product.effective_price * quantity for product in products), Decimal('0.00'))
        order = Order.objects.create(
            order_number=generate_order_number(),
            user=user,
            status=status,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            total_amount=subtotal + shipping_cost,
            shipping_address=dict(DEFAULT_ADDRESS),
            payment_method=payment_method,
        )
        for product in products:
            OrderItem.objects.create(order=order, product=product, name=product.name_en or product.name,
                                     name_vi=product.name, quantity=quantity, price=product.effective_price)
        return order

    @staticmethod
    def create_shipping_method(name=None, cost=Decimal('30000.00'), free_shipping_threshold=None, **extra):
        """Create a test shipping method"""
        return ShippingMethod.objects.create(
            name=name or f'Giao hang {TestDataFactory.random_string(4)}',
            cost=cost,
            free_shipping_threshold=free_shipping_threshold,
            **extra
        )

    @staticmethod
    def create_payment_method(name=None, type='cod', provider='internal', **extra):
        """Create a test payment gateway method"""
        return PaymentMethod.objects.create(
            name=name or f'Thanh toan {TestDataFactory.random_string(4)}',
            type=type,
            provider=provider,
            **extra
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
