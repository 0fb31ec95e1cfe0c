"""
Test suite for core: authentication, profile, password reset, user admin,
settings and activity logs
"""
from datetime import timedelta
from decimal import Decimal

from django.core import mail
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework_simplejwt.tokens import RefreshToken

from storefront.core.models import User, Address, SiteSettings, ActivityLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.utils import (
    paginate, parse_bool, parse_decimal, parse_id, parse_int, get_request_language, localized
)


class AuthTests(TestCase):
    """Test registration, login and token refresh"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_creates_customer(self):
        """Test registration returns tokens and a customer account"""
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'New.User@Example.com',
            'password': 'Kimono-2024!',
            'name': 'New User',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['email'], 'new.user@example.com')
        user = User.objects.get(email='new.user@example.com')
        self.assertEqual(user.role, User.ROLE_CUSTOMER)
        self.assertTrue(ActivityLog.objects.filter(action='register', object_id=str(user.id)).exists())

    def test_register_duplicate_email(self):
        """Test registering an existing e-mail is rejected"""
        TestDataFactory.create_user(email='taken@example.com')
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'TAKEN@example.com', 'password': 'Kimono-2024!', 'name': 'Someone',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User already exists')

    def test_register_short_password(self):
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'short@example.com', 'password': '123', 'name': 'Short',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_login(self):
        """Test login returns tokens, the user and updates last_active"""
        user = TestDataFactory.create_user(email='login@example.com', password='Kimono-2024!')
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'Login@Example.com', 'password': 'Kimono-2024!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['id'], user.id)
        user.refresh_from_db()
        self.assertIsNotNone(user.last_active)

    def test_login_wrong_password(self):
        TestDataFactory.create_user(email='login@example.com', password='Kimono-2024!')
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'login@example.com', 'password': 'wrong-password',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_blocked_account(self):
        """Test blocked users cannot log in"""
        TestDataFactory.create_user(email='blocked@example.com', password='Kimono-2024!', status=User.STATUS_BLOCKED)
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'blocked@example.com', 'password': 'Kimono-2024!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'Account is not active')

    def test_admin_login_requires_admin(self):
        """Test the admin login rejects customers"""
        TestDataFactory.create_user(email='customer@example.com', password='Kimono-2024!')
        response = self.client.post('/api/v1/auth/admin/login/', {
            'email': 'customer@example.com', 'password': 'Kimono-2024!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        TestDataFactory.create_admin(email='boss@example.com', password='adminpass123')
        response = self.client.post('/api/v1/auth/admin/login/', {
            'email': 'boss@example.com', 'password': 'adminpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['role'], 'admin')

    def test_refresh_token(self):
        TestDataFactory.create_user(email='refresh@example.com', password='Kimono-2024!')
        login = self.client.post('/api/v1/auth/login/', {
            'email': 'refresh@example.com', 'password': 'Kimono-2024!',
        }, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_invalid_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_deleted_user(self):
        user = TestDataFactory.create_user()
        refresh = str(RefreshToken.for_user(user))
        user.delete()
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_blocked_user(self):
        user = TestDataFactory.create_user()
        refresh = str(RefreshToken.for_user(user))
        user.status = User.STATUS_BLOCKED
        user.save()
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ProfileTests(TestCase):
    """Test the current user's profile"""

    def setUp(self):
        self.user = TestDataFactory.create_user(name='Before')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_get_profile(self):
        response = self.client.get('/api/v1/auth/profile/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], self.user.email)

    def test_update_profile(self):
        """Test name/phone/address are editable but role is not"""
        response = self.client.patch('/api/v1/auth/profile/', {
            'name': 'After', 'phone': '0909000111', 'role': 'admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'After')
        self.assertEqual(self.user.phone, '0909000111')
        self.assertEqual(self.user.role, User.ROLE_CUSTOMER)

    def test_profile_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/auth/profile/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AddressTests(TestCase):
    """Test the current user's saved addresses"""

    def setUp(self):
        self.user = TestDataFactory.create_user(name='Sakura')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.payload = {
            'full_name': 'Sakura Tanaka', 'phone': '0901234567', 'address': '5 Dong Khoi',
            'city': 'Ho Chi Minh', 'state': 'Quan 1', 'zip_code': '700000', 'country': 'Vietnam',
        }

    def test_first_address_becomes_default(self):
        response = self.client.post('/api/v1/auth/addresses/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['address']['is_default'])
        self.assertEqual(response.data['address']['type'], Address.TYPE_SHIPPING)

    def test_new_default_replaces_old_one(self):
        first = TestDataFactory.create_address(self.user, is_default=True)
        response = self.client.post('/api/v1/auth/addresses/', dict(self.payload, is_default=True), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertEqual(self.user.addresses.filter(is_default=True).count(), 1)

    def test_missing_fields_rejected(self):
        response = self.client.post('/api/v1/auth/addresses/', {'full_name': 'Sakura'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('city', response.data)

    def test_list_only_own_addresses(self):
        TestDataFactory.create_address(self.user, is_default=True)
        TestDataFactory.create_address(TestDataFactory.create_user())
        response = self.client.get('/api/v1/auth/addresses/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['addresses']), 1)

    def test_update_address(self):
        address = TestDataFactory.create_address(self.user, is_default=True)
        response = self.client.patch(f'/api/v1/auth/addresses/{address.id}/', {'city': 'Da Nang'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        address.refresh_from_db()
        self.assertEqual(address.city, 'Da Nang')
        self.assertTrue(address.is_default)

    def test_other_users_address_not_found(self):
        address = TestDataFactory.create_address(TestDataFactory.create_user())
        response = self.client.delete(f'/api/v1/auth/addresses/{address.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Address.objects.filter(pk=address.pk).exists())

    def test_deleting_default_promotes_remaining(self):
        default = TestDataFactory.create_address(self.user, is_default=True)
        other = TestDataFactory.create_address(self.user, city='Hue')
        response = self.client.delete(f'/api/v1/auth/addresses/{default.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        other.refresh_from_db()
        self.assertTrue(other.is_default)

    def test_set_default(self):
        default = TestDataFactory.create_address(self.user, is_default=True)
        other = TestDataFactory.create_address(self.user, city='Hue')
        response = self.client.post(f'/api/v1/auth/addresses/{other.id}/default/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['address']['is_default'])
        default.refresh_from_db()
        self.assertFalse(default.is_default)

    def test_addresses_require_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/auth/addresses/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PasswordResetTests(TestCase):
    """Test forgot / reset password"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(email='forgot@example.com', password='oldpass123')

    def test_forgot_password_sends_token(self):
        response = self.client.post('/api/v1/auth/forgot-password/', {'email': 'forgot@example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.reset_password_token)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(self.user.reset_password_token, mail.outbox[0].body)

    def test_forgot_password_unknown_email_same_response(self):
        """Test unknown e-mails get the same answer and no mail"""
        known = self.client.post('/api/v1/auth/forgot-password/', {'email': 'forgot@example.com'}, format='json')
        unknown = self.client.post('/api/v1/auth/forgot-password/', {'email': 'nobody@example.com'}, format='json')
        self.assertEqual(known.data, unknown.data)
        self.assertEqual(len(mail.outbox), 1)

    def test_reset_password(self):
        self.user.reset_password_token = 'a' * 64
        self.user.reset_password_expires = timezone.now() + timedelta(hours=1)
        self.user.save()
        response = self.client.post('/api/v1/auth/reset-password/', {
            'token': 'a' * 64, 'password': 'Yukata-2025!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Yukata-2025!'))
        self.assertIsNone(self.user.reset_password_token)

    def test_reset_password_expired_token(self):
        self.user.reset_password_token = 'b' * 64
        self.user.reset_password_expires = timezone.now() - timedelta(minutes=1)
        self.user.save()
        response = self.client.post('/api/v1/auth/reset-password/', {
            'token': 'b' * 64, 'password': 'Yukata-2025!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid or expired reset token')


class AdminUserTests(TestCase):
    """Test back-office user management"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_customer_cannot_list_users(self):
        customer = TestDataFactory.create_user()
        self.client.authenticate_user(customer)
        response = self.client.get('/api/v1/admin/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_users_with_filters(self):
        TestDataFactory.create_user(email='alice@example.com', name='Alice')
        TestDataFactory.create_user(email='bob@example.com', name='Bob', status=User.STATUS_BLOCKED)
        response = self.client.get('/api/v1/admin/users/', {'search': 'alice'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['users'][0]['email'], 'alice@example.com')

        response = self.client.get('/api/v1/admin/users/', {'status': 'blocked'})
        self.assertEqual([u['email'] for u in response.data['users']], ['bob@example.com'])

    def test_create_user_without_password(self):
        """Test users created without a password cannot log in with one"""
        response = self.client.post('/api/v1/admin/users/', {
            'email': 'staff@example.com', 'name': 'Staff', 'role': 'admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='staff@example.com')
        self.assertFalse(user.has_usable_password())
        self.assertTrue(user.is_admin)

    def test_create_duplicate_user(self):
        TestDataFactory.create_user(email='dup@example.com')
        response = self.client.post('/api/v1/admin/users/', {'email': 'dup@example.com', 'name': 'Dup'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'User with this email already exists')

    def test_block_user_deactivates_login(self):
        user = TestDataFactory.create_user()
        response = self.client.patch(f'/api/v1/admin/users/{user.id}/', {'status': 'blocked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertFalse(user.is_active)

    def test_bulk_status(self):
        users = [TestDataFactory.create_user() for _ in range(3)]
        response = self.client.post('/api/v1/admin/users/bulk-status/', {
            'user_ids': [u.id for u in users], 'status': 'inactive',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['updated'], 3)
        self.assertEqual(User.objects.filter(status='inactive', is_active=False).count(), 3)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/admin/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_user_with_orders(self):
        customer = TestDataFactory.create_user()
        TestDataFactory.create_order(user=customer)
        response = self.client.delete(f'/api/v1/admin/users/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(User.objects.filter(pk=customer.pk).exists())

    def test_delete_user(self):
        customer = TestDataFactory.create_user()
        response = self.client.delete(f'/api/v1/admin/users/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=customer.pk).exists())


class SettingsTests(TestCase):
    """Test public and admin settings"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_public_settings_defaults(self):
        response = self.client.get('/api/v1/settings/public/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['website_name'], 'Koshiro Japan Style Fashion')
        self.assertNotIn('debug_mode', response.data)

    def test_admin_update_settings(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.patch('/api/v1/admin/settings/', {'maintenance_mode': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(SiteSettings.load().maintenance_mode)
        self.assertEqual(SiteSettings.objects.count(), 1)
        self.assertTrue(ActivityLog.objects.filter(action='settings_update').exists())

    def test_customer_cannot_update_settings(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.patch('/api/v1/admin/settings/', {'maintenance_mode': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ActivityLogTests(TestCase):
    """Test activity log listing, stats and clearing"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        ActivityLog.objects.create(user=self.admin, action='create', model_name='Product', object_id='1')
        ActivityLog.objects.create(user=self.admin, action='delete', model_name='Product', object_id='2')
        old = ActivityLog.objects.create(user=None, action='login', model_name='User', object_id='3')
        ActivityLog.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=90))

    def test_list_logs_filtered(self):
        response = self.client.get('/api/v1/admin/activity/logs/', {'action': 'create'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['logs'][0]['user_email'], self.admin.email)

    def test_list_logs_by_user(self):
        response = self.client.get('/api/v1/admin/activity/logs/', {'user': self.admin.id})
        self.assertEqual(response.data['pagination']['total'], 2)
        response = self.client.get('/api/v1/admin/activity/logs/', {'user': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid user')

    def test_stats(self):
        response = self.client.get('/api/v1/admin/activity/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['by_action'], {'create': 1, 'delete': 1})

    def test_clear_old_logs(self):
        response = self.client.delete('/api/v1/admin/activity/logs/?older_than_days=30')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted'], 1)
        self.assertEqual(ActivityLog.objects.count(), 2)


class UtilsTests(TestCase):
    """Test request parsing, pagination and localisation helpers"""

    def test_parse_id(self):
        self.assertEqual(parse_id(' 12 '), 12)
        self.assertIsNone(parse_id('abc'))
        self.assertIsNone(parse_id('0'))
        self.assertIsNone(parse_id(None))

    def test_parse_decimal(self):
        self.assertEqual(parse_decimal('150000.50'), Decimal('150000.50'))
        self.assertIsNone(parse_decimal('NaN'))
        self.assertIsNone(parse_decimal('Infinity'))
        self.assertIsNone(parse_decimal('ten'))

    def test_parse_bool(self):
        self.assertTrue(parse_bool('true'))
        self.assertFalse(parse_bool('0'))
        self.assertIsNone(parse_bool(''))
        self.assertIsNone(parse_bool('maybe'))

    def test_parse_int_clamps(self):
        self.assertEqual(parse_int('500', 20, minimum=1, maximum=100), 100)
        self.assertEqual(parse_int('abc', 20, minimum=1), 20)
        self.assertEqual(parse_int('-3', 20, minimum=1), 1)

    def test_paginate_empty(self):
        from rest_framework.request import Request
        from rest_framework.test import APIRequestFactory
        from storefront.core.serializers import UserSerializer

        request = Request(APIRequestFactory().get('/', {'page': '3', 'limit': '500'}))
        payload = paginate(request, User.objects.none(), UserSerializer, key='users')
        self.assertEqual(payload['users'], [])
        self.assertEqual(payload['pagination'], {'page': 1, 'limit': 100, 'total': 0, 'pages': 0})

    def test_request_language(self):
        from rest_framework.request import Request
        from rest_framework.test import APIRequestFactory

        factory = APIRequestFactory()
        self.assertEqual(get_request_language(Request(factory.get('/', {'lang': 'ja'}))), 'ja')
        self.assertEqual(get_request_language(Request(factory.get('/', HTTP_ACCEPT_LANGUAGE='en-US,en;q=0.9'))), 'en')
        self.assertEqual(get_request_language(Request(factory.get('/', {'lang': 'fr'}))), 'vi')

    def test_localized_falls_back(self):
        product = TestDataFactory.create_product(name='Áo kimono', name_en='Kimono')
        self.assertEqual(localized(product, 'name', 'en'), 'Kimono')
        self.assertEqual(localized(product, 'name', 'ja'), 'Áo kimono')
        self.assertEqual(localized(product, 'name', 'vi'), 'Áo kimono')
