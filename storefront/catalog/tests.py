"""
Test suite for the catalog: categories, products, filtering and caching
"""
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from storefront.catalog.models import Category, Product
from storefront.catalog.services import build_category_tree, refresh_all_category_counts
from storefront.catalog.serializers import CategorySerializer
from storefront.core.models import ActivityLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class CategoryModelTests(TestCase):
    """Test category helpers"""

    def test_slug_is_lowercased(self):
        category = TestDataFactory.create_category(slug='Kimono-Nam')
        self.assertEqual(category.slug, 'kimono-nam')

    def test_ancestor_ids(self):
        root = TestDataFactory.create_category()
        middle = TestDataFactory.create_category(parent=root)
        leaf = TestDataFactory.create_category(parent=middle)
        self.assertEqual(leaf.get_ancestor_ids(), [middle.id, root.id])

    def test_build_tree(self):
        root = TestDataFactory.create_category(name='Root', sort_order=1)
        child = TestDataFactory.create_category(name='Child', parent=root)
        orphan = TestDataFactory.create_category(name='Orphan', parent=TestDataFactory.create_category())
        tree = build_category_tree([root, child, orphan], CategorySerializer, {'lang': 'vi'})
        self.assertEqual(len(tree), 2)
        self.assertEqual(tree[0]['id'], root.id)
        self.assertEqual(tree[0]['children'][0]['id'], child.id)

    def test_refresh_all_counts(self):
        category = TestDataFactory.create_category()
        TestDataFactory.create_product(category=category)
        TestDataFactory.create_product(category=category)
        Category.objects.filter(pk=category.pk).update(product_count=0)
        self.assertEqual(refresh_all_category_counts(), 1)
        category.refresh_from_db()
        self.assertEqual(category.product_count, 2)


class ProductModelTests(TestCase):
    """Test product pricing helpers"""

    def test_effective_price(self):
        product = TestDataFactory.create_product(price=Decimal('200000'), sale_price=Decimal('150000'))
        self.assertEqual(product.effective_price, Decimal('200000'))
        product.on_sale = True
        self.assertEqual(product.effective_price, Decimal('150000'))

    def test_in_stock(self):
        self.assertFalse(TestDataFactory.create_product(stock=0).in_stock)


class CategoryAPITests(TestCase):
    """Test category endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.active = TestDataFactory.create_category(name='Kimono', slug='kimono', name_en='Kimono EN')
        self.hidden = TestDataFactory.create_category(name='Hidden', slug='hidden', is_active=False)

    def test_public_list_hides_inactive(self):
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        slugs = [c['slug'] for c in response.data['categories']]
        self.assertIn('kimono', slugs)
        self.assertNotIn('hidden', slugs)

    def test_admin_list_includes_inactive(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/categories/')
        slugs = [c['slug'] for c in response.data['categories']]
        self.assertIn('hidden', slugs)

    def test_localized_display_name(self):
        response = self.client.get('/api/v1/categories/slug/KIMONO/', {'lang': 'en'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['display_name'], 'Kimono EN')

    def test_inactive_detail_not_found_for_public(self):
        response = self.client.get(f'/api/v1/categories/{self.hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_requires_admin(self):
        response = self.client.post('/api/v1/categories/', {'name': 'Yukata'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/categories/', {'name': 'Yukata'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_generates_slug(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/categories/', {
            'name': 'Áo Yukata', 'name_en': 'Summer Yukata',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category']['slug'], 'summer-yukata')
        self.assertTrue(ActivityLog.objects.filter(action='create', model_name='Category').exists())

    def test_create_duplicate_slug(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/categories/', {'name': 'Again', 'slug': 'kimono'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('slug', response.data)

    def test_blank_slug_on_update_is_derived_from_name(self):
        twin = TestDataFactory.create_category(name='Kimono', name_en='Kimono EN', slug='kimono-2')
        self.client.authenticate_user(self.admin)

        response = self.client.patch(f'/api/v1/categories/{self.active.id}/', {'slug': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.active.refresh_from_db()
        self.assertEqual(self.active.slug, 'kimono-en')

        response = self.client.patch(f'/api/v1/categories/{twin.id}/', {'slug': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('slug', response.data)
        twin.refresh_from_db()
        self.assertEqual(twin.slug, 'kimono-2')

    def test_blank_slug_without_latin_name_rejected(self):
        category = TestDataFactory.create_category(name='着物', slug='kimono-ja')
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/categories/{category.id}/', {'slug': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Category.objects.get(pk=category.pk).slug, 'kimono-ja')

    def test_filter_by_parent(self):
        child = TestDataFactory.create_category(parent=self.active)
        response = self.client.get('/api/v1/categories/', {'parent': self.active.id})
        self.assertEqual([c['id'] for c in response.data['categories']], [child.id])
        response = self.client.get('/api/v1/categories/', {'parent': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid parent')

    def test_cannot_move_under_own_child(self):
        child = TestDataFactory.create_category(parent=self.active)
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/categories/{self.active.id}/', {'parent_id': child.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('parent_id', response.data)

    def test_delete_with_products_rejected(self):
        TestDataFactory.create_product(category=self.active)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/categories/{self.active.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Category.objects.filter(pk=self.active.pk).exists())

    def test_delete_with_children_rejected(self):
        TestDataFactory.create_category(parent=self.active)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/categories/{self.active.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_empty_category(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/categories/{self.hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Category.objects.filter(pk=self.hidden.pk).exists())

    def test_tree_is_rebuilt_after_change(self):
        """Test the cached tree is invalidated when a category is added"""
        response = self.client.get('/api/v1/categories/tree/')
        self.assertEqual(len(response.data['categories']), 1)

        TestDataFactory.create_category(name='Child', parent=self.active)
        response = self.client.get('/api/v1/categories/tree/')
        self.assertEqual(len(response.data['categories']), 1)
        self.assertEqual(len(response.data['categories'][0]['children']), 1)

    def test_category_products(self):
        TestDataFactory.create_product(category=self.active)
        TestDataFactory.create_product(category=self.active, is_active=False)
        response = self.client.get(f'/api/v1/categories/{self.active.id}/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['category']['id'], self.active.id)

    def test_product_count_matches_public_listing(self):
        TestDataFactory.create_product(category=self.active)
        TestDataFactory.create_product(category=self.active, is_active=False)
        self.assertEqual(self.active.refresh_product_count(), 1)
        response = self.client.get(f'/api/v1/categories/{self.active.id}/products/')
        self.assertEqual(response.data['pagination']['total'], self.active.product_count)


class ProductAPITests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.parent = TestDataFactory.create_category(slug='ao')
        self.category = TestDataFactory.create_category(slug='kimono', parent=self.parent)
        self.kimono = TestDataFactory.create_product(
            category=self.category, name='Kimono lụa', name_en='Silk kimono', price=Decimal('500000'),
            sizes=['S', 'M'], colors=['Red'], tags=['silk'], is_featured=True,
        )
        self.obi = TestDataFactory.create_product(
            category=self.parent, name='Đai obi', price=Decimal('150000'), stock=0, colors=['Black'],
        )
        self.draft = TestDataFactory.create_product(category=self.category, name='Draft', is_active=False)

    def test_public_list_hides_inactive(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = {p['id'] for p in response.data['products']}
        self.assertEqual(ids, {self.kimono.id, self.obi.id})

    def test_filter_category_includes_descendants(self):
        response = self.client.get('/api/v1/products/', {'category': self.parent.id})
        self.assertEqual(response.data['pagination']['total'], 2)
        response = self.client.get('/api/v1/products/', {'category_slug': 'kimono'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.kimono.id])

    def test_filter_price_stock_and_options(self):
        response = self.client.get('/api/v1/products/', {'min_price': '200000'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.kimono.id])
        response = self.client.get('/api/v1/products/', {'in_stock': 'false'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.obi.id])
        response = self.client.get('/api/v1/products/', {'size': 'm'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.kimono.id])
        response = self.client.get('/api/v1/products/', {'color': 'black,blue'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.obi.id])

    def test_sort_by_price(self):
        response = self.client.get('/api/v1/products/', {'sort_by': 'price', 'sort_order': 'asc'})
        self.assertEqual([p['id'] for p in response.data['products']], [self.obi.id, self.kimono.id])

    def test_search(self):
        response = self.client.get('/api/v1/products/search/', {'q': 'silk'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['products'][0]['id'], self.kimono.id)

    def test_search_requires_query(self):
        response = self.client.get('/api/v1/products/search/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_featured(self):
        response = self.client.get('/api/v1/products/featured/')
        self.assertEqual([p['id'] for p in response.data['products']], [self.kimono.id])

    def test_featured_cache_invalidated_on_update(self):
        self.client.get('/api/v1/products/featured/')
        self.obi.is_featured = True
        self.obi.save()
        response = self.client.get('/api/v1/products/featured/')
        self.assertEqual(len(response.data['products']), 2)

    def test_inactive_detail_hidden_from_public(self):
        response = self.client.get(f'/api/v1/products/{self.draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.client.authenticate_user(self.admin)
        response = self.client.get(f'/api/v1/products/{self.draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_related(self):
        other = TestDataFactory.create_product(category=self.category)
        response = self.client.get(f'/api/v1/products/{self.kimono.id}/related/')
        self.assertEqual([p['id'] for p in response.data['products']], [other.id])

    def test_create_product_updates_count(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/products/', {
            'name': 'Yukata', 'price': '300000', 'stock': 5, 'category_id': self.category.id,
            'sku': '  YK-01 ', 'sizes': ['M'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['product']['sku'], 'YK-01')
        self.category.refresh_from_db()
        self.assertEqual(self.category.product_count, 2)

    def test_create_unknown_category(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/products/', {
            'name': 'Yukata', 'price': '300000', 'category_id': 99999,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category_id', response.data)

    def test_sale_price_validation(self):
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/products/{self.kimono.id}/', {'on_sale': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(f'/api/v1/products/{self.kimono.id}/', {
            'on_sale': True, 'sale_price': '600000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(f'/api/v1/products/{self.kimono.id}/', {
            'on_sale': True, 'sale_price': '450000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['product']['effective_price'], '450000.00')

    def test_move_product_updates_both_counts(self):
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/products/{self.obi.id}/', {'category_id': self.category.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.parent.refresh_from_db()
        self.category.refresh_from_db()
        self.assertEqual(self.parent.product_count, 0)
        self.assertEqual(self.category.product_count, 2)

    def test_customer_cannot_delete(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.delete(f'/api/v1/products/{self.kimono.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_product(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/products/{self.obi.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.filter(pk=self.obi.pk).exists())

    def test_refresh_counts_endpoint(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/admin/catalog/refresh-counts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.category.refresh_from_db()
        self.assertEqual(self.category.product_count, 1)


class UpdateProductCountsCommandTests(TestCase):
    """Test the update_product_counts management command"""

    def test_command(self):
        category = TestDataFactory.create_category(slug='haori')
        TestDataFactory.create_product(category=category)
        out = StringIO()
        call_command('update_product_counts', '--verbose-list', stdout=out)
        self.assertIn('haori: 1', out.getvalue())
