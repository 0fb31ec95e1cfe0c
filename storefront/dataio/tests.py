"""
Test suite for data export / import
"""
import json
import os
import shutil
import tempfile
from decimal import Decimal
from io import BytesIO, StringIO

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from openpyxl import Workbook, load_workbook
from rest_framework import status

from storefront.catalog.models import Category, Product
from storefront.core.models import User
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.dataio.formats import FormatError, normalize_format, read_csv, read_json, read_xlsx, write_csv
from storefront.dataio.importers import clean_row, import_rows
from storefront.dataio.models import DataTransferJob
from storefront.dataio.services import DataTransferError, run_export, run_import


class FormatTests(TestCase):
    """Test the file codecs"""

    def test_normalize_format(self):
        self.assertEqual(normalize_format('Excel'), 'xlsx')
        self.assertEqual(normalize_format('.CSV'), 'csv')
        with self.assertRaises(FormatError):
            normalize_format('pdf')

    def test_csv_has_bom_and_union_headers(self):
        content = write_csv([{'a': 1}, {'a': 2, 'b': None}])
        self.assertTrue(content.startswith(b'\xef\xbb\xbf'))
        self.assertEqual(content.decode('utf-8-sig').splitlines()[0], 'a,b')

    def test_read_csv_skips_blank_lines(self):
        rows = read_csv('name,price\nKimono,100\n,\n'.encode('utf-8-sig'))
        self.assertEqual(rows, [{'name': 'Kimono', 'price': '100'}])

    def test_read_json_shapes(self):
        self.assertEqual(read_json('[{"a": 1}]'), [{'a': 1}])
        self.assertEqual(read_json('{"data": [{"a": 1}]}'), [{'a': 1}])
        with self.assertRaises(FormatError):
            read_json('{"a": 1}')
        with self.assertRaises(FormatError):
            read_json('not json')

    def test_read_xlsx(self):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(['SKU', 'Name', 'Stock', None])
        sheet.append(['KM-01', 'Kimono lụa', 5, 'ignored'])
        sheet.append([None, None, None, None])
        sheet.append(['KM-02', 'Obi', 0, None])
        buffer = BytesIO()
        workbook.save(buffer)

        rows = read_xlsx(buffer.getvalue())
        self.assertEqual(rows, [
            {'SKU': 'KM-01', 'Name': 'Kimono lụa', 'Stock': 5},
            {'SKU': 'KM-02', 'Name': 'Obi', 'Stock': 0},
        ])

    def test_read_xlsx_rejects_other_content(self):
        with self.assertRaises(FormatError):
            read_xlsx(b'sku,name\n')

    def test_clean_row(self):
        row = clean_row({'Name En': ' Kimono ', 'categorySlug': 'ao', 'SKU': 'A1', 'price': '', 'stock': None})
        self.assertEqual(row, {'name_en': 'Kimono', 'category_slug': 'ao', 'sku': 'A1'})


class ImportServiceTests(TestCase):
    """Test row-level import behaviour"""

    def setUp(self):
        self.category = TestDataFactory.create_category(name='Kimono', slug='kimono')

    def test_products_created_and_errors_reported(self):
        result = import_rows('products', [
            {'sku': 'KM-01', 'name': 'Kimono lụa', 'price': '500000', 'stock': '5',
             'category_slug': 'kimono', 'sizes': 'S, M'},
            {'sku': 'KM-02', 'name': 'Thiếu giá', 'category': 'Kimono'},
            {'sku': 'KM-03', 'name': 'Sai danh mục', 'price': '1000', 'category': 'khong-co'},
        ])
        self.assertEqual(result['created'], 1)
        self.assertEqual(result['errors'], 2)
        self.assertEqual([d['row'] for d in result['error_details']], [2, 3])
        self.assertIn('price', result['error_details'][0]['error'])
        self.assertEqual(result['error_details'][1]['error'], 'Category not found: khong-co')
        product = Product.objects.get(sku='KM-01')
        self.assertEqual(product.sizes, ['S', 'M'])
        self.assertEqual(product.category, self.category)

    def test_update_existing_by_sku(self):
        TestDataFactory.create_product(category=self.category, sku='KM-01', price=Decimal('100000'))
        rows = [{'sku': 'KM-01', 'name': 'Kimono mới', 'price': '200000', 'category_id': str(self.category.id)}]

        result = import_rows('products', rows)
        self.assertEqual(result['errors'], 1)

        result = import_rows('products', rows, update_existing=True)
        self.assertEqual(result['updated'], 1)
        self.assertEqual(Product.objects.get(sku='KM-01').price, Decimal('200000'))

    def test_users(self):
        TestDataFactory.create_user(email='taken@example.com', name='Old')
        result = import_rows('users', [
            {'email': 'New@Example.com', 'name': 'New', 'role': 'customer'},
            {'email': 'not-an-email'},
            {'email': 'taken@example.com', 'name': 'Renamed'},
        ])
        self.assertEqual(result['created'], 1)
        self.assertEqual(result['errors'], 2)
        self.assertFalse(User.objects.get(email='new@example.com').has_usable_password())

        result = import_rows('users', [{'email': 'taken@example.com', 'name': 'Renamed'}], update_existing=True)
        self.assertEqual(result['updated'], 1)
        self.assertEqual(User.objects.get(email='taken@example.com').name, 'Renamed')

    def test_categories_with_parent(self):
        result = import_rows('categories', [
            {'name': 'Yukata', 'slug': 'Yukata', 'parent': 'kimono'},
            {'name': 'Obi', 'parent_slug': 'yukata'},
        ])
        self.assertEqual(result['created'], 2)
        yukata = Category.objects.get(slug='yukata')
        self.assertEqual(yukata.parent, self.category)
        self.assertEqual(Category.objects.get(slug='obi').parent, yukata)

    def test_non_object_row(self):
        result = import_rows('categories', ['oops'])
        self.assertEqual(result['error_details'], [{'row': 1, 'error': 'Row must be an object'}])

    def test_run_import_records_job_and_counts(self):
        job, result = run_import('products', [
            {'sku': 'KM-09', 'name': 'Haori', 'price': '300000', 'category_slug': 'kimono'},
        ])
        self.assertEqual(result['created'], 1)
        self.assertEqual(job.status, DataTransferJob.STATUS_COMPLETED)
        self.assertEqual(job.created_count, 1)
        self.category.refresh_from_db()
        self.assertEqual(self.category.product_count, 1)

    def test_run_import_rejects_orders(self):
        with self.assertRaises(DataTransferError):
            run_import('orders', [])

    @override_settings(DATA_IMPORT_MAX_ROWS=2)
    def test_run_import_row_limit(self):
        with self.assertRaises(DataTransferError):
            run_import('categories', [{'name': str(i)} for i in range(3)])
        self.assertFalse(DataTransferJob.objects.exists())


class ExportServiceTests(TestCase):
    """Test export rows and file names"""

    def test_customers_alias_and_filename(self):
        TestDataFactory.create_user(email='a@example.com')
        job, content, filename, content_type = run_export('customers', 'json')
        self.assertEqual(job.data_type, 'users')
        self.assertTrue(filename.startswith('users_'))
        self.assertTrue(filename.endswith('.json'))
        self.assertEqual(content_type, 'application/json')
        self.assertEqual(json.loads(content)[0]['email'], 'a@example.com')

    def test_product_filters(self):
        kimono = TestDataFactory.create_category(slug='kimono')
        TestDataFactory.create_product(category=kimono, sku='A', tags=['silk', 'summer'])
        TestDataFactory.create_product(sku='B')
        TestDataFactory.create_product(category=kimono, sku='C', is_active=False)
        _, content, _, _ = run_export('products', 'json', filters={'category': 'kimono', 'is_active': 'true'})
        rows = json.loads(content)
        self.assertEqual([row['sku'] for row in rows], ['A'])
        self.assertEqual(rows[0]['tags'], 'silk, summer')
        self.assertEqual(rows[0]['category_slug'], 'kimono')

    def test_orders(self):
        order = TestDataFactory.create_order(quantity=2)
        _, content, _, _ = run_export('orders', 'json', filters={'status': 'pending'})
        rows = json.loads(content)
        self.assertEqual(rows[0]['order_number'], order.order_number)
        self.assertEqual(rows[0]['items_count'], 2)

    def test_invalid_type(self):
        with self.assertRaises(DataTransferError):
            run_export('widgets', 'csv')


class DataTransferAPITests(TestCase):
    """Test the export / import endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.category = TestDataFactory.create_category(name='Kimono', slug='kimono')

    def test_customer_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/admin/data/export/', {'type': 'users'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_export_csv_download(self):
        TestDataFactory.create_product(category=self.category, sku='KM-01', name='Kimono lụa')
        response = self.client.get('/api/v1/admin/data/export/', {'type': 'products', 'file_format': 'csv'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attachment; filename="products_', response['Content-Disposition'])
        self.assertTrue(response['Content-Type'].startswith('text/csv'))
        self.assertIn('Kimono lụa', response.content.decode('utf-8-sig'))
        job = DataTransferJob.objects.get(pk=response['X-Export-Job'])
        self.assertEqual(job.total_rows, 1)
        self.assertEqual(job.created_by, self.admin)

    def test_export_xlsx_post(self):
        TestDataFactory.create_product(category=self.category, sku='KM-01')
        response = self.client.post('/api/v1/admin/data/export/', {
            'type': 'products', 'format': 'excel', 'filters': {'category': self.category.id},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        sheet = load_workbook(BytesIO(response.content)).active
        headers = [cell.value for cell in sheet[1]]
        self.assertIn('sku', headers)
        self.assertEqual(sheet.cell(row=2, column=headers.index('sku') + 1).value, 'KM-01')

    def test_export_invalid_type(self):
        response = self.client.get('/api/v1/admin/data/export/', {'type': 'widgets'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid export type: widgets')

    def test_import_json_body(self):
        response = self.client.post('/api/v1/admin/data/import/', {
            'type': 'categories',
            'data': [{'name': 'Yukata', 'slug': 'yukata'}, {'name': 'Dup', 'slug': 'kimono'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Import completed')
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['errors'], 1)
        self.assertEqual(response.data['error_details'][0]['row'], 2)
        job = DataTransferJob.objects.get(pk=response.data['job_id'])
        self.assertEqual(job.direction, 'import')
        self.assertEqual(job.error_count, 1)

    def test_import_json_update_existing_option(self):
        response = self.client.post('/api/v1/admin/data/import/', {
            'type': 'categories',
            'data': [{'name': 'Kimono truyền thống', 'slug': 'kimono'}],
            'options': {'updateExisting': True},
        }, format='json')
        self.assertEqual(response.data['updated'], 1)
        self.category.refresh_from_db()
        self.assertEqual(self.category.name, 'Kimono truyền thống')

    def test_import_csv_upload(self):
        content = (
            'SKU,Name,Name En,Price,Stock,Category Slug,Sizes\n'
            'KM-01,Kimono lụa,Silk kimono,500000,5,kimono,"S, M"\n'
            'KM-02,Thiếu giá,,,,kimono,\n'
        ).encode('utf-8-sig')
        upload = SimpleUploadedFile('products.csv', content, content_type='text/csv')
        response = self.client.post('/api/v1/admin/data/import/', {'type': 'products', 'file': upload},
                                    format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['errors'], 1)
        product = Product.objects.get(sku='KM-01')
        self.assertEqual(product.name_en, 'Silk kimono')
        self.assertEqual(product.sizes, ['S', 'M'])
        self.assertEqual(DataTransferJob.objects.get(pk=response.data['job_id']).filename, 'products.csv')

    def test_import_upload_with_update_flag(self):
        TestDataFactory.create_product(category=self.category, sku='KM-01', stock=1)
        content = 'sku,stock\nKM-01,9\n'.encode('utf-8')
        upload = SimpleUploadedFile('stock.csv', content, content_type='text/csv')
        response = self.client.post('/api/v1/admin/data/import/', {
            'type': 'products', 'file': upload, 'update_existing': 'true',
        }, format='multipart')
        self.assertEqual(response.data['updated'], 1)
        self.assertEqual(Product.objects.get(sku='KM-01').stock, 9)

    def test_import_unsupported_file(self):
        upload = SimpleUploadedFile('products.pdf', b'%PDF', content_type='application/pdf')
        response = self.client.post('/api/v1/admin/data/import/', {'type': 'products', 'file': upload},
                                    format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Unsupported format: pdf')

    def test_import_requires_data(self):
        response = self.client.post('/api/v1/admin/data/import/', {'type': 'products'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('data', response.data)

    def test_import_orders_rejected(self):
        response = self.client.post('/api/v1/admin/data/import/', {'type': 'orders', 'data': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid import type: orders')

    def test_jobs(self):
        run_export('categories', 'csv', user=self.admin)
        run_import('categories', [{'name': 'Haori'}], user=self.admin)
        response = self.client.get('/api/v1/admin/data/jobs/', {'direction': 'import'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)
        job_id = response.data['jobs'][0]['id']
        self.assertEqual(response.data['jobs'][0]['created_by_email'], self.admin.email)

        response = self.client.delete(f'/api/v1/admin/data/jobs/{job_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(DataTransferJob.objects.count(), 1)


class RoundTripTests(TestCase):
    """Test exported files import back into an emptied catalog"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_categories_export_parents_first(self):
        # The child sorts before its parent by sort_order alone
        parent = TestDataFactory.create_category(name='Kimono', slug='kimono', sort_order=5)
        TestDataFactory.create_category(name='Yukata', slug='yukata', parent=parent, sort_order=1)
        TestDataFactory.create_category(name='Obi', slug='obi', sort_order=3)

        _, content, _, _ = run_export('categories', 'json')
        rows = json.loads(content)
        self.assertEqual([row['slug'] for row in rows], ['obi', 'kimono', 'yukata'])

        Category.objects.filter(parent__isnull=False).delete()
        Category.objects.all().delete()
        _, result = run_import('categories', rows)
        self.assertEqual(result['created'], 3)
        self.assertEqual(result['errors'], 0)
        self.assertEqual(Category.objects.get(slug='yukata').parent.slug, 'kimono')

    def test_products_xlsx_upload(self):
        category = TestDataFactory.create_category(name='Kimono', slug='kimono')
        TestDataFactory.create_product(category=category, sku='KM-01', name='Kimono lụa',
                                       price=Decimal('500000'), stock=4, sizes=['S', 'M'], tags=['silk'])

        export = self.client.get('/api/v1/admin/data/export/', {'type': 'products', 'file_format': 'xlsx'})
        self.assertEqual(export.status_code, status.HTTP_200_OK)
        Product.objects.all().delete()

        upload = SimpleUploadedFile(export['Content-Disposition'].split('"')[1], export.content)
        response = self.client.post('/api/v1/admin/data/import/', {'type': 'products', 'file': upload},
                                    format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['errors'], 0)

        product = Product.objects.get(sku='KM-01')
        self.assertEqual(product.name, 'Kimono lụa')
        self.assertEqual(product.price, Decimal('500000'))
        self.assertEqual(product.stock, 4)
        self.assertEqual(product.sizes, ['S', 'M'])
        self.assertEqual(product.category, category)
        job = DataTransferJob.objects.get(pk=response.data['job_id'])
        self.assertEqual(job.file_format, 'xlsx')


class DataTransferCommandTests(TestCase):
    """Test the export_data / import_data management commands"""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir)

    def test_export_command(self):
        TestDataFactory.create_category(slug='kimono')
        out = StringIO()
        call_command('export_data', 'categories', '--format', 'json', '--output-dir', self.tmpdir, stdout=out)
        files = os.listdir(self.tmpdir)
        self.assertEqual(len(files), 1)
        with open(os.path.join(self.tmpdir, files[0]), encoding='utf-8') as f:
            self.assertEqual(json.load(f)[0]['slug'], 'kimono')
        self.assertIn('Exported 1 categories rows', out.getvalue())

    def test_import_command(self):
        path = os.path.join(self.tmpdir, 'categories.json')
        with open(path, 'w', encoding='utf-8') as f:
            json.dump({'data': [{'name': 'Kimono', 'slug': 'kimono'}, {'name': 'Obi', 'parent': 'nowhere'}]}, f)
        out = StringIO()
        call_command('import_data', 'categories', path, stdout=out)
        self.assertIn('Created: 1', out.getvalue())
        self.assertIn('row 2: Category not found: nowhere', out.getvalue())

    def test_import_command_missing_file(self):
        with self.assertRaises(CommandError):
            call_command('import_data', 'categories', os.path.join(self.tmpdir, 'missing.csv'))
