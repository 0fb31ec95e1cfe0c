"""
Row-by-row imports validated with the API serializers.

A failing row is reported as {row, error} and never aborts the batch. Each
row runs in its own savepoint. Blank cells count as "not provided".
"""
import logging
import re

from django.contrib.auth import get_user_model
from django.db import transaction

from storefront.catalog.models import Category
from storefront.catalog.serializers import CategorySerializer, ProductSerializer
from storefront.core.serializers import AdminUserSerializer

logger = logging.getLogger(__name__)
User = get_user_model()

LIST_FIELDS = ('images', 'sizes', 'colors', 'tags')
ROW_NUMBER_OFFSET = 1


class RowError(Exception):
    pass


def _snake_case(key):
    """'nameEn', 'Name En' and 'name_en' all become 'name_en'"""
    key = re.sub(r'[\s-]+', '_', str(key).strip())
    return re.sub(r'([a-z0-9])([A-Z])', r'\1_\2', key).lower()


def clean_row(row):
    """snake_case keys, stripped strings, blank cells dropped"""
    cleaned = {}
    for key, value in row.items():
        if key is None:
            continue
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == '':
            continue
        cleaned[_snake_case(key)] = value
    return cleaned


def split_list(value):
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [part.strip() for part in str(value).split(',') if part.strip()]


def format_errors(errors):
    """Flatten serializer errors into one line"""
    if isinstance(errors, dict):
        parts = []
        for field, messages in errors.items():
            text = format_errors(messages)
            parts.append(text if field == 'non_field_errors' else f'{field}: {text}')
        return '; '.join(parts)
    if isinstance(errors, (list, tuple)):
        return ', '.join(format_errors(message) for message in errors)
    return str(errors)


def resolve_category(value):
    """Category by id, slug or name (case-insensitive)"""
    value = str(value).strip()
    category = None
    if value.isdigit():
        category = Category.objects.filter(pk=int(value)).first()
    if category is None:
        category = Category.objects.filter(slug=value.lower()).first()
    if category is None:
        category = Category.objects.filter(name__iexact=value).first()
    if category is None:
        category = Category.objects.filter(name_en__iexact=value).first()
    if category is None:
        raise RowError(f'Category not found: {value}')
    return category


def _save(serializer):
    if not serializer.is_valid():
        raise RowError(format_errors(serializer.errors))
    return serializer.save()


def import_user(row, update_existing):
    email = str(row.get('email', '')).lower()
    existing = User.objects.filter(email__iexact=email).first() if email and update_existing else None
    if existing is not None:
        _save(AdminUserSerializer(existing, data=row, partial=True))
        return 'updated'
    _save(AdminUserSerializer(data=row))
    return 'created'


def import_product(row, update_existing):
    category_ref = row.pop('category_id', None) or row.pop('category_slug', None) or row.pop('category', None)
    if category_ref is not None:
        row['category_id'] = resolve_category(category_ref).pk
    for field in LIST_FIELDS:
        if field in row:
            row[field] = split_list(row[field])
    if 'sku' in row:
        row['sku'] = str(row['sku'])

    existing = None
    if update_existing and row.get('sku'):
        existing = ProductSerializer.Meta.model.objects.filter(sku=row['sku']).first()
    if existing is not None:
        _save(ProductSerializer(existing, data=row, partial=True))
        return 'updated'
    _save(ProductSerializer(data=row))
    return 'created'


def import_category(row, update_existing):
    parent_ref = row.pop('parent_id', None) or row.pop('parent_slug', None) or row.pop('parent', None)
    if parent_ref is not None:
        row['parent_id'] = resolve_category(parent_ref).pk
    if 'slug' in row:
        row['slug'] = str(row['slug']).lower()

    existing = None
    if update_existing and row.get('slug'):
        existing = Category.objects.filter(slug=row['slug']).first()
    if existing is not None:
        _save(CategorySerializer(existing, data=row, partial=True))
        return 'updated'
    _save(CategorySerializer(data=row))
    return 'created'


IMPORTERS = {
    'users': import_user,
    'products': import_product,
    'categories': import_category,
}


def import_rows(data_type, rows, update_existing=False):
    """
    Import `rows` of `data_type`.
    Returns {created, updated, errors, total, error_details}.
    """
    importer = IMPORTERS[data_type]
    result = {'created': 0, 'updated': 0, 'errors': 0, 'total': len(rows), 'error_details': []}

    for index, raw in enumerate(rows, start=ROW_NUMBER_OFFSET):
        try:
            if not isinstance(raw, dict):
                raise RowError('Row must be an object')
            with transaction.atomic():
                outcome = importer(clean_row(raw), update_existing)
            result[outcome] += 1
        except RowError as e:
            result['errors'] += 1
            result['error_details'].append({'row': index, 'error': str(e)})
        except Exception as e:
            logger.warning(f"Unexpected error importing {data_type} row {index}: {e}")
            result['errors'] += 1
            result['error_details'].append({'row': index, 'error': str(e)})

    return result
