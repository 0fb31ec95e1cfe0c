"""Flat export rows for each entity type"""
from django.contrib.auth import get_user_model

from storefront.catalog.models import Category, Product
from storefront.core.utils import parse_bool, parse_date
from storefront.orders.models import Order

User = get_user_model()

LIST_SEPARATOR = ', '


def _join(values):
    return LIST_SEPARATOR.join(str(value) for value in (values or []) if value not in (None, ''))


def _iso(value):
    return value.isoformat() if value else ''


def _money(value):
    return str(value) if value is not None else ''


def _apply_common_filters(queryset, filters):
    is_active = parse_bool(filters.get('is_active'))
    if is_active is not None and hasattr(queryset.model, 'is_active'):
        queryset = queryset.filter(is_active=is_active)
    date_from = parse_date(filters.get('date_from'))
    date_to = parse_date(filters.get('date_to'))
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)
    return queryset


def user_rows(filters):
    queryset = _apply_common_filters(User.objects.all(), filters)
    if filters.get('status'):
        queryset = queryset.filter(status=filters['status'])
    if filters.get('role'):
        queryset = queryset.filter(role=filters['role'])
    for user in queryset.order_by('id'):
        yield {
            'id': user.id,
            'email': user.email,
            'name': user.name,
            'phone': user.phone,
            'address': user.address,
            'role': user.role,
            'status': user.status,
            'total_orders': user.total_orders,
            'total_spent': _money(user.total_spent),
            'last_active': _iso(user.last_active),
            'created_at': _iso(user.created_at),
        }


def product_rows(filters):
    queryset = _apply_common_filters(Product.objects.select_related('category'), filters)
    category = filters.get('category')
    if category:
        category = str(category)
        if category.isdigit():
            queryset = queryset.filter(category_id=int(category))
        else:
            queryset = queryset.filter(category__slug=category)
    for product in queryset.order_by('id'):
        yield {
            'id': product.id,
            'sku': product.sku or '',
            'name': product.name,
            'name_en': product.name_en,
            'name_ja': product.name_ja,
            'description': product.description,
            'description_en': product.description_en,
            'description_ja': product.description_ja,
            'price': _money(product.price),
            'sale_price': _money(product.sale_price),
            'original_price': _money(product.original_price),
            'category': product.category.name,
            'category_slug': product.category.slug,
            'images': _join(product.images),
            'sizes': _join(product.sizes),
            'colors': _join(product.colors),
            'tags': _join(product.tags),
            'stock': product.stock,
            'is_active': product.is_active,
            'is_featured': product.is_featured,
            'on_sale': product.on_sale,
            'is_new': product.is_new,
            'is_limited_edition': product.is_limited_edition,
            'is_best_seller': product.is_best_seller,
            'created_at': _iso(product.created_at),
        }


def _depth(category, parents):
    depth = 0
    seen = set()
    parent_id = category.parent_id
    while parent_id is not None and parent_id not in seen:
        seen.add(parent_id)
        depth += 1
        parent_id = parents.get(parent_id)
    return depth


def category_rows(filters):
    """Parents come before their children so the file can be imported as is"""
    parents = dict(Category.objects.values_list('id', 'parent_id'))
    queryset = _apply_common_filters(Category.objects.select_related('parent'), filters)
    categories = sorted(queryset, key=lambda c: (_depth(c, parents), c.sort_order, c.id))
    for category in categories:
        yield {
            'id': category.id,
            'name': category.name,
            'name_en': category.name_en,
            'name_ja': category.name_ja,
            'description': category.description,
            'description_en': category.description_en,
            'description_ja': category.description_ja,
            'slug': category.slug,
            'parent': category.parent.slug if category.parent else '',
            'image': category.image,
            'banner_image': category.banner_image,
            'sort_order': category.sort_order,
            'is_active': category.is_active,
            'is_featured': category.is_featured,
            'is_visible': category.is_visible,
            'display_type': category.display_type,
            'color': category.color,
            'icon': category.icon,
            'meta_title': category.meta_title,
            'meta_description': category.meta_description,
            'meta_keywords': category.meta_keywords,
            'product_count': category.product_count,
            'created_at': _iso(category.created_at),
        }


def _format_address(address):
    if not address:
        return ''
    parts = [address.get(key) for key in ('name', 'phone', 'address', 'district', 'city')]
    return _join(parts)


def order_rows(filters):
    queryset = _apply_common_filters(Order.objects.select_related('user').prefetch_related('items'), filters)
    if filters.get('status'):
        queryset = queryset.filter(status=filters['status'])
    if filters.get('payment_status'):
        queryset = queryset.filter(payment_status=filters['payment_status'])
    for order in queryset.order_by('id'):
        items = list(order.items.all())
        yield {
            'order_number': order.order_number,
            'customer_name': order.user.name,
            'customer_email': order.user.email,
            'status': order.status,
            'payment_status': order.payment_status,
            'payment_method': order.payment_method,
            'shipping_method': order.shipping_method,
            'subtotal': _money(order.subtotal),
            'shipping_cost': _money(order.shipping_cost),
            'total_amount': _money(order.total_amount),
            'items_count': sum(item.quantity for item in items),
            'items': _join(f'{item.name} x{item.quantity}' for item in items),
            'shipping_address': _format_address(order.shipping_address),
            'notes': order.notes,
            'created_at': _iso(order.created_at),
        }


EXPORTERS = {
    'users': user_rows,
    'products': product_rows,
    'categories': category_rows,
    'orders': order_rows,
}


def export_rows(data_type, filters=None):
    return list(EXPORTERS[data_type](filters or {}))
