import django_filters
from django.db.models import Q
from .models import Product, Category

# Accepted ?sort_by= values (camelCase aliases come from the storefront SPA)
SORT_FIELDS = {
    'created_at': 'created_at',
    'createdAt': 'created_at',
    'updated_at': 'updated_at',
    'updatedAt': 'updated_at',
    'price': 'price',
    'name': 'name',
    'stock': 'stock',
}


def product_search_q(term):
    """Match a term against every language's name/description, tags and SKU"""
    return (
        Q(name__icontains=term) |
        Q(name_en__icontains=term) |
        Q(name_ja__icontains=term) |
        Q(description__icontains=term) |
        Q(description_en__icontains=term) |
        Q(description_ja__icontains=term) |
        Q(sku__icontains=term) |
        Q(tags__icontains=term)
    )


def apply_product_ordering(queryset, sort_by=None, sort_order=None):
    field = SORT_FIELDS.get(sort_by or 'created_at', 'created_at')
    prefix = '' if (sort_order or 'desc').lower() == 'asc' else '-'
    return queryset.order_by(f'{prefix}{field}', f'{prefix}id')


class ProductFilter(django_filters.FilterSet):
    """Storefront and admin product filtering"""
    category = django_filters.NumberFilter(method='filter_category')
    category_slug = django_filters.CharFilter(method='filter_category_slug')
    search = django_filters.CharFilter(method='filter_search')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    is_active = django_filters.BooleanFilter(field_name='is_active')
    is_featured = django_filters.BooleanFilter(field_name='is_featured')
    on_sale = django_filters.BooleanFilter(field_name='on_sale')
    is_new = django_filters.BooleanFilter(field_name='is_new')
    is_limited_edition = django_filters.BooleanFilter(field_name='is_limited_edition')
    is_best_seller = django_filters.BooleanFilter(field_name='is_best_seller')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock')
    size = django_filters.CharFilter(method='filter_size')
    color = django_filters.CharFilter(method='filter_color')

    class Meta:
        model = Product
        fields = ['category', 'is_active', 'is_featured', 'on_sale']

    def filter_category(self, queryset, name, value):
        """Products of a category and all of its subcategories"""
        return queryset.filter(category_id__in=self._with_descendants([int(value)]))

    def filter_category_slug(self, queryset, name, value):
        root_ids = list(Category.objects.filter(slug=value.lower()).values_list('id', flat=True))
        return queryset.filter(category_id__in=self._with_descendants(root_ids))

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(product_search_q(value))

    def filter_in_stock(self, queryset, name, value):
        return queryset.filter(stock__gt=0) if value else queryset.filter(stock=0)

    def filter_size(self, queryset, name, value):
        return self._filter_json_list(queryset, 'sizes', value)

    def filter_color(self, queryset, name, value):
        return self._filter_json_list(queryset, 'colors', value)

    @staticmethod
    def _filter_json_list(queryset, field, value):
        # JSON containment lookups are not available on every database backend
        wanted = {v.strip().lower() for v in value.split(',') if v.strip()}
        if not wanted:
            return queryset
        ids = [
            pk for pk, values in queryset.values_list('id', field)
            if wanted & {str(v).lower() for v in (values or [])}
        ]
        return queryset.filter(id__in=ids)

    @staticmethod
    def _with_descendants(root_ids):
        ids = set(root_ids)
        frontier = set(root_ids)
        while frontier:
            children = set(Category.objects.filter(parent_id__in=frontier).values_list('id', flat=True))
            frontier = children - ids
            ids |= children
        return ids
