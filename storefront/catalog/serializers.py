from django.utils.text import slugify
from rest_framework import serializers

from storefront.core.utils import localized
from .models import Category, Product


class LocalizedFieldsMixin:
    """Adds display_name / display_description resolved for context['lang']"""

    def get_display_name(self, obj):
        return localized(obj, 'name', self.context.get('lang', 'vi'))

    def get_display_description(self, obj):
        return localized(obj, 'description', self.context.get('lang', 'vi'))


class CategorySummarySerializer(LocalizedFieldsMixin, serializers.ModelSerializer):
    display_name = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'name_en', 'name_ja', 'display_name', 'slug']


class CategorySerializer(LocalizedFieldsMixin, serializers.ModelSerializer):
    display_name = serializers.SerializerMethodField()
    display_description = serializers.SerializerMethodField()
    parent_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), source='parent', allow_null=True, required=False,
        error_messages={'does_not_exist': 'Parent category not found'}
    )
    slug = serializers.SlugField(max_length=200, required=False, allow_blank=True)

    class Meta:
        model = Category
        fields = ['id', 'name', 'name_en', 'name_ja', 'display_name',
                  'description', 'description_en', 'description_ja', 'display_description',
                  'slug', 'image', 'banner_image', 'parent_id', 'product_count', 'sort_order',
                  'is_active', 'is_featured', 'is_visible', 'display_type', 'color', 'icon',
                  'meta_title', 'meta_description', 'meta_keywords', 'created_at', 'updated_at']
        read_only_fields = ['product_count', 'created_at', 'updated_at']

    def validate_slug(self, value):
        return value.lower() if value else value

    def validate(self, attrs):
        slug = attrs.get('slug')
        # A blank slug on create or update is derived from the name again
        if not slug and (self.instance is None or 'slug' in attrs):
            name = (attrs.get('name_en') or attrs.get('name')
                    or getattr(self.instance, 'name_en', '') or getattr(self.instance, 'name', ''))
            slug = slugify(name or '')
            if not slug:
                raise serializers.ValidationError({'slug': 'Slug is required'})
            attrs['slug'] = slug

        if slug:
            queryset = Category.objects.filter(slug=slug)
            if self.instance is not None:
                queryset = queryset.exclude(pk=self.instance.pk)
            if queryset.exists():
                raise serializers.ValidationError({'slug': 'Category with this slug already exists'})

        if 'parent' in attrs and self.instance is not None and attrs['parent'] is not None:
            parent = attrs['parent']
            if parent.pk == self.instance.pk:
                raise serializers.ValidationError({'parent_id': 'Category cannot be its own parent'})
            if self.instance.pk in parent.get_ancestor_ids():
                raise serializers.ValidationError({'parent_id': 'Category cannot be moved under its own subcategory'})
        return attrs


class StringListField(serializers.ListField):
    child = serializers.CharField(allow_blank=False, trim_whitespace=True)


class ProductSerializer(LocalizedFieldsMixin, serializers.ModelSerializer):
    display_name = serializers.SerializerMethodField()
    display_description = serializers.SerializerMethodField()
    category = CategorySummarySerializer(read_only=True)
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(), source='category', write_only=True,
        error_messages={'does_not_exist': 'Category not found'}
    )
    images = StringListField(required=False)
    sizes = StringListField(required=False)
    colors = StringListField(required=False)
    tags = StringListField(required=False)
    effective_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    in_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'name_en', 'name_ja', 'display_name',
                  'description', 'description_en', 'description_ja', 'display_description',
                  'sku', 'price', 'sale_price', 'original_price', 'effective_price',
                  'category', 'category_id', 'images', 'sizes', 'colors', 'tags', 'stock', 'in_stock',
                  'is_active', 'is_featured', 'on_sale', 'is_new', 'is_limited_edition', 'is_best_seller',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_sku(self, value):
        # Blank SKUs are stored as NULL so the unique constraint only applies to real codes
        return value.strip() or None if value else None

    def validate(self, attrs):
        on_sale = attrs.get('on_sale', getattr(self.instance, 'on_sale', False))
        sale_price = attrs.get('sale_price', getattr(self.instance, 'sale_price', None))
        price = attrs.get('price', getattr(self.instance, 'price', None))
        if on_sale and sale_price is None:
            raise serializers.ValidationError({'sale_price': 'Sale price is required when the product is on sale'})
        if sale_price is not None and price is not None and sale_price > price:
            raise serializers.ValidationError({'sale_price': 'Sale price cannot exceed the price'})
        return attrs


class ProductCardSerializer(LocalizedFieldsMixin, serializers.ModelSerializer):
    """Compact product shape for carts, wishlists and order lines"""
    display_name = serializers.SerializerMethodField()
    effective_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'name_en', 'name_ja', 'display_name', 'sku', 'price', 'sale_price',
                  'effective_price', 'on_sale', 'images', 'sizes', 'colors', 'stock', 'is_active']
