from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'parent', 'product_count', 'sort_order', 'is_active', 'is_featured']
    list_filter = ['is_active', 'is_featured', 'is_visible', 'display_type']
    search_fields = ['name', 'name_en', 'name_ja', 'slug']
    prepopulated_fields = {'slug': ('name_en',)}
    readonly_fields = ['product_count', 'created_at', 'updated_at']
    ordering = ['sort_order', 'name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'category', 'price', 'sale_price', 'stock', 'is_active', 'is_featured', 'on_sale']
    list_filter = ['is_active', 'is_featured', 'on_sale', 'is_new', 'category']
    search_fields = ['name', 'name_en', 'name_ja', 'sku']
    list_select_related = ['category']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-created_at']
