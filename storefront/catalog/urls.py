from django.urls import path
from .views import (
    category_list_create, category_tree, category_by_slug, category_detail, category_products,
    product_list_create, featured_products, product_search, product_detail, related_products,
    refresh_product_counts
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/tree/', category_tree, name='category-tree'),
    path('categories/slug/<slug:slug>/', category_by_slug, name='category-by-slug'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('categories/<int:pk>/products/', category_products, name='category-products'),

    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/featured/', featured_products, name='product-featured'),
    path('products/search/', product_search, name='product-search'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/related/', related_products, name='product-related'),

    path('admin/catalog/refresh-counts/', refresh_product_counts, name='catalog-refresh-counts'),
]
