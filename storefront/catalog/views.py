import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404

from storefront.core.cache_utils import cached_query, CATEGORY_TREE_CACHE_TTL, FEATURED_PRODUCTS_CACHE_TTL
from storefront.core.permissions import IsAdminRole, is_admin_user, admin_required_response
from storefront.core.utils import (
    create_activity_log, get_request_language, paginate, parse_bool, parse_id, parse_int
)
from .filters import ProductFilter, apply_product_ordering, product_search_q
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer
from .services import refresh_category_counts, refresh_all_category_counts, build_category_tree

logger = logging.getLogger(__name__)


def _context(request):
    return {'request': request, 'lang': get_request_language(request)}


# Category views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def category_list_create(request):
    """List categories or create a new category (admin)"""
    if request.method == 'GET':
        queryset = Category.objects.all()

        is_active = parse_bool(request.query_params.get('is_active'))
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        elif not is_admin_user(request.user):
            queryset = queryset.filter(is_active=True)

        parent = request.query_params.get('parent')
        if parent == 'null' or parent == 'root':
            queryset = queryset.filter(parent__isnull=True)
        elif parent:
            parent_id = parse_id(parent)
            if parent_id is None:
                return Response({'error': 'Invalid parent'}, status=status.HTTP_400_BAD_REQUEST)
            queryset = queryset.filter(parent_id=parent_id)

        is_featured = parse_bool(request.query_params.get('is_featured'))
        if is_featured is not None:
            queryset = queryset.filter(is_featured=is_featured)

        queryset = queryset.order_by('sort_order', 'name')
        serializer = CategorySerializer(queryset, many=True, context=_context(request))
        return Response({'categories': serializer.data})

    denied = admin_required_response(request)
    if denied is not None:
        return denied

    serializer = CategorySerializer(data=request.data, context=_context(request))
    if serializer.is_valid():
        category = serializer.save()
        create_activity_log(request=request, action='create', model_name='Category',
                            object_id=category.id, object_name=category.name)
        return Response({
            'message': 'Category created successfully',
            'category': CategorySerializer(category, context=_context(request)).data,
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@cached_query(cache_ttl=CATEGORY_TREE_CACHE_TTL, key_prefix="category_tree")
def _category_tree(lang):
    categories = Category.objects.filter(is_active=True, is_visible=True).order_by('sort_order', 'name')
    return build_category_tree(categories, CategorySerializer, {'lang': lang})


@api_view(['GET'])
@permission_classes([AllowAny])
def category_tree(request):
    """Active categories nested by parent"""
    return Response({'categories': _category_tree(get_request_language(request))})


@api_view(['GET'])
@permission_classes([AllowAny])
def category_by_slug(request, slug):
    """Retrieve an active category by slug"""
    category = get_object_or_404(Category, slug=slug.lower(), is_active=True)
    return Response(CategorySerializer(category, context=_context(request)).data)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)

    if request.method == 'GET':
        if not category.is_active and not is_admin_user(request.user):
            return Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(CategorySerializer(category, context=_context(request)).data)

    denied = admin_required_response(request)
    if denied is not None:
        return denied

    if request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=True, context=_context(request))
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request=request, action='update', model_name='Category',
                                object_id=category.id, object_name=category.name)
            return Response({
                'message': 'Category updated successfully',
                'category': serializer.data,
            })
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    product_count = category.products.count()
    if product_count:
        return Response(
            {'error': f'Cannot delete category with {product_count} products. Move or delete the products first.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    child_count = category.children.count()
    if child_count:
        return Response(
            {'error': f'Cannot delete category with {child_count} subcategories. Delete or move them first.'},
            status=status.HTTP_400_BAD_REQUEST
        )
    create_activity_log(request=request, action='delete', model_name='Category',
                        object_id=category.id, object_name=category.name)
    category.delete()
    return Response({'message': 'Category deleted successfully'})


@api_view(['GET'])
@permission_classes([AllowAny])
def category_products(request, pk):
    """Paginated active products of a category"""
    category = get_object_or_404(Category, pk=pk, is_active=True)
    queryset = Product.objects.filter(category=category, is_active=True).select_related('category')
    queryset = apply_product_ordering(
        queryset, request.query_params.get('sort_by'), request.query_params.get('sort_order')
    )
    payload = paginate(request, queryset, ProductSerializer, key='products', context=_context(request))
    payload['category'] = CategorySerializer(category, context=_context(request)).data
    return Response(payload)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def product_list_create(request):
    """List products (filtered, sorted, paginated) or create a new product (admin)"""
    if request.method == 'GET':
        queryset = Product.objects.select_related('category')

        # Only admins can see inactive products
        if not is_admin_user(request.user):
            queryset = queryset.filter(is_active=True)

        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs

        sort_by = request.query_params.get('sort_by') or request.query_params.get('sortBy')
        sort_order = request.query_params.get('sort_order') or request.query_params.get('sortOrder')
        queryset = apply_product_ordering(queryset, sort_by, sort_order)

        return Response(paginate(request, queryset, ProductSerializer, key='products', context=_context(request)))

    denied = admin_required_response(request)
    if denied is not None:
        return denied

    serializer = ProductSerializer(data=request.data, context=_context(request))
    if serializer.is_valid():
        product = serializer.save()
        refresh_category_counts(product.category_id)
        create_activity_log(request=request, action='create', model_name='Product',
                            object_id=product.id, object_name=product.name)
        logger.info(f"Product created: {product.id} {product.name}")
        return Response({
            'message': 'Product created successfully',
            'product': ProductSerializer(product, context=_context(request)).data,
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@cached_query(cache_ttl=FEATURED_PRODUCTS_CACHE_TTL, key_prefix="featured_products")
def _featured_products(limit, lang):
    queryset = Product.objects.filter(is_active=True, is_featured=True).select_related('category')
    queryset = queryset.order_by('-created_at')[:limit]
    return [dict(item) for item in ProductSerializer(queryset, many=True, context={"lang": lang}).data]


@api_view(['GET'])
@permission_classes([AllowAny])
def featured_products(request):
    """Active featured products, newest first"""
    limit = parse_int(request.query_params.get('limit'), 6, minimum=1, maximum=50)
    return Response({'products': _featured_products(limit, get_request_language(request))})


@api_view(['GET'])
@permission_classes([AllowAny])
def product_search(request):
    """Search active products by name, description, tags or SKU"""
    query = request.query_params.get('q', '').strip()
    if not query:
        return Response({'error': 'Search query is required'}, status=status.HTTP_400_BAD_REQUEST)

    limit = parse_int(request.query_params.get('limit'), 20, minimum=1, maximum=100)
    queryset = Product.objects.filter(is_active=True).filter(product_search_q(query))
    queryset = queryset.select_related('category').order_by('-created_at')[:limit]
    serializer = ProductSerializer(queryset, many=True, context=_context(request))
    return Response({'products': serializer.data, 'query': query, 'count': len(serializer.data)})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.select_related('category'), pk=pk)
    is_admin = is_admin_user(request.user)

    if request.method == 'GET':
        if not product.is_active and not is_admin:
            return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(ProductSerializer(product, context=_context(request)).data)

    denied = admin_required_response(request)
    if denied is not None:
        return denied

    if request.method in ('PUT', 'PATCH'):
        old_category_id = product.category_id
        serializer = ProductSerializer(product, data=request.data, partial=True, context=_context(request))
        if serializer.is_valid():
            product = serializer.save()
            refresh_category_counts(old_category_id, product.category_id)
            create_activity_log(request=request, action='update', model_name='Product',
                                object_id=product.id, object_name=product.name,
                                changes={k: str(v) for k, v in serializer.validated_data.items() if k != 'category'})
            return Response({
                'message': 'Product updated successfully',
                'product': ProductSerializer(product, context=_context(request)).data,
            })
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    category_id = product.category_id
    create_activity_log(request=request, action='delete', model_name='Product',
                        object_id=product.id, object_name=product.name)
    try:
        product.delete()
    except ProtectedError:
        return Response({'error': 'Product is referenced by other records and cannot be deleted'},
                        status=status.HTTP_400_BAD_REQUEST)
    refresh_category_counts(category_id)
    return Response({'message': 'Product deleted successfully'})


@api_view(['GET'])
@permission_classes([AllowAny])
def related_products(request, pk):
    """Active products from the same category"""
    product = get_object_or_404(Product, pk=pk)
    limit = parse_int(request.query_params.get('limit'), 4, minimum=1, maximum=20)
    queryset = Product.objects.filter(category_id=product.category_id, is_active=True).exclude(pk=product.pk)
    queryset = queryset.select_related('category').order_by('-is_featured', '-created_at')[:limit]
    return Response({'products': ProductSerializer(queryset, many=True, context=_context(request)).data})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def refresh_product_counts(request):
    """Recompute product_count on every category"""
    changed = refresh_all_category_counts()
    return Response({'message': 'Product counts updated', 'changed': changed})
