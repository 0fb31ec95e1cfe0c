import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django.db import transaction

from storefront.catalog.models import Product
from storefront.core.utils import get_request_language
from .models import Cart, CartItem, WishlistItem
from .serializers import (
    CartItemSerializer, CartAddSerializer, CartUpdateSerializer, CartSyncSerializer,
    WishlistItemSerializer, WishlistAddSerializer, WishlistSyncSerializer
)

logger = logging.getLogger(__name__)


def get_cart(user):
    cart, _ = Cart.objects.get_or_create(user=user)
    return cart


def cart_payload(request, cart):
    """Cart items whose product is still active, with totals"""
    items = list(cart.active_items())
    context = {'request': request, 'lang': get_request_language(request)}
    return {
        'items': CartItemSerializer(items, many=True, context=context).data,
        'total': str(sum((item.get_line_total() for item in items), Decimal('0.00'))),
        'item_count': sum(item.quantity for item in items),
    }


def _apply_options(item, data):
    if data.get('size') is not None:
        item.size = data['size']
    if data.get('color') is not None:
        item.color = data['color']


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def cart_view(request):
    """Get the cart, add a product to it, or clear it"""
    cart = get_cart(request.user)

    if request.method == 'GET':
        return Response(cart_payload(request, cart))

    if request.method == 'DELETE':
        cart.items.all().delete()
        return Response({'message': 'Cart cleared successfully', **cart_payload(request, cart)})

    serializer = CartAddSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    product = Product.objects.filter(pk=data['product_id'], is_active=True).first()
    if product is None:
        return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)

    item = cart.items.filter(product=product).first()
    new_quantity = data['quantity'] + (item.quantity if item else 0)
    # The cart line may only hold what is in stock
    if new_quantity > product.stock:
        return Response({'error': 'Insufficient stock', 'available': product.stock},
                        status=status.HTTP_400_BAD_REQUEST)

    if item is None:
        item = CartItem(cart=cart, product=product)
    item.quantity = new_quantity
    _apply_options(item, data)
    item.save()
    cart.save(update_fields=['updated_at'])

    return Response({'message': 'Item added to cart', **cart_payload(request, cart)}, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def cart_item_view(request, product_id):
    """Update or remove the cart line of a product"""
    cart = get_cart(request.user)
    item = cart.items.select_related('product').filter(product_id=product_id).first()
    if item is None:
        return Response({'error': 'Item not found in cart'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'DELETE':
        item.delete()
        return Response({'message': 'Item removed from cart', **cart_payload(request, cart)})

    serializer = CartUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    if 'quantity' in data:
        if data['quantity'] > item.product.stock:
            return Response({'error': 'Insufficient stock', 'available': item.product.stock},
                            status=status.HTTP_400_BAD_REQUEST)
        item.quantity = data['quantity']
    _apply_options(item, data)
    item.save()
    return Response({'message': 'Cart updated', **cart_payload(request, cart)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cart_sync(request):
    """
    Merge a guest cart into the user's cart after login.

    Unknown, inactive and out-of-stock products are skipped; merged quantities
    are clamped to the available stock.
    """
    serializer = CartSyncSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    cart = get_cart(request.user)
    entries = serializer.validated_data['items']
    products = Product.objects.in_bulk([entry['product_id'] for entry in entries])
    skipped = []

    with transaction.atomic():
        for entry in entries:
            product = products.get(entry['product_id'])
            if product is None or not product.is_active:
                skipped.append({'product_id': entry['product_id'], 'reason': 'Product not available'})
                continue
            if product.stock < 1:
                skipped.append({'product_id': product.id, 'reason': 'Out of stock'})
                continue

            item = cart.items.filter(product=product).first() or CartItem(cart=cart, product=product, quantity=0)
            wanted = item.quantity + entry['quantity']
            item.quantity = min(wanted, product.stock)
            if item.quantity < wanted:
                skipped.append({'product_id': product.id, 'reason': 'Quantity reduced to available stock'})
            _apply_options(item, entry)
            item.save()

    logger.info(f"Synced {len(entries)} guest cart entries for user {request.user.id}, {len(skipped)} adjusted")
    return Response({'message': 'Cart synchronized', 'skipped': skipped, **cart_payload(request, cart)})


# Wishlist views
def wishlist_payload(request):
    items = WishlistItem.objects.filter(
        user=request.user, product__is_active=True
    ).select_related('product').order_by('-created_at')
    context = {'request': request, 'lang': get_request_language(request)}
    return {
        'items': WishlistItemSerializer(items, many=True, context=context).data,
        'count': items.count(),
    }


@api_view(['GET', 'POST', 'DELETE'])
@permission_classes([IsAuthenticated])
def wishlist_view(request):
    """Get the wishlist, add a product to it, or clear it"""
    if request.method == 'GET':
        return Response(wishlist_payload(request))

    if request.method == 'DELETE':
        WishlistItem.objects.filter(user=request.user).delete()
        return Response({'message': 'Wishlist cleared successfully', **wishlist_payload(request)})

    serializer = WishlistAddSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    product = Product.objects.filter(pk=serializer.validated_data['product_id'], is_active=True).first()
    if product is None:
        return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)

    if WishlistItem.objects.filter(user=request.user, product=product).exists():
        return Response({'error': 'Product already in wishlist'}, status=status.HTTP_400_BAD_REQUEST)

    WishlistItem.objects.create(user=request.user, product=product)
    return Response({'message': 'Product added to wishlist', **wishlist_payload(request)},
                    status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def wishlist_item_view(request, product_id):
    """Remove a product from the wishlist"""
    deleted, _ = WishlistItem.objects.filter(user=request.user, product_id=product_id).delete()
    if not deleted:
        return Response({'error': 'Product not found in wishlist'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'message': 'Product removed from wishlist', **wishlist_payload(request)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def wishlist_sync(request):
    """Add guest wishlist products, ignoring duplicates and unavailable products"""
    serializer = WishlistSyncSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    product_ids = set(serializer.validated_data['product_ids'])
    existing = set(WishlistItem.objects.filter(user=request.user).values_list('product_id', flat=True))
    available = Product.objects.filter(id__in=product_ids - existing, is_active=True)
    WishlistItem.objects.bulk_create([WishlistItem(user=request.user, product=p) for p in available])
    return Response({'message': 'Wishlist synchronized', **wishlist_payload(request)})
