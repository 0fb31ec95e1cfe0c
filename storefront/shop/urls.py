from django.urls import path
from .views import (
    cart_view, cart_item_view, cart_sync,
    wishlist_view, wishlist_item_view, wishlist_sync
)

urlpatterns = [
    # Cart endpoints
    path('cart/', cart_view, name='cart'),
    path('cart/sync/', cart_sync, name='cart-sync'),
    path('cart/<int:product_id>/', cart_item_view, name='cart-item'),

    # Wishlist endpoints
    path('wishlist/', wishlist_view, name='wishlist'),
    path('wishlist/sync/', wishlist_sync, name='wishlist-sync'),
    path('wishlist/<int:product_id>/', wishlist_item_view, name='wishlist-item'),
]
