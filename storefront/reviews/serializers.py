from django.contrib.auth import get_user_model
from rest_framework import serializers

from storefront.catalog.models import Product
from .models import Review

User = get_user_model()


class ReviewUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'name']


class ReviewProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'name', 'name_en', 'name_ja']


class ReviewSerializer(serializers.ModelSerializer):
    user = ReviewUserSerializer(read_only=True)
    product = ReviewProductSerializer(read_only=True)
    product_id = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.all(), source='product', write_only=True, required=False, allow_null=True,
        error_messages={'does_not_exist': 'Product not found'}
    )
    user_id = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(), source='user', write_only=True, required=False,
        error_messages={'does_not_exist': 'User not found'}
    )
    rating = serializers.IntegerField(min_value=1, max_value=5,
                                      error_messages={'min_value': 'Rating must be between 1 and 5',
                                                      'max_value': 'Rating must be between 1 and 5'})
    title = serializers.CharField(max_length=200)
    comment = serializers.CharField(max_length=1000)

    class Meta:
        model = Review
        fields = ['id', 'user', 'user_id', 'product', 'product_id', 'rating', 'title', 'comment',
                  'verified', 'helpful', 'created_at', 'updated_at']
        read_only_fields = ['verified', 'helpful', 'created_at', 'updated_at']
        # Uniqueness is checked in the view with a readable message
        validators = []


class AdminReviewSerializer(ReviewSerializer):
    class Meta(ReviewSerializer.Meta):
        read_only_fields = ['helpful', 'created_at', 'updated_at']
