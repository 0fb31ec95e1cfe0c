import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django.db.models import Avg, Count, F
from django.shortcuts import get_object_or_404

from storefront.core.permissions import IsAdminRole, is_admin_user
from storefront.core.utils import create_activity_log, paginate, parse_id, parse_int
from storefront.orders.models import Order, OrderItem
from .models import Review
from .serializers import ReviewSerializer, AdminReviewSerializer

logger = logging.getLogger(__name__)

REVIEW_SORT_FIELDS = {'created_at': 'created_at', 'createdAt': 'created_at', 'rating': 'rating', 'helpful': 'helpful'}


def has_purchased(user, product):
    """True when the user has a completed order containing the product"""
    if product is None:
        return False
    return OrderItem.objects.filter(
        order__user=user, order__status=Order.STATUS_COMPLETED, product=product
    ).exists()


def _filtered_reviews(request):
    """Reviews filtered by product and rating, None when the product filter is not an id"""
    queryset = Review.objects.select_related('user', 'product')
    product_param = request.query_params.get('product') or request.query_params.get('product_id')
    if product_param:
        product_id = parse_id(product_param)
        if product_id is None:
            return None
        queryset = queryset.filter(product_id=product_id)
    rating = parse_int(request.query_params.get('rating'), None)
    if rating:
        queryset = queryset.filter(rating=rating)
    return queryset


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def review_list_create(request):
    """Public review list; authenticated customers post reviews"""
    if request.method == 'GET':
        queryset = _filtered_reviews(request)
        if queryset is None:
            return Response({'error': 'Invalid product'}, status=status.HTTP_400_BAD_REQUEST)
        verified = request.query_params.get('verified')
        if verified in ('true', '1'):
            queryset = queryset.filter(verified=True)

        sort_by = REVIEW_SORT_FIELDS.get(
            request.query_params.get('sort_by') or request.query_params.get('sortBy', 'created_at'), 'created_at'
        )
        sort_order = request.query_params.get('sort_order') or request.query_params.get('sortOrder', 'desc')
        prefix = '' if sort_order.lower() == 'asc' else '-'
        queryset = queryset.order_by(f'{prefix}{sort_by}', f'{prefix}id')
        return Response(paginate(request, queryset, ReviewSerializer, key='reviews', default_limit=10))

    if not (request.user and request.user.is_authenticated):
        return Response({'error': 'Authentication required'}, status=status.HTTP_401_UNAUTHORIZED)

    serializer = ReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # Admins may post on behalf of a customer
    author = serializer.validated_data.get('user')
    if author is None or not is_admin_user(request.user):
        author = request.user
    product = serializer.validated_data.get('product')

    if product is not None and Review.objects.filter(user=author, product=product).exists():
        return Response({'error': 'You have already reviewed this product'}, status=status.HTTP_400_BAD_REQUEST)

    review = serializer.save(user=author, verified=has_purchased(author, product))
    logger.info(f"Review {review.id} posted by user {author.id} for product {review.product_id}")
    return Response({'message': 'Review created successfully', 'review': ReviewSerializer(review).data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def review_stats(request):
    """Review count, average rating and rating distribution (5 to 1)"""
    queryset = _filtered_reviews(request)
    if queryset is None:
        return Response({'error': 'Invalid product'}, status=status.HTTP_400_BAD_REQUEST)
    queryset = queryset.order_by()
    summary = queryset.aggregate(total=Count('id'), average=Avg('rating'))
    counts = dict(queryset.values_list('rating').annotate(count=Count('id')))
    return Response({
        'total_reviews': summary['total'],
        'average_rating': round(float(summary['average']), 1) if summary['average'] is not None else 0,
        'rating_distribution': [{'rating': rating, 'count': counts.get(rating, 0)} for rating in range(5, 0, -1)],
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def review_helpful(request, pk):
    review = get_object_or_404(Review, pk=pk)
    Review.objects.filter(pk=pk).update(helpful=F('helpful') + 1)
    review.refresh_from_db(fields=['helpful'])
    return Response({'message': 'Review marked as helpful', 'helpful': review.helpful})


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_review_detail(request, pk):
    review = get_object_or_404(Review.objects.select_related('user', 'product'), pk=pk)

    if request.method == 'GET':
        return Response(AdminReviewSerializer(review).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = AdminReviewSerializer(review, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        user = serializer.validated_data.get('user', review.user)
        product = serializer.validated_data.get('product', review.product)
        if product is not None and Review.objects.filter(user=user, product=product).exclude(pk=pk).exists():
            return Response({'error': 'This user has already reviewed this product'},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        create_activity_log(request=request, action='update', model_name='Review', object_id=review.id,
                            object_name=review.title)
        return Response({'message': 'Review updated successfully', 'review': serializer.data})

    title = review.title
    review.delete()
    create_activity_log(request=request, action='delete', model_name='Review', object_id=pk, object_name=title)
    return Response({'message': 'Review deleted successfully'})
