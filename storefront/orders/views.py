import logging
from datetime import timedelta
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from django.db import transaction
from django.db.models import Q, Sum, Count, ProtectedError
from django.shortcuts import get_object_or_404
from django.utils import timezone

from storefront.core.permissions import IsAdminRole
from storefront.core.utils import create_activity_log, paginate, parse_date, parse_id
from storefront.shipping.serializers import ShipmentSerializer
from .models import Order
from .serializers import (
    OrderSerializer, OrderCreateSerializer, OrderAdminUpdateSerializer,
    OrderStatusSerializer, BulkOrderStatusSerializer
)
from .services import OrderError, place_order, cancel_order, change_order_status, restore_stock_and_totals

logger = logging.getLogger(__name__)

ORDER_SORT_FIELDS = {'created_at', 'updated_at', 'total_amount', 'order_number', 'status'}


def _order_queryset():
    return Order.objects.select_related('user').prefetch_related('items')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_create(request):
    """Place an order for the current user"""
    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        order = place_order(
            user=request.user,
            items=data['items'],
            shipping_address=dict(data['shipping_address']),
            billing_address=dict(data['billing_address']) if data.get('billing_address') else None,
            payment_method=data['payment_method'],
            notes=data.get('notes', ''),
            shipping_method_id=data.get('shipping_method_id'),
        )
    except OrderError as e:
        payload = {'error': e.message}
        if e.details:
            payload['details'] = e.details
        return Response(payload, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='order_create', model_name='Order',
                        object_id=order.id, object_name=order.order_number,
                        changes={'total_amount': str(order.total_amount)})
    return Response({
        'message': 'Order created successfully',
        'order': OrderSerializer(_order_queryset().get(pk=order.pk)).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_orders(request):
    """Current user's orders, newest first"""
    queryset = _order_queryset().filter(user=request.user)
    order_status = request.query_params.get('status')
    if order_status:
        queryset = queryset.filter(status=order_status)
    return Response(paginate(request, queryset.order_by('-created_at'), OrderSerializer, key='orders', default_limit=10))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_order_detail(request, pk):
    """One of the current user's orders"""
    order = get_object_or_404(_order_queryset(), pk=pk, user=request.user)
    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_cancel(request, pk):
    """Cancel a pending order (owner or admin)"""
    order = get_object_or_404(Order, pk=pk)
    if order.user_id != request.user.id and not request.user.is_admin:
        return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)

    try:
        order = cancel_order(order)
    except OrderError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='order_cancel', model_name='Order',
                        object_id=order.id, object_name=order.order_number)
    return Response({
        'message': 'Order cancelled successfully',
        'order': OrderSerializer(_order_queryset().get(pk=order.pk)).data,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def order_track(request, order_number):
    """Public order tracking by order number"""
    order = get_object_or_404(_order_queryset(), order_number=order_number.upper())
    shipments = order.shipments.select_related('shipping_method').prefetch_related('tracking_events')
    return Response({
        'order_number': order.order_number,
        'status': order.status,
        'payment_status': order.payment_status,
        'created_at': order.created_at,
        'updated_at': order.updated_at,
        'total_amount': str(order.total_amount),
        'shipping_method': order.shipping_method,
        'items': [
            {'name': item.name, 'name_vi': item.name_vi, 'quantity': item.quantity,
             'size': item.size, 'color': item.color}
            for item in order.items.all()
        ],
        'shipments': ShipmentSerializer(shipments, many=True).data,
    })


# Admin order management
@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_order_list(request):
    """All orders with status/user/search filters"""
    queryset = _order_queryset()

    order_status = request.query_params.get('status')
    if order_status:
        queryset = queryset.filter(status=order_status)

    payment_status = request.query_params.get('payment_status')
    if payment_status:
        queryset = queryset.filter(payment_status=payment_status)

    user_param = request.query_params.get('user')
    if user_param:
        user_id = parse_id(user_param)
        if user_id is None:
            return Response({'error': 'Invalid user'}, status=status.HTTP_400_BAD_REQUEST)
        queryset = queryset.filter(user_id=user_id)

    order_number = request.query_params.get('order_number')
    if order_number:
        queryset = queryset.filter(order_number__icontains=order_number)

    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(order_number__icontains=search) |
            Q(user__email__icontains=search) |
            Q(user__name__icontains=search) |
            Q(shipping_address__name__icontains=search) |
            Q(shipping_address__phone__icontains=search)
        )

    date_from = parse_date(request.query_params.get('date_from'))
    date_to = parse_date(request.query_params.get('date_to'))
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    sort_by = request.query_params.get('sort_by', 'created_at')
    if sort_by not in ORDER_SORT_FIELDS:
        sort_by = 'created_at'
    prefix = '' if request.query_params.get('sort_order', 'desc').lower() == 'asc' else '-'
    queryset = queryset.order_by(f'{prefix}{sort_by}', f'{prefix}id')

    return Response(paginate(request, queryset, OrderSerializer, key='orders'))


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_order_detail(request, pk):
    """Retrieve, edit or delete an order"""
    order = get_object_or_404(_order_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(OrderSerializer(order).data)

    if request.method in ('PUT', 'PATCH'):
        new_status = request.data.get('status')
        serializer = OrderAdminUpdateSerializer(order, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            with transaction.atomic():
                serializer.save()
                if new_status:
                    change_order_status(order, new_status)
        except OrderError as e:
            return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

        create_activity_log(request=request, action='update', model_name='Order',
                            object_id=order.id, object_name=order.order_number,
                            changes={k: v for k, v in request.data.items() if k in ('status', 'payment_status', 'notes')})
        return Response({
            'message': 'Order updated successfully',
            'order': OrderSerializer(_order_queryset().get(pk=order.pk)).data,
        })

    # DELETE
    try:
        with transaction.atomic():
            if order.status in (Order.STATUS_PENDING, Order.STATUS_PROCESSING):
                restore_stock_and_totals(order)
            order_number = order.order_number
            order.delete()
    except ProtectedError:
        return Response({'error': 'Order has payment or shipment records and cannot be deleted'},
                        status=status.HTTP_400_BAD_REQUEST)
    create_activity_log(request=request, action='delete', model_name='Order',
                        object_id=pk, object_name=order_number)
    return Response({'message': 'Order deleted successfully'})


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAdminRole])
def admin_order_status(request, pk):
    """Change an order's status"""
    order = get_object_or_404(Order, pk=pk)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    old_status = order.status
    try:
        order = change_order_status(order, serializer.validated_data['status'])
    except OrderError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='order_status', model_name='Order',
                        object_id=order.id, object_name=order.order_number,
                        changes={'from': old_status, 'to': order.status})
    return Response({
        'message': 'Order status updated successfully',
        'order': OrderSerializer(_order_queryset().get(pk=order.pk)).data,
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admin_order_bulk_status(request):
    """Change the status of several orders; orders that cannot move are reported"""
    serializer = BulkOrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data['status']
    updated = 0
    failed = []
    for order in Order.objects.filter(id__in=serializer.validated_data['order_ids']):
        try:
            change_order_status(order, new_status)
            updated += 1
        except OrderError as e:
            failed.append({'order_id': order.id, 'order_number': order.order_number, 'error': e.message})

    create_activity_log(request=request, action='order_status', model_name='Order', object_id='bulk',
                        changes={'order_ids': serializer.validated_data['order_ids'], 'status': new_status})
    return Response({
        'message': f'{updated} orders updated successfully',
        'updated': updated,
        'failed': failed,
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_order_stats(request):
    """Order counts by status and completed revenue"""
    counts = {key: 0 for key, _ in Order.STATUS_CHOICES}
    for row in Order.objects.values('status').annotate(count=Count('id')):
        counts[row['status']] = row['count']

    completed = Order.objects.filter(status=Order.STATUS_COMPLETED)
    total_revenue = completed.aggregate(total=Sum('total_amount'))['total'] or Decimal('0.00')

    month_start = timezone.localtime().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    month_revenue = completed.filter(created_at__gte=month_start).aggregate(
        total=Sum('total_amount')
    )['total'] or Decimal('0.00')

    return Response({
        'total_orders': sum(counts.values()),
        'pending_orders': counts[Order.STATUS_PENDING],
        'processing_orders': counts[Order.STATUS_PROCESSING],
        'completed_orders': counts[Order.STATUS_COMPLETED],
        'cancelled_orders': counts[Order.STATUS_CANCELLED],
        'total_revenue': float(total_revenue),
        'month_revenue': float(month_revenue),
        'last_7_days_orders': Order.objects.filter(created_at__gte=timezone.now() - timedelta(days=7)).count(),
    })
