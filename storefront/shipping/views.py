import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django.db.models import Q, Sum, Count, ProtectedError
from django.shortcuts import get_object_or_404
from django.utils import timezone

from storefront.core.permissions import IsAdminRole
from storefront.core.utils import (
    create_activity_log, paginate, get_request_language, localized, parse_bool, parse_decimal
)
from storefront.orders.models import Order
from .models import ShippingMethod, Shipment
from .serializers import (
    ShippingMethodSerializer, ShipmentSerializer, ShipmentCreateSerializer, ShipmentUpdateSerializer,
    ShipmentStatusSerializer, TrackingEventSerializer, TrackingEventCreateSerializer
)
from .services import ShipmentError, create_shipment, update_shipment_status

logger = logging.getLogger(__name__)


def _context(request):
    return {'request': request, 'lang': get_request_language(request)}


def _shipment_queryset():
    return Shipment.objects.select_related('order', 'shipping_method').prefetch_related('tracking_events')


def _active_methods(region=None):
    methods = ShippingMethod.objects.filter(is_active=True)
    return [method for method in methods if method.serves_region(region)]


@api_view(['GET'])
@permission_classes([AllowAny])
def shipping_method_list(request):
    """Active shipping methods, optionally limited to a region"""
    methods = _active_methods(request.query_params.get('region'))
    return Response({
        'shipping_methods': ShippingMethodSerializer(methods, many=True, context=_context(request)).data
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def shipping_quote(request):
    """Shipping cost of every active method for a cart subtotal"""
    subtotal = parse_decimal(request.query_params.get('subtotal') or '0')
    if subtotal is None or subtotal < 0:
        return Response({'error': 'Invalid subtotal'}, status=status.HTTP_400_BAD_REQUEST)

    lang = get_request_language(request)
    quotes = []
    for method in _active_methods(request.query_params.get('region')):
        cost = method.cost_for(subtotal)
        quotes.append({
            'shipping_method_id': method.id,
            'name': localized(method, 'name', lang),
            'type': method.type,
            'cost': str(cost),
            'is_free': cost == 0,
            'estimated_days': method.estimated_days,
        })
    return Response({'subtotal': str(subtotal), 'quotes': quotes})


# Admin shipping management
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_method_list_create(request):
    """All shipping methods, or create one"""
    if request.method == 'GET':
        methods = ShippingMethod.objects.all()
        is_active = parse_bool(request.query_params.get('is_active'))
        if is_active is not None:
            methods = methods.filter(is_active=is_active)
        return Response({'shipping_methods': ShippingMethodSerializer(methods, many=True, context=_context(request)).data})

    serializer = ShippingMethodSerializer(data=request.data, context=_context(request))
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    method = serializer.save()
    create_activity_log(request=request, action='create', model_name='ShippingMethod',
                        object_id=method.id, object_name=method.name)
    return Response({'message': 'Shipping method created successfully', 'shipping_method': serializer.data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_method_detail(request, pk):
    method = get_object_or_404(ShippingMethod, pk=pk)

    if request.method == 'GET':
        return Response(ShippingMethodSerializer(method, context=_context(request)).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = ShippingMethodSerializer(method, data=request.data, partial=request.method == 'PATCH',
                                              context=_context(request))
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        create_activity_log(request=request, action='update', model_name='ShippingMethod',
                            object_id=method.id, object_name=method.name)
        return Response({'message': 'Shipping method updated successfully', 'shipping_method': serializer.data})

    try:
        method.delete()
    except ProtectedError:
        return Response({'error': 'Shipping method is used by shipments and cannot be deleted'},
                        status=status.HTTP_400_BAD_REQUEST)
    create_activity_log(request=request, action='delete', model_name='ShippingMethod',
                        object_id=pk, object_name=method.name)
    return Response({'message': 'Shipping method deleted successfully'})


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_shipment_list_create(request):
    """Shipments with status/method/search filters, or open one for an order"""
    if request.method == 'GET':
        queryset = _shipment_queryset()
        shipment_status = request.query_params.get('status')
        if shipment_status:
            queryset = queryset.filter(status=shipment_status)
        method_id = request.query_params.get('shipping_method')
        if method_id:
            queryset = queryset.filter(shipping_method_id=method_id)
        order_id = request.query_params.get('order')
        if order_id:
            queryset = queryset.filter(order_id=order_id)
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(tracking_number__icontains=search) |
                Q(customer_name__icontains=search) |
                Q(customer_phone__icontains=search) |
                Q(order__order_number__icontains=search)
            )
        return Response(paginate(request, queryset.order_by('-created_at'), ShipmentSerializer, key='shipments'))

    serializer = ShipmentCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)

    order = Order.objects.select_related('user').filter(pk=data.pop('order_id')).first()
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)
    method = ShippingMethod.objects.filter(pk=data.pop('shipping_method_id')).first()
    if method is None:
        return Response({'error': 'Shipping method not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        shipment = create_shipment(order, method, **data)
    except ShipmentError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='create', model_name='Shipment',
                        object_id=shipment.id, object_name=shipment.tracking_number,
                        changes={'order': order.order_number})
    return Response({
        'message': 'Shipment created successfully',
        'shipment': ShipmentSerializer(_shipment_queryset().get(pk=shipment.pk)).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_shipment_detail(request, pk):
    shipment = get_object_or_404(_shipment_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(ShipmentSerializer(shipment).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = ShipmentUpdateSerializer(shipment, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        create_activity_log(request=request, action='update', model_name='Shipment',
                            object_id=shipment.id, object_name=shipment.tracking_number)
        return Response({
            'message': 'Shipment updated successfully',
            'shipment': ShipmentSerializer(_shipment_queryset().get(pk=pk)).data,
        })

    tracking_number = shipment.tracking_number
    shipment.delete()
    create_activity_log(request=request, action='delete', model_name='Shipment',
                        object_id=pk, object_name=tracking_number)
    return Response({'message': 'Shipment deleted successfully'})


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAdminRole])
def admin_shipment_status(request, pk):
    """Change a shipment's status and record a tracking event"""
    shipment = get_object_or_404(Shipment.objects.select_related('order'), pk=pk)
    serializer = ShipmentStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    old_status = shipment.status
    try:
        shipment = update_shipment_status(
            shipment, data['status'],
            location=data.get('location', ''),
            description=data.get('description', ''),
            notes=data.get('notes'),
        )
    except ShipmentError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='shipment_status', model_name='Shipment',
                        object_id=shipment.id, object_name=shipment.tracking_number,
                        changes={'from': old_status, 'to': shipment.status})
    return Response({
        'message': 'Shipment status updated successfully',
        'shipment': ShipmentSerializer(_shipment_queryset().get(pk=pk)).data,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_shipment_tracking(request, pk):
    """Tracking history of a shipment, or add a checkpoint"""
    shipment = get_object_or_404(Shipment, pk=pk)

    if request.method == 'GET':
        return Response({
            'tracking_number': shipment.tracking_number,
            'status': shipment.status,
            'events': TrackingEventSerializer(shipment.tracking_events.all(), many=True).data,
        })

    serializer = TrackingEventCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    event = shipment.tracking_events.create(
        status=data['status'],
        location=data.get('location') or 'Unknown',
        description=data['description'],
        timestamp=data.get('timestamp') or timezone.now(),
        carrier=data.get('carrier') or shipment.carrier,
    )
    return Response({'message': 'Tracking event added', 'event': TrackingEventSerializer(event).data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_shipping_stats(request):
    counts = dict(Shipment.objects.order_by().values_list('status').annotate(count=Count('id')))
    total_cost = Shipment.objects.aggregate(total=Sum('shipping_cost'))['total'] or Decimal('0.00')
    return Response({
        'total_shipments': sum(counts.values()),
        'pending_shipments': counts.get('pending', 0),
        'in_transit_shipments': counts.get('in_transit', 0) + counts.get('out_for_delivery', 0),
        'delivered_shipments': counts.get('delivered', 0),
        'failed_shipments': counts.get('failed', 0),
        'returned_shipments': counts.get('returned', 0),
        'total_shipping_cost': float(total_cost),
        'active_methods': ShippingMethod.objects.filter(is_active=True).count(),
    })
