import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from django.db.models import Q, Sum, Count
from django.shortcuts import get_object_or_404

from storefront.core.permissions import IsAdminRole
from storefront.core.utils import (
    create_activity_log, paginate, parse_bool, parse_date, parse_decimal, parse_id, get_request_language
)
from storefront.orders.models import Order
from .models import PaymentMethod, SavedPaymentMethod, Transaction, Refund
from .serializers import (
    PaymentMethodSerializer, SavedPaymentMethodSerializer, TransactionSerializer, TransactionCreateSerializer,
    TransactionStatusSerializer, RefundSerializer, RefundCreateSerializer, RefundStatusSerializer
)
from .services import (
    PaymentError, create_transaction, update_transaction_status, process_refund, update_refund_status,
    add_saved_method, set_default_method, delete_saved_method
)

logger = logging.getLogger(__name__)

TRANSACTION_SORT_FIELDS = {'created_at', 'amount', 'status', 'processed_at'}


def _context(request):
    return {'request': request, 'lang': get_request_language(request)}


@api_view(['GET'])
@permission_classes([AllowAny])
def payment_method_list(request):
    """Active payment methods; ?amount= hides methods outside their min/max range"""
    methods = PaymentMethod.objects.filter(is_active=True)
    amount = request.query_params.get('amount')
    if amount:
        amount = parse_decimal(amount)
        if amount is None or amount < 0:
            return Response({'error': 'Invalid amount'}, status=status.HTTP_400_BAD_REQUEST)
        methods = [method for method in methods if method.accepts_amount(amount)]
    return Response({'payment_methods': PaymentMethodSerializer(methods, many=True, context=_context(request)).data})


# Customer saved payment methods
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def saved_method_list_create(request):
    if request.method == 'GET':
        methods = SavedPaymentMethod.objects.filter(user=request.user)
        return Response({'payment_methods': SavedPaymentMethodSerializer(methods, many=True).data})

    serializer = SavedPaymentMethodSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    method = add_saved_method(request.user, **serializer.validated_data)
    return Response({
        'message': 'Payment method added successfully',
        'payment_method': SavedPaymentMethodSerializer(method).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def saved_method_detail(request, pk):
    method = SavedPaymentMethod.objects.filter(pk=pk, user=request.user).first()
    if method is None:
        return Response({'error': 'Payment method not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(SavedPaymentMethodSerializer(method).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = SavedPaymentMethodSerializer(method, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response({'message': 'Payment method updated successfully', 'payment_method': serializer.data})

    delete_saved_method(method)
    return Response({'message': 'Payment method deleted successfully'})


@api_view(['POST', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def saved_method_set_default(request, pk):
    method = SavedPaymentMethod.objects.filter(pk=pk, user=request.user).first()
    if method is None:
        return Response({'error': 'Payment method not found'}, status=status.HTTP_404_NOT_FOUND)
    set_default_method(method)
    return Response({
        'message': 'Default payment method updated successfully',
        'payment_method': SavedPaymentMethodSerializer(method).data,
    })


# Admin payment management
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_method_list_create(request):
    if request.method == 'GET':
        methods = PaymentMethod.objects.all()
        is_active = parse_bool(request.query_params.get('is_active'))
        if is_active is not None:
            methods = methods.filter(is_active=is_active)
        method_type = request.query_params.get('type')
        if method_type:
            methods = methods.filter(type=method_type)
        return Response({'payment_methods': PaymentMethodSerializer(methods, many=True, context=_context(request)).data})

    serializer = PaymentMethodSerializer(data=request.data, context=_context(request))
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    method = serializer.save()
    create_activity_log(request=request, action='create', model_name='PaymentMethod',
                        object_id=method.id, object_name=method.name)
    return Response({'message': 'Payment method created successfully', 'payment_method': serializer.data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_method_detail(request, pk):
    method = get_object_or_404(PaymentMethod, pk=pk)

    if request.method == 'GET':
        return Response(PaymentMethodSerializer(method, context=_context(request)).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = PaymentMethodSerializer(method, data=request.data, partial=request.method == 'PATCH',
                                             context=_context(request))
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        create_activity_log(request=request, action='update', model_name='PaymentMethod',
                            object_id=method.id, object_name=method.name)
        return Response({'message': 'Payment method updated successfully', 'payment_method': serializer.data})

    name = method.name
    method.delete()
    create_activity_log(request=request, action='delete', model_name='PaymentMethod', object_id=pk, object_name=name)
    return Response({'message': 'Payment method deleted successfully'})


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_transaction_list_create(request):
    """Transactions with status/method/search/date filters, or record one for an order"""
    if request.method == 'GET':
        queryset = Transaction.objects.select_related('order')

        txn_status = request.query_params.get('status')
        if txn_status:
            queryset = queryset.filter(status=txn_status)
        payment_method = request.query_params.get('payment_method')
        if payment_method:
            queryset = queryset.filter(payment_method=payment_method)
        order_param = request.query_params.get('order')
        if order_param:
            order_id = parse_id(order_param)
            if order_id is None:
                return Response({'error': 'Invalid order'}, status=status.HTTP_400_BAD_REQUEST)
            queryset = queryset.filter(order_id=order_id)

        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(transaction_id__icontains=search) |
                Q(order__order_number__icontains=search) |
                Q(customer_name__icontains=search) |
                Q(customer_email__icontains=search)
            )

        date_from = parse_date(request.query_params.get('date_from'))
        date_to = parse_date(request.query_params.get('date_to'))
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)

        sort_by = request.query_params.get('sort_by', 'created_at')
        if sort_by not in TRANSACTION_SORT_FIELDS:
            sort_by = 'created_at'
        prefix = '' if request.query_params.get('sort_order', 'desc').lower() == 'asc' else '-'
        queryset = queryset.order_by(f'{prefix}{sort_by}', f'{prefix}id')
        return Response(paginate(request, queryset, TransactionSerializer, key='transactions'))

    serializer = TransactionCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)

    order = Order.objects.select_related('user').filter(pk=data.pop('order_id')).first()
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)
    try:
        txn = create_transaction(order, **data)
    except PaymentError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='create', model_name='Transaction',
                        object_id=txn.id, object_name=txn.transaction_id,
                        changes={'order': order.order_number, 'amount': str(txn.amount)})
    return Response({'message': 'Transaction created successfully', 'transaction': TransactionSerializer(txn).data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_transaction_detail(request, pk):
    txn = get_object_or_404(Transaction.objects.select_related('order'), pk=pk)
    data = TransactionSerializer(txn).data
    data['refunds'] = RefundSerializer(txn.refunds.select_related('order', 'requested_by', 'approved_by'), many=True).data
    return Response(data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAdminRole])
def admin_transaction_status(request, pk):
    txn = get_object_or_404(Transaction, pk=pk)
    serializer = TransactionStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    old_status = txn.status
    txn = update_transaction_status(
        txn, data['status'],
        notes=data.get('notes'),
        gateway_transaction_id=data.get('gateway_transaction_id'),
        gateway_response=data.get('gateway_response'),
    )
    create_activity_log(request=request, action='payment_status', model_name='Transaction',
                        object_id=txn.id, object_name=txn.transaction_id,
                        changes={'from': old_status, 'to': txn.status})
    return Response({'message': 'Transaction status updated successfully', 'transaction': TransactionSerializer(txn).data})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admin_transaction_refund(request, pk):
    txn = get_object_or_404(Transaction, pk=pk)
    serializer = RefundCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        refund = process_refund(txn, serializer.validated_data['amount'], serializer.validated_data['reason'],
                                requested_by=request.user)
    except PaymentError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='refund', model_name='Transaction',
                        object_id=txn.id, object_name=txn.transaction_id,
                        changes={'amount': str(refund.amount), 'reason': refund.reason})
    txn.refresh_from_db()
    return Response({
        'message': 'Refund processed successfully',
        'refund': RefundSerializer(refund).data,
        'transaction': TransactionSerializer(txn).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_refund_list(request):
    queryset = Refund.objects.select_related('transaction', 'order', 'requested_by', 'approved_by')
    refund_status = request.query_params.get('status')
    if refund_status:
        queryset = queryset.filter(status=refund_status)
    search = request.query_params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(transaction__transaction_id__icontains=search) |
            Q(order__order_number__icontains=search) |
            Q(reason__icontains=search)
        )
    return Response(paginate(request, queryset.order_by('-created_at'), RefundSerializer, key='refunds'))


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAdminRole])
def admin_refund_status(request, pk):
    refund = get_object_or_404(Refund.objects.select_related('transaction', 'order'), pk=pk)
    serializer = RefundStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    old_status = refund.status
    refund = update_refund_status(refund, serializer.validated_data['status'], approved_by=request.user)
    create_activity_log(request=request, action='refund', model_name='Refund', object_id=refund.id,
                        object_name=refund.transaction.transaction_id,
                        changes={'from': old_status, 'to': refund.status})
    return Response({'message': 'Refund status updated successfully', 'refund': RefundSerializer(refund).data})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_payment_stats(request):
    counts = dict(Transaction.objects.order_by().values_list('status').annotate(count=Count('id')))
    completed_amount = Transaction.objects.filter(
        status__in=(Transaction.STATUS_COMPLETED, Transaction.STATUS_PARTIALLY_REFUNDED)
    ).aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
    refunded_amount = Transaction.objects.aggregate(total=Sum('refund_amount'))['total'] or Decimal('0.00')

    refund_stats = {
        row['status']: {'count': row['count'], 'total': float(row['total'] or 0)}
        for row in Refund.objects.order_by().values('status').annotate(count=Count('id'), total=Sum('amount'))
    }
    return Response({
        'total_transactions': sum(counts.values()),
        'completed_transactions': counts.get(Transaction.STATUS_COMPLETED, 0),
        'pending_transactions': counts.get(Transaction.STATUS_PENDING, 0),
        'failed_transactions': counts.get(Transaction.STATUS_FAILED, 0),
        'refunded_transactions': counts.get(Transaction.STATUS_REFUNDED, 0)
        + counts.get(Transaction.STATUS_PARTIALLY_REFUNDED, 0),
        'total_amount': float(completed_amount),
        'refunded_amount': float(refunded_amount),
        'refund_stats': refund_stats,
    })
