from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from storefront.core.permissions import IsAdminRole
from storefront.core.utils import parse_int
from . import services


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_stats(request):
    """Dashboard totals with 30-day trends"""
    return Response(services.dashboard_stats())


@api_view(['GET'])
@permission_classes([IsAdminRole])
def revenue_analytics(request):
    months = parse_int(request.query_params.get('months'), 12, minimum=1, maximum=36)
    return Response(services.monthly_revenue(months))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def daily_revenue_analytics(request):
    days = parse_int(request.query_params.get('days'), 30, minimum=1, maximum=365)
    return Response(services.daily_revenue(days))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def product_analytics(request):
    limit = parse_int(request.query_params.get('limit'), 10, minimum=1, maximum=100)
    threshold = parse_int(request.query_params.get('threshold'), 10, minimum=0)
    return Response(services.product_analytics(limit, threshold))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def order_analytics(request):
    return Response(services.order_analytics())


@api_view(['GET'])
@permission_classes([IsAdminRole])
def customer_analytics(request):
    days = parse_int(request.query_params.get('days'), 30, minimum=1, maximum=365)
    limit = parse_int(request.query_params.get('limit'), 10, minimum=1, maximum=100)
    return Response(services.customer_analytics(days, limit))
