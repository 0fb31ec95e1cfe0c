"""
Aggregates behind the admin dashboard and analytics pages.

Every function is cached under a "dashboard_stats" or "analytics_" key so
that order and catalog writes invalidate it (see core.cache_signals).
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Sum, Count, Avg, DecimalField
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone

from storefront.catalog.models import Category, Product
from storefront.core.cache_utils import cached_query, DASHBOARD_STATS_CACHE_TTL, ANALYTICS_CACHE_TTL
from storefront.orders.models import Order, OrderItem

logger = logging.getLogger(__name__)
User = get_user_model()

TREND_WINDOW_DAYS = 30


def _money(value):
    return float(value or Decimal('0.00'))


def _share(part, whole):
    """Percentage of `whole` that `part` represents, 2 decimals"""
    if not whole:
        return 0
    return round(float(part) / float(whole) * 100, 2)


@cached_query(cache_ttl=DASHBOARD_STATS_CACHE_TTL, key_prefix="dashboard_stats")
def dashboard_stats():
    """
    Headline totals, each with a trend: the share of the total created in
    the last 30 days.
    """
    since = timezone.now() - timedelta(days=TREND_WINDOW_DAYS)
    completed = Order.objects.filter(status=Order.STATUS_COMPLETED)

    total_orders = Order.objects.count()
    total_products = Product.objects.count()
    total_users = User.objects.count()
    total_revenue = completed.aggregate(total=Sum('total_amount'))['total'] or Decimal('0.00')
    recent_revenue = completed.filter(created_at__gte=since).aggregate(
        total=Sum('total_amount')
    )['total'] or Decimal('0.00')

    return {
        'total_orders': total_orders,
        'total_products': total_products,
        'total_users': total_users,
        'total_revenue': _money(total_revenue),
        'orders_trend': _share(Order.objects.filter(created_at__gte=since).count(), total_orders),
        'products_trend': _share(Product.objects.filter(created_at__gte=since).count(), total_products),
        'users_trend': _share(User.objects.filter(created_at__gte=since).count(), total_users),
        'revenue_trend': _share(recent_revenue, total_revenue),
    }


@cached_query(cache_ttl=ANALYTICS_CACHE_TTL, key_prefix="analytics_revenue")
def monthly_revenue(months):
    """Completed revenue and order count per month for the last `months` months"""
    today = timezone.localdate()
    start_month = today.year * 12 + today.month - 1 - (months - 1)
    start = today.replace(year=start_month // 12, month=start_month % 12 + 1, day=1)

    rows = Order.objects.filter(
        status=Order.STATUS_COMPLETED, created_at__date__gte=start
    ).annotate(
        month=TruncMonth('created_at')
    ).values('month').annotate(
        revenue=Sum('total_amount', output_field=DecimalField()),
        orders=Count('id'),
    ).order_by('month')
    by_month = {row['month'].strftime('%Y-%m'): row for row in rows}

    breakdown = []
    for offset in range(months):
        index = start_month + offset
        key = f"{index // 12:04d}-{index % 12 + 1:02d}"
        row = by_month.get(key)
        breakdown.append({
            'month': key,
            'revenue': _money(row['revenue']) if row else 0.0,
            'orders': row['orders'] if row else 0,
        })
    return {
        'months': months,
        'total_revenue': round(sum(item['revenue'] for item in breakdown), 2),
        'monthly_breakdown': breakdown,
    }


@cached_query(cache_ttl=ANALYTICS_CACHE_TTL, key_prefix="analytics_daily_revenue")
def daily_revenue(days):
    today = timezone.localdate()
    start = today - timedelta(days=days - 1)
    rows = Order.objects.filter(
        status=Order.STATUS_COMPLETED, created_at__date__gte=start
    ).annotate(
        date=TruncDate('created_at')
    ).values('date').annotate(
        revenue=Sum('total_amount', output_field=DecimalField()),
        orders=Count('id'),
    ).order_by('date')
    by_date = {row['date']: row for row in rows}

    breakdown = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        row = by_date.get(day)
        breakdown.append({
            'date': day.isoformat(),
            'revenue': _money(row['revenue']) if row else 0.0,
            'orders': row['orders'] if row else 0,
        })
    return {
        'days': days,
        'total_revenue': round(sum(item['revenue'] for item in breakdown), 2),
        'daily_breakdown': breakdown,
    }


@cached_query(cache_ttl=ANALYTICS_CACHE_TTL, key_prefix="analytics_products")
def product_analytics(limit, low_stock_threshold):
    top_sellers = OrderItem.objects.exclude(
        order__status=Order.STATUS_CANCELLED
    ).filter(
        product__isnull=False
    ).values(
        'product__id', 'product__name', 'product__sku'
    ).annotate(
        total_quantity=Sum('quantity'),
        order_count=Count('order', distinct=True),
    ).order_by('-total_quantity', 'product__id')[:limit]

    low_stock = Product.objects.filter(
        is_active=True, stock__lte=low_stock_threshold
    ).order_by('stock', 'name').values('id', 'name', 'sku', 'stock')[:limit]

    by_category = Category.objects.annotate(
        products_total=Count('products')
    ).order_by('-products_total', 'name').values('id', 'name', 'slug', 'products_total')

    return {
        'top_sellers': [
            {
                'product_id': row['product__id'],
                'name': row['product__name'],
                'sku': row['product__sku'],
                'total_quantity': row['total_quantity'],
                'order_count': row['order_count'],
            }
            for row in top_sellers
        ],
        'low_stock_threshold': low_stock_threshold,
        'low_stock': list(low_stock),
        'products_by_category': [
            {'category_id': row['id'], 'name': row['name'], 'slug': row['slug'], 'count': row['products_total']}
            for row in by_category
        ],
        'total_products': Product.objects.count(),
        'active_products': Product.objects.filter(is_active=True).count(),
        'out_of_stock': Product.objects.filter(stock=0).count(),
    }


@cached_query(cache_ttl=ANALYTICS_CACHE_TTL, key_prefix="analytics_orders")
def order_analytics():
    by_status = {key: 0 for key, _ in Order.STATUS_CHOICES}
    for row in Order.objects.order_by().values('status').annotate(count=Count('id')):
        by_status[row['status']] = row['count']

    by_payment_status = {key: 0 for key, _ in Order.PAYMENT_STATUS_CHOICES}
    for row in Order.objects.order_by().values('payment_status').annotate(count=Count('id')):
        by_payment_status[row['payment_status']] = row['count']

    average = Order.objects.exclude(status=Order.STATUS_CANCELLED).aggregate(avg=Avg('total_amount'))['avg']
    return {
        'total_orders': sum(by_status.values()),
        'by_status': by_status,
        'by_payment_status': by_payment_status,
        'average_order_value': round(_money(average), 2),
    }


@cached_query(cache_ttl=ANALYTICS_CACHE_TTL, key_prefix="analytics_customers")
def customer_analytics(days, limit):
    since = timezone.now() - timedelta(days=days)
    customers = User.objects.filter(role=User.ROLE_CUSTOMER)
    top_spenders = customers.filter(total_spent__gt=0).order_by('-total_spent', 'id').values(
        'id', 'email', 'name', 'total_orders', 'total_spent'
    )[:limit]
    return {
        'days': days,
        'total_customers': customers.count(),
        'active_customers': customers.filter(status=User.STATUS_ACTIVE).count(),
        'new_customers': customers.filter(created_at__gte=since).count(),
        'top_spenders': [dict(row, total_spent=_money(row['total_spent'])) for row in top_spenders],
    }
