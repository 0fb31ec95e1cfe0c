"""Shared helpers: activity logging, request parsing, pagination, localisation"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.paginator import Paginator

from .models import ActivityLog

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_activity_log(request=None, action=None, model_name=None, object_id=None,
                        changes=None, user=None, object_name=None):
    """
    Create an activity log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, login, order_create, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, order number)
    """
    if not action or not model_name or object_id is None:
        logger.warning(
            f"Activity log skipped: missing required fields "
            f"(action={action}, model_name={model_name}, object_id={object_id})"
        )
        return None

    try:
        log_user = user
        if log_user is None and request is not None and hasattr(request, 'user'):
            log_user = request.user

        return ActivityLog.objects.create(
            user=log_user if log_user is not None and log_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=(str(object_name)[:255] if object_name else None),
            changes=changes or {},
            ip_address=get_client_ip(request),
        )
    except Exception as e:
        # Don't fail the main operation if activity logging fails
        logger.error(f"Failed to create activity log: {str(e)}")
        return None


def parse_bool(value):
    """Parse a query-string boolean; returns None when absent or unrecognised"""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    value = str(value).strip().lower()
    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False
    return None


def parse_date(value):
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date, None when invalid"""
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], '%Y-%m-%d').date()
    except (TypeError, ValueError):
        return None


def parse_int(value, default, minimum=None, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = default
    if minimum is not None:
        number = max(minimum, number)
    if maximum is not None:
        number = min(maximum, number)
    return number


def parse_id(value):
    """Positive integer id from a query parameter, None when it is not one"""
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def parse_decimal(value):
    """Finite Decimal from a query parameter, None when invalid (NaN and Infinity included)"""
    try:
        number = Decimal(str(value).strip())
    except (TypeError, ValueError, InvalidOperation):
        return None
    return number if number.is_finite() else None


def paginate(request, queryset, serializer_class, key='results', context=None, default_limit=DEFAULT_PAGE_SIZE):
    """
    Paginate a queryset with ?page= and ?limit= and serialize the page.

    Returns the response payload:
        {<key>: [...], 'pagination': {'page', 'limit', 'total', 'pages'}}
    """
    page = parse_int(request.query_params.get('page'), 1, minimum=1)
    limit = parse_int(request.query_params.get('limit'), default_limit, minimum=1, maximum=MAX_PAGE_SIZE)

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    if context is None:
        context = {'request': request}
    serializer = serializer_class(page_obj.object_list, many=True, context=context)
    return {
        key: serializer.data,
        'pagination': {
            'page': page_obj.number,
            'limit': limit,
            'total': paginator.count,
            'pages': paginator.num_pages if paginator.count else 0,
        },
    }


def get_request_language(request):
    """
    Resolve the response language: ?lang= first, then Accept-Language,
    then the default storefront language (vi).
    """
    supported = getattr(settings, 'SUPPORTED_LANGUAGES', ['vi', 'en', 'ja'])
    default = supported[0]
    if request is None:
        return default

    params = getattr(request, 'query_params', None) or getattr(request, 'GET', {})
    lang = (params.get('lang') or '').strip().lower()
    if lang in supported:
        return lang

    header = request.META.get('HTTP_ACCEPT_LANGUAGE', '')
    for part in header.split(','):
        code = part.split(';')[0].strip().lower()[:2]
        if code in supported:
            return code
    return default


def localized(obj, field, lang):
    """
    Return obj.<field>_<lang>, falling back to the Vietnamese base field when the
    translation is blank.
    """
    base = getattr(obj, field, '') or ''
    if lang and lang != 'vi':
        translated = getattr(obj, f'{field}_{lang}', '') or ''
        if translated:
            return translated
    return base
