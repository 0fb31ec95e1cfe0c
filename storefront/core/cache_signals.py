"""
Cache invalidation signals
Automatically invalidate cache when catalog or sales data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_catalog_cache, invalidate_analytics_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

CATALOG_MODELS = ('Product', 'Category')
SALES_MODELS = ('Order', 'OrderItem', 'Transaction', 'Refund', 'Review', 'User')


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Used by bulk imports to prevent clearing the cache once per row.
    Invalidate manually after the block.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_catalog_on_change(sender, instance, **kwargs):
    """Invalidate catalog caches when products or categories change"""
    if is_suspended() or sender.__name__ not in CATALOG_MODELS:
        return
    if sender._meta.app_label != 'catalog':
        return
    try:
        invalidate_catalog_cache()
        # Product counts and stock feed the dashboard too
        invalidate_analytics_cache()
    except Exception as e:
        logger.warning(f"Error in invalidate_catalog_on_change signal: {e}")


@receiver([post_save, post_delete])
def invalidate_analytics_on_change(sender, instance, **kwargs):
    """Invalidate dashboard and analytics caches when sales data changes"""
    if is_suspended() or sender.__name__ not in SALES_MODELS:
        return
    try:
        invalidate_analytics_cache()
    except Exception as e:
        logger.warning(f"Error in invalidate_analytics_on_change signal: {e}")
