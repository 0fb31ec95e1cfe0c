"""
Caching utilities for expensive aggregate queries
Uses Redis (django-redis) when configured, the local memory cache otherwise
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
FEATURED_PRODUCTS_CACHE_TTL = 120  # 2 minutes
CATEGORY_TREE_CACHE_TTL = 300  # 5 minutes
DASHBOARD_STATS_CACHE_TTL = 300  # 5 minutes
ANALYTICS_CACHE_TTL = 600  # 10 minutes


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=600, key_prefix="analytics_revenue")
        def revenue_by_month(months):
            # expensive aggregate here
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern.
    Redis is scanned for matching keys; backends without key scanning
    (local memory) are cleared entirely.
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except NotImplementedError:
        cache.clear()
        logger.debug(f"Cache backend cannot scan keys, cleared all for pattern: {pattern}")
        return
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")
        return

    try:
        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_catalog_cache():
    """Invalidate featured products and category tree caches"""
    invalidate_cache_pattern("featured_products")
    invalidate_cache_pattern("category_tree")


def invalidate_analytics_cache():
    """Invalidate dashboard stats and analytics caches"""
    invalidate_cache_pattern("dashboard_stats")
    invalidate_cache_pattern("analytics_")
