"""Catalog bookkeeping shared by the views, imports and management commands"""
import logging

from .models import Category

logger = logging.getLogger(__name__)


def refresh_category_counts(*category_ids):
    """Recompute product_count for the given categories (None entries are ignored)"""
    updated = {}
    for category in Category.objects.filter(id__in=[cid for cid in category_ids if cid]):
        updated[category.id] = category.refresh_product_count()
    return updated


def refresh_all_category_counts():
    """Recompute product_count for every category; returns the number of categories changed"""
    changed = 0
    for category in Category.objects.all():
        before = category.product_count
        if category.refresh_product_count() != before:
            changed += 1
    logger.info(f"Product counts refreshed, {changed} categories changed")
    return changed


def build_category_tree(categories, serializer_class, context):
    """
    Nest serialized categories under their parents.
    Categories whose parent is not in the list become roots.
    """
    nodes = {}
    for category in categories:
        data = dict(serializer_class(category, context=context).data)
        data['children'] = []
        nodes[category.id] = (category, data)

    roots = []
    for category, data in nodes.values():
        if category.parent_id and category.parent_id in nodes:
            nodes[category.parent_id][1]['children'].append(data)
        else:
            roots.append(data)
    return roots
