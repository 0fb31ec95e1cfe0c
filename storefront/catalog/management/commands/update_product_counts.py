"""
Management command to recompute product_count on every category
"""
from django.core.management.base import BaseCommand
from storefront.catalog.models import Category
from storefront.catalog.services import refresh_all_category_counts


class Command(BaseCommand):
    help = "Recomputes the cached product_count of every category"

    def add_arguments(self, parser):
        parser.add_argument(
            '--verbose-list',
            action='store_true',
            help='Print the resulting count of each category',
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("UPDATING CATEGORY PRODUCT COUNTS"))
        changed = refresh_all_category_counts()

        if options['verbose_list']:
            for category in Category.objects.order_by('sort_order', 'name'):
                self.stdout.write(f"  {category.slug}: {category.product_count}")

        self.stdout.write(self.style.SUCCESS(f"Done. {changed} categories changed."))
