"""
Management command to export storefront data to a file
"""
import os

from django.core.management.base import BaseCommand, CommandError

from storefront.dataio.services import DataTransferError, run_export


class Command(BaseCommand):
    help = "Exports users, products, categories or orders to csv, json or xlsx"

    def add_arguments(self, parser):
        parser.add_argument('type', help='users (customers), products, categories or orders')
        parser.add_argument('--format', dest='file_format', default='csv', help='csv, json or xlsx (default: csv)')
        parser.add_argument('--output-dir', default='.', help='Directory for the exported file')
        parser.add_argument('--status', help='Only rows with this status (users, orders)')
        parser.add_argument('--category', help='Only products of this category id or slug')
        parser.add_argument('--active-only', action='store_true', help='Only active products / categories')
        parser.add_argument('--date-from', help='Created on or after YYYY-MM-DD')
        parser.add_argument('--date-to', help='Created on or before YYYY-MM-DD')

    def handle(self, *args, **options):
        filters = {
            key: options[key]
            for key in ('status', 'category', 'date_from', 'date_to')
            if options.get(key)
        }
        if options['active_only']:
            filters['is_active'] = 'true'

        try:
            job, content, filename, _ = run_export(options['type'], options['file_format'], filters=filters)
        except DataTransferError as e:
            raise CommandError(e.message)

        output_dir = options['output_dir']
        os.makedirs(output_dir, exist_ok=True)
        path = os.path.join(output_dir, filename)
        with open(path, 'wb') as f:
            f.write(content)

        self.stdout.write(self.style.SUCCESS(f"Exported {job.total_rows} {job.data_type} rows to {path}"))
