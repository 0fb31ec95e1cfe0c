"""
Management command to import storefront data from a csv, json or xlsx file
"""
import os

from django.core.management.base import BaseCommand, CommandError

from storefront.dataio.formats import FormatError, format_from_filename, parse
from storefront.dataio.services import DataTransferError, run_import


class Command(BaseCommand):
    help = "Imports users, products or categories from a csv, json or xlsx file"

    def add_arguments(self, parser):
        parser.add_argument('type', help='users (customers), products or categories')
        parser.add_argument('file', help='Path to the file to import')
        parser.add_argument(
            '--update-existing',
            action='store_true',
            help='Update users matched by email, products by sku and categories by slug',
        )

    def handle(self, *args, **options):
        path = options['file']
        if not os.path.exists(path):
            raise CommandError(f"File not found: {path}")

        try:
            file_format = format_from_filename(path)
            with open(path, 'rb') as f:
                rows = parse(f.read(), file_format)
            job, result = run_import(options['type'], rows, file_format=file_format,
                                     update_existing=options['update_existing'],
                                     filename=os.path.basename(path))
        except (FormatError, DataTransferError) as e:
            raise CommandError(str(e))

        self.stdout.write(f"Rows: {result['total']}")
        self.stdout.write(self.style.SUCCESS(f"Created: {result['created']}"))
        self.stdout.write(self.style.SUCCESS(f"Updated: {result['updated']}"))
        if result['errors']:
            self.stdout.write(self.style.ERROR(f"Errors: {result['errors']}"))
            for detail in result['error_details']:
                self.stdout.write(self.style.ERROR(f"  row {detail['row']}: {detail['error']}"))
        self.stdout.write(f"Job #{job.id} recorded")
