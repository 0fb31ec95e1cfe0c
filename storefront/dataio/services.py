"""Export / import pipeline shared by the API and the management commands"""
import logging

from django.conf import settings
from django.utils import timezone

from storefront.catalog.services import refresh_all_category_counts
from storefront.core.cache_signals import suspend_cache_signals
from storefront.core.cache_utils import invalidate_catalog_cache, invalidate_analytics_cache
from .exporters import EXPORTERS, export_rows
from .formats import CONTENT_TYPES, FormatError, normalize_format, render, parse
from .importers import IMPORTERS, import_rows
from .models import DataTransferJob

logger = logging.getLogger(__name__)

TYPE_ALIASES = {'customers': 'users'}


class DataTransferError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


def normalize_type(value, direction):
    value = (value or '').strip().lower()
    value = TYPE_ALIASES.get(value, value)
    supported = EXPORTERS if direction == 'export' else IMPORTERS
    if value not in supported:
        raise DataTransferError(f'Invalid {direction} type: {value or "none"}')
    return value


def _format(value):
    try:
        return normalize_format(value)
    except FormatError as e:
        raise DataTransferError(str(e))


def run_export(data_type, file_format='json', filters=None, user=None):
    """
    Render the rows of `data_type` in `file_format`.
    Returns (job, content, filename, content_type).
    """
    data_type = normalize_type(data_type, 'export')
    file_format = _format(file_format)
    filename = f"{data_type}_{timezone.localdate():%Y-%m-%d}.{file_format}"

    job = DataTransferJob.objects.create(
        direction='export', data_type=data_type, file_format=file_format, filename=filename,
        status=DataTransferJob.STATUS_PROCESSING, options={'filters': filters or {}},
        created_by=user if user is not None and user.is_authenticated else None,
    )
    try:
        rows = export_rows(data_type, filters)
        content = render(rows, file_format)
    except Exception as e:
        logger.error(f"Export of {data_type} failed: {e}")
        _finish(job, DataTransferJob.STATUS_FAILED, error_message=str(e))
        raise DataTransferError(f'Export failed: {e}')

    _finish(job, DataTransferJob.STATUS_COMPLETED, total_rows=len(rows), processed_rows=len(rows))
    logger.info(f"Exported {len(rows)} {data_type} rows as {file_format}")
    return job, content, filename, CONTENT_TYPES[file_format]


def read_upload(uploaded_file):
    """(format, rows) of an uploaded file; the format comes from its extension"""
    try:
        file_format = normalize_format(uploaded_file.name.rsplit('.', 1)[-1] if '.' in uploaded_file.name else '')
        return file_format, parse(uploaded_file.read(), file_format)
    except FormatError as e:
        raise DataTransferError(str(e))


def run_import(data_type, rows, file_format='json', update_existing=False, user=None, filename=''):
    """Import `rows`, record the job and return (job, result)"""
    data_type = normalize_type(data_type, 'import')
    file_format = _format(file_format)
    if not isinstance(rows, list):
        raise DataTransferError('Import data must be a list of rows')
    max_rows = getattr(settings, 'DATA_IMPORT_MAX_ROWS', 5000)
    if len(rows) > max_rows:
        raise DataTransferError(f'Too many rows: at most {max_rows} rows can be imported at once')

    job = DataTransferJob.objects.create(
        direction='import', data_type=data_type, file_format=file_format, filename=filename or '',
        status=DataTransferJob.STATUS_PROCESSING, options={'update_existing': update_existing},
        total_rows=len(rows), created_by=user if user is not None and user.is_authenticated else None,
    )

    # One cache invalidation for the whole batch instead of one per row
    with suspend_cache_signals():
        result = import_rows(data_type, rows, update_existing=update_existing)
        if data_type == 'products' and (result['created'] or result['updated']):
            refresh_all_category_counts()
    invalidate_catalog_cache()
    invalidate_analytics_cache()

    _finish(
        job, DataTransferJob.STATUS_COMPLETED,
        processed_rows=result['total'], created_count=result['created'], updated_count=result['updated'],
        error_count=result['errors'], error_details=result['error_details'],
    )
    logger.info(
        f"Imported {data_type}: {result['created']} created, {result['updated']} updated, "
        f"{result['errors']} errors of {result['total']} rows"
    )
    return job, result


def _finish(job, status, **fields):
    for field, value in fields.items():
        setattr(job, field, value)
    job.status = status
    job.completed_at = timezone.now()
    job.save()
