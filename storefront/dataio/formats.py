"""
File codecs for data transfer: rows are lists of flat dicts.

CSV is written with a UTF-8 BOM so spreadsheet programs pick up Vietnamese
and Japanese text correctly.
"""
import csv
import io
import json

from django.core.serializers.json import DjangoJSONEncoder
from openpyxl import Workbook, load_workbook

FORMAT_ALIASES = {'excel': 'xlsx', 'xls': 'xlsx'}
SUPPORTED_FORMATS = ('csv', 'json', 'xlsx')

CONTENT_TYPES = {
    'csv': 'text/csv; charset=utf-8',
    'json': 'application/json',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


class FormatError(Exception):
    pass


def normalize_format(value):
    value = (value or '').strip().lower().lstrip('.')
    value = FORMAT_ALIASES.get(value, value)
    if value not in SUPPORTED_FORMATS:
        raise FormatError(f'Unsupported format: {value or "none"}')
    return value


def format_from_filename(filename):
    if not filename or '.' not in filename:
        raise FormatError('Cannot determine the file format from the file name')
    return normalize_format(filename.rsplit('.', 1)[1])


def _headers(rows):
    """Union of row keys, first-seen order"""
    headers = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)
    return headers


def write_csv(rows):
    buffer = io.StringIO()
    headers = _headers(rows)
    writer = csv.DictWriter(buffer, fieldnames=headers, extrasaction='ignore')
    writer.writeheader()
    for row in rows:
        writer.writerow({key: '' if value is None else value for key, value in row.items()})
    return buffer.getvalue().encode('utf-8-sig')


def write_json(rows):
    return json.dumps(rows, cls=DjangoJSONEncoder, ensure_ascii=False, indent=2).encode('utf-8')


def write_xlsx(rows, sheet_title='Data'):
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title[:31]
    headers = _headers(rows)
    sheet.append(headers)
    for row in rows:
        sheet.append([_cell(row.get(key)) for key in headers])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _cell(value):
    if value is None:
        return ''
    if isinstance(value, (dict, list)):
        return json.dumps(value, cls=DjangoJSONEncoder, ensure_ascii=False)
    return value


WRITERS = {
    'csv': write_csv,
    'json': write_json,
    'xlsx': write_xlsx,
}


def render(rows, file_format):
    return WRITERS[file_format](rows)


def read_csv(content):
    if isinstance(content, bytes):
        try:
            content = content.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise FormatError('CSV files must be UTF-8 encoded')
    reader = csv.DictReader(io.StringIO(content))
    return [
        {key.strip(): value for key, value in row.items() if key}
        for row in reader
        if any((value or '').strip() for value in row.values() if isinstance(value, str))
    ]


def read_json(content):
    try:
        data = json.loads(content)
    except ValueError as e:
        raise FormatError(f'Invalid JSON: {e}')
    # Accept a bare list or {"data": [...]}
    if isinstance(data, dict):
        data = data.get('data')
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise FormatError('JSON imports must be a list of objects')
    return data


def read_xlsx(content):
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise FormatError(f'Invalid Excel file: {e}')
    try:
        sheet = workbook.active
        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if not header_row:
            return []
        headers = [str(cell).strip() if cell is not None else '' for cell in header_row]
        parsed = []
        for values in rows:
            if all(value is None or value == '' for value in values):
                continue
            parsed.append({
                header: value for header, value in zip(headers, values) if header
            })
        return parsed
    finally:
        workbook.close()


READERS = {
    'csv': read_csv,
    'json': read_json,
    'xlsx': read_xlsx,
}


def parse(content, file_format):
    return READERS[file_format](content)
