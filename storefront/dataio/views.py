import json
import logging

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from storefront.core.permissions import IsAdminRole
from storefront.core.utils import create_activity_log, paginate, parse_bool
from .models import DataTransferJob
from .serializers import DataTransferJobSerializer, ExportRequestSerializer, ImportRequestSerializer
from .services import DataTransferError, run_export, run_import, read_upload

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def export_data(request):
    """
    Download users, products, categories or orders as csv/json/xlsx.
    GET takes query parameters (type, file_format and filter keys; ?format= is
    reserved for DRF content negotiation), POST a body {type, format, filters}.
    """
    if request.method == 'GET':
        params = request.query_params
        payload = {
            'type': params.get('type', ''),
            'format': params.get('file_format', 'json'),
            'filters': {key: params.get(key) for key in params if key not in ('type', 'file_format')},
        }
    else:
        payload = request.data
    serializer = ExportRequestSerializer(data=payload)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        job, content, filename, content_type = run_export(
            data['type'], data['format'], filters=data['filters'], user=request.user
        )
    except DataTransferError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='export', model_name='DataTransferJob', object_id=job.id,
                        object_name=filename, changes={'type': job.data_type, 'rows': job.total_rows})
    response = HttpResponse(content, content_type=content_type)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    response['X-Export-Job'] = str(job.id)
    return response


@api_view(['POST'])
@permission_classes([IsAdminRole])
def import_data(request):
    """
    Import users, products or categories from an uploaded file (multipart
    `file`) or a JSON body {type, data: [...], options: {update_existing}}.
    """
    payload = request.data
    # Multipart forms carry the file plus flat text fields
    if request.FILES:
        try:
            options = json.loads(payload.get('options') or '{}')
        except ValueError:
            return Response({'options': ['Invalid JSON']}, status=status.HTTP_400_BAD_REQUEST)
        payload = {
            'type': payload.get('type', ''),
            'file': request.FILES.get('file'),
            'options': options,
            'update_existing': payload.get('update_existing') or False,
        }
    serializer = ImportRequestSerializer(data=payload)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    options = data['options']
    update_existing = bool(
        data['update_existing']
        or parse_bool(options.get('update_existing'))
        or parse_bool(options.get('updateExisting'))
    )

    try:
        if data.get('file') is not None:
            file_format, rows = read_upload(data['file'])
            filename = data['file'].name
        else:
            file_format, rows, filename = 'json', data['data'], ''
        job, result = run_import(data['type'], rows, file_format=file_format,
                                 update_existing=update_existing, user=request.user, filename=filename)
    except DataTransferError as e:
        return Response({'error': e.message}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='import', model_name='DataTransferJob', object_id=job.id,
                        object_name=filename or job.data_type,
                        changes={k: result[k] for k in ('created', 'updated', 'errors', 'total')})
    return Response({'message': 'Import completed', 'job_id': job.id, **result})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def job_list(request):
    queryset = DataTransferJob.objects.select_related('created_by')
    for param, field in (('direction', 'direction'), ('type', 'data_type'), ('status', 'status')):
        value = request.query_params.get(param)
        if value:
            queryset = queryset.filter(**{field: value})
    return Response(paginate(request, queryset.order_by('-created_at'), DataTransferJobSerializer, key='jobs'))


@api_view(['GET', 'DELETE'])
@permission_classes([IsAdminRole])
def job_detail(request, pk):
    job = get_object_or_404(DataTransferJob.objects.select_related('created_by'), pk=pk)
    if request.method == 'GET':
        return Response(DataTransferJobSerializer(job).data)
    job.delete()
    return Response({'message': 'Job deleted successfully'})
