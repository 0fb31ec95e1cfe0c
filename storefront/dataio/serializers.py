from rest_framework import serializers

from .models import DataTransferJob


class DataTransferJobSerializer(serializers.ModelSerializer):
    created_by_email = serializers.EmailField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = DataTransferJob
        fields = ['id', 'direction', 'data_type', 'file_format', 'filename', 'status', 'options',
                  'total_rows', 'processed_rows', 'created_count', 'updated_count', 'error_count',
                  'error_message', 'error_details', 'created_by', 'created_by_email', 'created_at', 'completed_at']
        read_only_fields = fields


class ExportRequestSerializer(serializers.Serializer):
    type = serializers.CharField()
    format = serializers.CharField(required=False, default='json')
    filters = serializers.DictField(required=False, default=dict)


class ImportRequestSerializer(serializers.Serializer):
    type = serializers.CharField()
    data = serializers.ListField(child=serializers.DictField(), required=False)
    file = serializers.FileField(required=False)
    options = serializers.DictField(required=False, default=dict)
    update_existing = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if attrs.get('file') is None and attrs.get('data') is None:
            raise serializers.ValidationError({'data': 'Provide a file or a data list'})
        return attrs
