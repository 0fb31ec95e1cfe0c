from django.contrib import admin
from .models import DataTransferJob


@admin.register(DataTransferJob)
class DataTransferJobAdmin(admin.ModelAdmin):
    list_display = ['direction', 'data_type', 'file_format', 'status', 'total_rows', 'error_count',
                    'created_by', 'created_at']
    list_filter = ['direction', 'data_type', 'file_format', 'status']
    readonly_fields = [field.name for field in DataTransferJob._meta.fields]
