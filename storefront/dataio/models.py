from django.conf import settings
from django.db import models


class DataTransferJob(models.Model):
    """One export or import run and its outcome"""
    DIRECTION_CHOICES = [
        ('export', 'Export'),
        ('import', 'Import'),
    ]
    TYPE_CHOICES = [
        ('users', 'Users'),
        ('products', 'Products'),
        ('categories', 'Categories'),
        ('orders', 'Orders'),
    ]
    FORMAT_CHOICES = [
        ('csv', 'CSV'),
        ('json', 'JSON'),
        ('xlsx', 'Excel'),
    ]
    STATUS_PENDING = 'pending'
    STATUS_PROCESSING = 'processing'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PROCESSING, 'Processing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]

    direction = models.CharField(max_length=10, choices=DIRECTION_CHOICES, db_index=True)
    data_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    file_format = models.CharField(max_length=10, choices=FORMAT_CHOICES)
    filename = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    options = models.JSONField(default=dict, blank=True)
    total_rows = models.PositiveIntegerField(default=0)
    processed_rows = models.PositiveIntegerField(default=0)
    created_count = models.PositiveIntegerField(default=0)
    updated_count = models.PositiveIntegerField(default=0)
    error_count = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True)
    error_details = models.JSONField(default=list, blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='data_transfer_jobs')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.direction} {self.data_type} ({self.file_format}) - {self.status}"

    class Meta:
        db_table = 'data_transfer_jobs'
        ordering = ['-created_at']
