from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal


class ShippingMethod(models.Model):
    """Delivery option offered at checkout"""
    TYPE_CHOICES = [
        ('standard', 'Standard'),
        ('express', 'Express'),
        ('overnight', 'Overnight'),
        ('pickup', 'Store Pickup'),
    ]

    name = models.CharField(max_length=200)
    name_en = models.CharField(max_length=200, blank=True)
    name_ja = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    description_en = models.TextField(blank=True)
    description_ja = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='standard')
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'),
                               validators=[MinValueValidator(Decimal('0'))])
    free_shipping_threshold = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                                  validators=[MinValueValidator(Decimal('0'))])
    estimated_days = models.PositiveIntegerField(default=3, validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True, db_index=True)
    supported_regions = models.JSONField(default=list, blank=True)
    weight_limit = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    dimensions_limit = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def cost_for(self, subtotal):
        """Shipping cost for an order subtotal; free at or above the threshold"""
        if self.free_shipping_threshold is not None and subtotal >= self.free_shipping_threshold:
            return Decimal('0.00')
        return self.cost

    def serves_region(self, region):
        if not region or not self.supported_regions:
            return True
        return region.strip().lower() in {r.strip().lower() for r in self.supported_regions}

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'shipping_methods'
        ordering = ['cost', 'name']


class Shipment(models.Model):
    """Physical delivery of an order"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('picked_up', 'Picked Up'),
        ('in_transit', 'In Transit'),
        ('out_for_delivery', 'Out for Delivery'),
        ('delivered', 'Delivered'),
        ('failed', 'Failed'),
        ('returned', 'Returned'),
    ]

    order = models.ForeignKey('orders.Order', on_delete=models.PROTECT, related_name='shipments')
    tracking_number = models.CharField(max_length=50, unique=True, db_index=True)
    shipping_method = models.ForeignKey(ShippingMethod, on_delete=models.PROTECT, related_name='shipments')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=30, blank=True)
    shipping_address = models.JSONField(default=dict)
    carrier = models.CharField(max_length=100, blank=True)
    carrier_tracking_url = models.URLField(max_length=500, blank=True)
    estimated_delivery = models.DateTimeField(null=True, blank=True)
    actual_delivery = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    weight = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    dimensions = models.JSONField(null=True, blank=True)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.tracking_number

    class Meta:
        db_table = 'shipments'
        ordering = ['-created_at']


class TrackingEvent(models.Model):
    """Status change or checkpoint of a shipment"""
    shipment = models.ForeignKey(Shipment, on_delete=models.CASCADE, related_name='tracking_events')
    status = models.CharField(max_length=20, choices=Shipment.STATUS_CHOICES)
    location = models.CharField(max_length=200, default='Unknown')
    description = models.CharField(max_length=500)
    timestamp = models.DateTimeField()
    carrier = models.CharField(max_length=100, blank=True)

    def __str__(self):
        return f"{self.shipment.tracking_number}: {self.status}"

    class Meta:
        db_table = 'tracking_events'
        ordering = ['-timestamp']
