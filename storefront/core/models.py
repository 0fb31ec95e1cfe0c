from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class StorefrontUserManager(UserManager):
    """User manager that treats the e-mail address as the login identifier"""

    def create_user(self, username=None, email=None, password=None, **extra_fields):
        email = self.normalize_email(email).lower() if email else email
        if not username:
            username = email
        return super().create_user(username, email, password, **extra_fields)

    def create_superuser(self, username=None, email=None, password=None, **extra_fields):
        email = self.normalize_email(email).lower() if email else email
        if not username:
            username = email
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """Storefront account: customers and back-office admins"""
    ROLE_CUSTOMER = 'customer'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_CUSTOMER, 'Customer'),
        (ROLE_ADMIN, 'Admin'),
    ]

    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    STATUS_BLOCKED = 'blocked'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
        (STATUS_BLOCKED, 'Blocked'),
    ]

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    address = models.TextField(blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CUSTOMER, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    total_orders = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    last_active = models.DateTimeField(null=True, blank=True)
    reset_password_token = models.CharField(max_length=128, blank=True, null=True, db_index=True)
    reset_password_expires = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StorefrontUserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower()
        # Blocked and inactive accounts cannot authenticate
        self.is_active = self.status == self.STATUS_ACTIVE
        super().save(*args, **kwargs)

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN or self.is_superuser

    def __str__(self):
        return self.name or self.email

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']


class Address(models.Model):
    """Saved shipping/billing address of a customer; at most one default per user"""
    TYPE_SHIPPING = 'shipping'
    TYPE_BILLING = 'billing'
    TYPE_CHOICES = [
        (TYPE_SHIPPING, 'Shipping'),
        (TYPE_BILLING, 'Billing'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='addresses')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_SHIPPING)
    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20)
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    zip_code = models.CharField(max_length=20)
    country = models.CharField(max_length=100)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.full_name}, {self.address}, {self.city}"

    class Meta:
        db_table = 'addresses'
        ordering = ['-is_default', 'created_at']


class SiteSettings(models.Model):
    """Storefront-wide settings (single row)"""
    website_name = models.CharField(max_length=200, default='Koshiro Japan Style Fashion')
    website_description = models.TextField(default='Thời trang Nhật Bản truyền thống và hiện đại')
    contact_email = models.EmailField(default='contact@koshiro-fashion.com')
    contact_phone = models.CharField(max_length=50, default='+84 123 456 789')
    primary_color = models.CharField(max_length=20, default='#3b82f6')
    enable_dark_mode = models.BooleanField(default=True)
    maintenance_mode = models.BooleanField(default=False)
    debug_mode = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        """Return the settings row, creating it with defaults on first use"""
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj

    def __str__(self):
        return self.website_name

    class Meta:
        db_table = 'site_settings'
        verbose_name_plural = 'site settings'


class ActivityLog(models.Model):
    """Activity trail for logins and back-office changes"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('register', 'Register'),
        ('password_reset', 'Password Reset'),
        ('order_create', 'Order Created'),
        ('order_cancel', 'Order Cancelled'),
        ('order_status', 'Order Status Changed'),
        ('payment_status', 'Payment Status Changed'),
        ('refund', 'Refund'),
        ('shipment_status', 'Shipment Status Changed'),
        ('export', 'Data Export'),
        ('import', 'Data Import'),
        ('settings_update', 'Settings Updated'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='activity_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, order number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id}"

    class Meta:
        db_table = 'activity_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='activity_lo_created_6c1f0e_idx'),
            models.Index(fields=['action'], name='activity_lo_action_0f3b9a_idx'),
            models.Index(fields=['model_name'], name='activity_lo_model_n_4d2c7e_idx'),
        ]
