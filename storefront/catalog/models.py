from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal


class Category(models.Model):
    """Product categories (tree via parent)"""
    DISPLAY_TYPE_CHOICES = [
        ('grid', 'Grid'),
        ('list', 'List'),
        ('carousel', 'Carousel'),
    ]

    name = models.CharField(max_length=200, db_index=True)
    name_en = models.CharField(max_length=200, blank=True)
    name_ja = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    description_en = models.TextField(blank=True)
    description_ja = models.TextField(blank=True)
    slug = models.SlugField(max_length=200, unique=True)
    image = models.URLField(max_length=500, blank=True)
    banner_image = models.URLField(max_length=500, blank=True)
    parent = models.ForeignKey('self', on_delete=models.PROTECT, null=True, blank=True, related_name='children')
    product_count = models.PositiveIntegerField(default=0)
    sort_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    is_featured = models.BooleanField(default=False)
    is_visible = models.BooleanField(default=True)
    display_type = models.CharField(max_length=20, choices=DISPLAY_TYPE_CHOICES, default='grid')
    color = models.CharField(max_length=20, blank=True)
    icon = models.CharField(max_length=100, blank=True)
    meta_title = models.CharField(max_length=200, blank=True)
    meta_description = models.TextField(blank=True)
    meta_keywords = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if self.slug:
            self.slug = self.slug.lower()
        super().save(*args, **kwargs)

    def get_ancestor_ids(self):
        """IDs of every ancestor, nearest first"""
        ids = []
        node = self.parent
        while node is not None and node.id not in ids:
            ids.append(node.id)
            node = node.parent
        return ids

    def refresh_product_count(self):
        self.product_count = self.products.filter(is_active=True).count()
        Category.objects.filter(pk=self.pk).update(product_count=self.product_count)
        return self.product_count

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['sort_order', 'name']


class Product(models.Model):
    """Sellable catalog item with Vietnamese base text and English/Japanese translations"""
    name = models.CharField(max_length=255, db_index=True)
    name_en = models.CharField(max_length=255, blank=True)
    name_ja = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    description_en = models.TextField(blank=True)
    description_ja = models.TextField(blank=True)
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True, db_index=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    sale_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                     validators=[MinValueValidator(Decimal('0'))])
    original_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                         validators=[MinValueValidator(Decimal('0'))])
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='products')
    images = models.JSONField(default=list, blank=True)
    sizes = models.JSONField(default=list, blank=True)
    colors = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    stock = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    is_featured = models.BooleanField(default=False, db_index=True)
    on_sale = models.BooleanField(default=False)
    is_new = models.BooleanField(default=False)
    is_limited_edition = models.BooleanField(default=False)
    is_best_seller = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def effective_price(self):
        """Sale price while the product is on sale, list price otherwise"""
        if self.on_sale and self.sale_price is not None:
            return self.sale_price
        return self.price

    @property
    def in_stock(self):
        return self.stock > 0

    def __str__(self):
        return f"{self.name} ({self.sku or 'NO-SKU'})"

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
