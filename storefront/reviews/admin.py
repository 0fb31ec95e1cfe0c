from django.contrib import admin
from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['user', 'product', 'rating', 'title', 'verified', 'helpful', 'created_at']
    list_filter = ['rating', 'verified', 'created_at']
    search_fields = ['title', 'comment', 'user__email', 'product__name']
    raw_id_fields = ['user', 'product']
