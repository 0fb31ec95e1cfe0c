"""
URL configuration for the storefront project.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Koshiro Fashion Admin Panel"
admin.site.site_title = "Koshiro Fashion Admin Portal"
admin.site.index_title = "Welcome to Koshiro Japan Style Fashion"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('storefront.core.urls')),
    path('api/v1/', include('storefront.catalog.urls')),
    path('api/v1/', include('storefront.shop.urls')),
    path('api/v1/', include('storefront.orders.urls')),
    path('api/v1/', include('storefront.payments.urls')),
    path('api/v1/', include('storefront.shipping.urls')),
    path('api/v1/', include('storefront.reviews.urls')),
    path('api/v1/', include('storefront.reports.urls')),
    path('api/v1/', include('storefront.dataio.urls')),
]
