"""
URL configuration for the warehouse_ops project.

All API routes live under /api/v1; each app contributes its own router.
"""
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('users.urls')),
    path('api/v1/', include('products.urls')),
    path('api/v1/', include('warehouse.urls')),
    path('api/v1/', include('order_fulfillment.urls')),
    path('api/v1/', include('quality_control.urls')),
    path('api/v1/', include('notifications.urls')),
]
