"""URL configuration for the marketplace project.

The `urlpatterns` list routes URLs to views. It includes the Django admin
and the application‑level routers of the role-gated admin console.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/accounts/', include('apps.accounts.urls')),
    path('api/v1/properties/', include('apps.properties.urls')),
    path('api/v1/favorites/', include('apps.favorites.urls')),
    path('api/v1/notifications/', include('apps.notifications.urls')),
]
