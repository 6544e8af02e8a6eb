"""URL routing for listings and categories."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import CategoryViewSet, ListingViewSet

app_name = "properties"

router = SimpleRouter()
router.register(r"categories", CategoryViewSet, basename="category")
router.register(r"", ListingViewSet, basename="listing")

urlpatterns = [
    path("", include(router.urls)),
]
