"""URL declarations for the accounts app."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import IsAdminView, UserAdminViewSet, UserRolesView

app_name = "accounts"

router = SimpleRouter()
router.register(r"users", UserAdminViewSet, basename="user-admin")

urlpatterns = [
    path("users/<int:user_id>/roles/", UserRolesView.as_view(), name="user-roles"),
    path("rpc/is-admin/<int:user_id>/", IsAdminView.as_view(), name="rpc-is-admin"),
    path("", include(router.urls)),
]
