"""Privileged checks executed on the backend and exposed through ``gateway.rpc``."""

from __future__ import annotations

from .models import UserRole


def has_role(user_id, role: str) -> bool:
    return UserRole.objects.filter(user_id=user_id, role=role).exists()


def is_admin(user_id) -> bool:
    return has_role(user_id, UserRole.RoleChoices.ADMIN)
