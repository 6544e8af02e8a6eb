"""Celery tasks for notifications."""

from __future__ import annotations

import logging
from typing import List, Optional

from celery import shared_task  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore

from apps.accounts.roles import ROLES_UPDATED_TITLE, roles_updated_message

from .models import Notification
from .services import broadcast_in_app_notification, create_in_app_notification

logger = logging.getLogger(__name__)


@shared_task(name="notifications.notify_roles_updated")
def notify_roles_updated(user_id: int, roles: List[str]) -> bool:
    """Tell a user which roles an administrator just gave them."""
    if not roles:
        return False
    notification = create_in_app_notification(
        user_id,
        ROLES_UPDATED_TITLE,
        roles_updated_message(roles),
        type=Notification.Type.SUCCESS,
    )
    return notification is not None


@shared_task(name="notifications.broadcast")
def broadcast_notification(
    title: str,
    message: str,
    user_ids: Optional[List[int]] = None,
    type: str = Notification.Type.INFO,
    action_url: Optional[str] = None,
) -> int:
    """Send a notification to ``user_ids``, or to every active user when omitted."""
    if user_ids is None:
        user_ids = list(get_user_model().objects.filter(is_active=True).values_list("pk", flat=True))
    return broadcast_in_app_notification(
        user_ids, title, message, type=type, action_url=action_url
    )
