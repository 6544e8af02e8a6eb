"""Server-side notification helpers."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.contrib.auth import get_user_model  # type: ignore

from .models import Notification

logger = logging.getLogger(__name__)


def create_in_app_notification(
    user_id: int,
    title: str,
    message: str,
    *,
    type: str = Notification.Type.INFO,
    action_url: Optional[str] = None,
) -> Optional[Notification]:
    """
    Create an in-app notification; the realtime feed delivers it.

    Returns the notification, or None when the user does not exist.
    """
    if not get_user_model().objects.filter(pk=user_id).exists():
        logger.warning(f"Skipping notification '{title}': user {user_id} not found")
        return None

    notification = Notification.objects.create(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        action_url=action_url,
    )
    logger.info(f"In-app notification created for user {user_id}: {title}")
    return notification


def broadcast_in_app_notification(
    user_ids: Iterable[int],
    title: str,
    message: str,
    *,
    type: str = Notification.Type.INFO,
    action_url: Optional[str] = None,
) -> int:
    """Notify every active user in ``user_ids``; returns how many were notified."""
    users = get_user_model().objects.filter(pk__in=list(user_ids), is_active=True)
    created = 0
    for user in users:
        # One save per user so each notification reaches the realtime feed
        Notification.objects.create(
            user=user, title=title, message=message, type=type, action_url=action_url
        )
        created += 1
    logger.info(f"Broadcast '{title}' to {created} users")
    return created
