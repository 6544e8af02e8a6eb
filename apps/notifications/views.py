"""API views for notifications."""

from __future__ import annotations

import logging

from django.db import transaction  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.accounts.permissions import IsNotificationsAdmin

from .models import Notification
from .serializers import BroadcastSerializer, NotificationSerializer
from .tasks import broadcast_notification

logger = logging.getLogger(__name__)


class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    Inbox of the authenticated user.

    GET    /api/v1/notifications/                - newest first
    DELETE /api/v1/notifications/{id}/
    POST   /api/v1/notifications/{id}/mark_read/
    POST   /api/v1/notifications/mark_all_read/
    POST   /api/v1/notifications/broadcast/      - notifications admins only
    """

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return Notification.objects.filter(user=self.request.user)

    def get_permissions(self):  # type: ignore
        if self.action == 'broadcast':
            return [IsNotificationsAdmin()]
        return super().get_permissions()

    def list(self, request, *args, **kwargs):  # type: ignore
        response = super().list(request, *args, **kwargs)
        response['X-Unread-Count'] = str(self.get_queryset().filter(read=False).count())
        return response

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):  # type: ignore
        notification = self.get_object()
        if not notification.read:
            notification.read = True
            notification.save(update_fields=['read', 'updated_at'])
        return Response({'status': 'read'}, status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):  # type: ignore
        # Per-row saves so every change reaches the realtime feed
        updated = 0
        with transaction.atomic():
            for notification in self.get_queryset().filter(read=False):
                notification.read = True
                notification.save(update_fields=['read', 'updated_at'])
                updated += 1
        return Response({'status': 'read', 'updated': updated}, status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'])
    def broadcast(self, request):  # type: ignore
        serializer = BroadcastSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        transaction.on_commit(lambda: broadcast_notification.delay(
            data['title'],
            data['message'],
            data.get('user_ids'),
            data['type'],
            data.get('action_url'),
        ))
        logger.info(f"User {request.user.pk} queued broadcast '{data['title']}'")
        return Response({'status': 'queued'}, status=status.HTTP_202_ACCEPTED)
