"""Serializers for notifications."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for notifications."""

    class Meta:
        model = Notification
        fields = ['id', 'title', 'message', 'type', 'read', 'action_url', 'created_at']
        read_only_fields = fields


class BroadcastSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    message = serializers.CharField()
    type = serializers.ChoiceField(choices=Notification.Type.choices, default=Notification.Type.INFO)
    action_url = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)
    # Omitted means every active user
    user_ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_empty=False)
