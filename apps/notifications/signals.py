"""Model signal handlers feeding the realtime hub."""

from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from shared.infrastructure.django_gateway import publish_row_change, remember_previous_row
from shared.infrastructure.gateway import NOTIFICATIONS

from .models import Notification


@receiver(pre_save, sender=Notification)
def keep_previous_row(sender, instance, **kwargs):
    remember_previous_row(sender, instance)


@receiver(post_save, sender=Notification)
def notification_saved(sender, instance, created, **kwargs):
    publish_row_change(NOTIFICATIONS, instance, created=created)


@receiver(post_delete, sender=Notification)
def notification_deleted(sender, instance, **kwargs):
    publish_row_change(NOTIFICATIONS, instance, deleted=True)
