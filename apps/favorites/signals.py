"""Model signal handlers feeding the realtime hub."""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from shared.infrastructure.django_gateway import publish_row_change
from shared.infrastructure.gateway import FAVORITES

from .models import Favorite


@receiver(post_save, sender=Favorite)
def favorite_saved(sender, instance, created, **kwargs):
    publish_row_change(FAVORITES, instance, created=created)


@receiver(post_delete, sender=Favorite)
def favorite_deleted(sender, instance, **kwargs):
    publish_row_change(FAVORITES, instance, deleted=True)
