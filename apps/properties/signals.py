"""Model signal handlers feeding the realtime hub."""

from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from shared.infrastructure.django_gateway import publish_row_change, remember_previous_row
from shared.infrastructure.gateway import CATEGORIES, PROPERTIES

from .models import Category, Property


@receiver(pre_save, sender=Property)
@receiver(pre_save, sender=Category)
def keep_previous_row(sender, instance, **kwargs):
    remember_previous_row(sender, instance)


@receiver(post_save, sender=Property)
def property_saved(sender, instance, created, **kwargs):
    publish_row_change(PROPERTIES, instance, created=created)


@receiver(post_delete, sender=Property)
def property_deleted(sender, instance, **kwargs):
    publish_row_change(PROPERTIES, instance, deleted=True)


@receiver(post_save, sender=Category)
def category_saved(sender, instance, created, **kwargs):
    publish_row_change(CATEGORIES, instance, created=created)


@receiver(post_delete, sender=Category)
def category_deleted(sender, instance, **kwargs):
    publish_row_change(CATEGORIES, instance, deleted=True)
