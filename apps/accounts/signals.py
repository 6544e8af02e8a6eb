"""Model signal handlers feeding the realtime hub."""

from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from shared.infrastructure.django_gateway import publish_row_change, remember_previous_row
from shared.infrastructure.gateway import PROFILES, USER_ROLES

from .models import Profile, UserRole


@receiver(pre_save, sender=UserRole)
@receiver(pre_save, sender=Profile)
def keep_previous_row(sender, instance, **kwargs):
    remember_previous_row(sender, instance)


@receiver(post_save, sender=UserRole)
def user_role_saved(sender, instance, created, **kwargs):
    publish_row_change(USER_ROLES, instance, created=created)


@receiver(post_delete, sender=UserRole)
def user_role_deleted(sender, instance, **kwargs):
    publish_row_change(USER_ROLES, instance, deleted=True)


@receiver(post_save, sender=Profile)
def profile_saved(sender, instance, created, **kwargs):
    publish_row_change(PROFILES, instance, created=created)
