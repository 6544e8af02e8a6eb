"""
Django ORM backend

``DjangoGateway`` serves the gateway tables from the project's models and
turns model signals into realtime change events (see each app's
``signals.py``). ORM work runs through ``sync_to_async`` so callers on the
event loop never block.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from asgiref.sync import sync_to_async
from django.apps import apps as django_apps  # type: ignore
from django.conf import settings  # type: ignore
from django.contrib.auth import authenticate, get_user_model  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import DatabaseError, IntegrityError, models, transaction  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

from shared.application.realtime import RealtimeHub, realtime_hub
from shared.domain.base import DELETE, INSERT, UPDATE, ChangeEvent
from shared.domain.errors import AuthError, DuplicateError, GatewayError
from shared.infrastructure.gateway import (
    CATEGORIES,
    FAVORITES,
    NOTIFICATIONS,
    PROFILES,
    PROPERTIES,
    USER_ROLES,
    AuthBackend,
    RemoteGateway,
    Row,
)

logger = logging.getLogger(__name__)

TABLE_MODELS: Dict[str, str] = {
    PROPERTIES: "properties.Property",
    CATEGORIES: "properties.Category",
    FAVORITES: "favorites.Favorite",
    USER_ROLES: "accounts.UserRole",
    NOTIFICATIONS: "notifications.Notification",
    PROFILES: "accounts.Profile",
}

PREVIOUS_ROW_ATTR = "_realtime_previous_row"


def model_for(table: str):
    RemoteGateway.check_table(table)
    return django_apps.get_model(TABLE_MODELS[table])


def instance_to_row(instance) -> Row:
    """Concrete field values keyed by attname (``user_id``, not ``user``)."""
    return {f.attname: f.value_from_object(instance) for f in instance._meta.concrete_fields}


# ---------- signal helpers ----------

def remember_previous_row(sender, instance, **kwargs) -> None:
    """pre_save hook: keep the stored row so UPDATE events carry ``old``."""
    if instance.pk is None:
        setattr(instance, PREVIOUS_ROW_ATTR, None)
        return
    try:
        previous = sender.objects.get(pk=instance.pk)
        setattr(instance, PREVIOUS_ROW_ATTR, instance_to_row(previous))
    except sender.DoesNotExist:  # pragma: no cover - row deleted concurrently
        setattr(instance, PREVIOUS_ROW_ATTR, None)


def publish_row_change(
    table: str,
    instance,
    *,
    created: bool = False,
    deleted: bool = False,
    hub: Optional[RealtimeHub] = None,
) -> None:
    """Publish a model save/delete as a ``ChangeEvent``."""
    hub = hub or realtime_hub
    row = instance_to_row(instance)
    if deleted:
        event = ChangeEvent(table=table, event_type=DELETE, old=row)
    elif created:
        event = ChangeEvent(table=table, event_type=INSERT, new=row)
    else:
        previous = getattr(instance, PREVIOUS_ROW_ATTR, None) or {}
        event = ChangeEvent(table=table, event_type=UPDATE, new=row, old=previous)

    if hasattr(instance, PREVIOUS_ROW_ATTR):
        delattr(instance, PREVIOUS_ROW_ATTR)

    # Publish once the surrounding transaction is durable
    transaction.on_commit(lambda: hub.publish(event))


# ---------- constraint checks ----------

def unique_violation(obj) -> Optional[str]:
    """Message of the unique constraint ``obj`` would break, if any."""
    try:
        obj.validate_unique()
    except ValidationError as e:
        return "; ".join(e.messages)
    return None


def check_row(obj, action: str) -> None:
    """
    Raise the gateway error saving ``obj`` would cause, before writing.

    Foreign keys are checked here because the database defers them to
    commit. A missing referenced row is a ``GatewayError``; only a unique
    clash is a ``DuplicateError``.
    """
    for field in obj._meta.concrete_fields:
        if not isinstance(field, models.ForeignKey):
            continue
        value = getattr(obj, field.attname)
        if value is None:
            continue
        try:
            field.validate(value, obj)
        except ValidationError as e:
            raise GatewayError(f"{action}: {field.attname}={value} does not exist") from e

    duplicate = unique_violation(obj)
    if duplicate:
        raise DuplicateError(f"{action} violates a unique constraint: {duplicate}")


def constraint_error(obj, action: str, error: IntegrityError) -> GatewayError:
    """Map an ``IntegrityError`` raised by ``obj``'s save to a gateway error."""
    # A concurrent writer can take a unique value between the check and the save
    duplicate = unique_violation(obj) if obj is not None else None
    if duplicate:
        return DuplicateError(f"{action} violates a unique constraint: {duplicate}")
    return GatewayError(f"{action} violates a constraint: {error}")


# ---------- gateway ----------

class DjangoGateway(RemoteGateway):
    """``RemoteGateway`` over the Django ORM"""

    def __init__(self, hub: Optional[RealtimeHub] = None, rpc_functions: Optional[Dict[str, Any]] = None):
        super().__init__(hub)
        configured = getattr(settings, "MARKETPLACE_RPC", {})
        self._rpc = {name: import_string(path) for name, path in configured.items()}
        self._rpc.update(rpc_functions or {})

    async def select(self, table, filters=None, *, order_by=None, limit=None):
        return await sync_to_async(self._select)(table, filters, order_by, limit)

    async def insert(self, table, rows):
        return await sync_to_async(self._insert)(table, list(rows))

    async def update(self, table, patch, filters):
        return await sync_to_async(self._update)(table, patch, filters)

    async def delete(self, table, filters):
        return await sync_to_async(self._delete)(table, filters)

    async def rpc(self, name, **params):
        try:
            function = self._rpc[name]
        except KeyError:
            raise ValueError(f"Unknown RPC function: {name}")
        return await sync_to_async(function)(**params)

    # sync implementations

    def _select(self, table, filters, order_by, limit):
        model = model_for(table)
        try:
            queryset = model.objects.filter(**(filters or {}))
            if order_by:
                queryset = queryset.order_by(order_by)
            if limit is not None:
                queryset = queryset[:limit]
            return [instance_to_row(obj) for obj in queryset]
        except (DatabaseError, ValueError) as e:
            raise GatewayError(f"select on {table} failed: {e}") from e

    def _insert(self, table, rows):
        model = model_for(table)
        action = f"insert into {table}"
        created = []
        obj = None
        try:
            with transaction.atomic():
                for row in rows:
                    obj = model(**row)
                    check_row(obj, action)
                    obj.save()
                    created.append(instance_to_row(obj))
        except IntegrityError as e:
            raise constraint_error(obj, action, e) from e
        except (DatabaseError, TypeError, ValueError) as e:
            raise GatewayError(f"{action} failed: {e}") from e
        return created

    def _update(self, table, patch, filters):
        model = model_for(table)
        action = f"update of {table}"
        updated = []
        obj = None
        try:
            with transaction.atomic():
                for obj in model.objects.filter(**filters):
                    for column, value in patch.items():
                        setattr(obj, column, value)
                    check_row(obj, action)
                    obj.save()
                    updated.append(instance_to_row(obj))
        except IntegrityError as e:
            raise constraint_error(obj, action, e) from e
        except (DatabaseError, ValueError) as e:
            raise GatewayError(f"update of {table} failed: {e}") from e
        return updated

    def _delete(self, table, filters):
        model = model_for(table)
        try:
            _, per_model = model.objects.filter(**filters).delete()
        except (DatabaseError, ValueError) as e:
            raise GatewayError(f"delete from {table} failed: {e}") from e
        return per_model.get(model._meta.label, 0)


class DjangoAuthBackend(AuthBackend):
    """Accounts are Django users; the email doubles as the username."""

    async def sign_in(self, email, password):
        user = await sync_to_async(authenticate)(username=(email or "").strip().lower(), password=password)
        if user is None or not user.is_active:
            raise AuthError("Invalid credentials")
        session = {"user_id": user.pk, "email": user.email}
        self._set_session(session)
        logger.info(f"Signed in user {user.pk}")
        return session

    async def sign_up(self, email, password):
        session = await sync_to_async(self._create_account)(email, password)
        self._set_session(session)
        logger.info(f"Signed up user {session['user_id']}")
        return session

    @staticmethod
    def _create_account(email, password) -> Row:
        email = (email or "").strip().lower()
        if not email or not password:
            raise AuthError("Email and password are required")
        user_model = get_user_model()
        profile_model = model_for(PROFILES)
        with transaction.atomic():
            if user_model.objects.filter(username=email).exists():
                raise AuthError(f"Account already exists: {email}")
            user = user_model.objects.create_user(username=email, email=email, password=password)
            profile_model.objects.create(user=user)
        return {"user_id": user.pk, "email": user.email}
