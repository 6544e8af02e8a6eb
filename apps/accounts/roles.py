"""Role resolution and role assignment for the client sync layer.

Roles are read from the ``user_roles`` table and folded into boolean
capability flags. Resolution fails open to the minimal ``user`` role:
an unreachable backend or an empty row set never blocks the UI and never
grants anything beyond the default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from django.conf import settings  # type: ignore

from shared.application.debounce import Debouncer
from shared.application.state import BackgroundTasks, LifetimeGuard, ObservableValue
from shared.domain.base import ChangeEvent, Result, ValueObject
from shared.infrastructure.gateway import NOTIFICATIONS, USER_ROLES, RemoteGateway

from .models import UserRole
from .session import Principal, SessionProvider

logger = logging.getLogger(__name__)

Role = UserRole.RoleChoices

DEFAULT_ROLE = Role.USER.value
KNOWN_ROLES = frozenset(Role.values)

# Labels shown to the user in the "roles updated" notification
ROLE_LABELS = {
    Role.ADMIN.value: "مدير عام",
    Role.PROPERTIES_ADMIN.value: "مدير العقارات",
    Role.CATEGORIES_ADMIN.value: "مدير الأقسام",
    Role.NOTIFICATIONS_ADMIN.value: "مدير الإشعارات",
    Role.MODERATOR.value: "مشرف",
    Role.USER.value: "مستخدم",
}

ROLES_UPDATED_TITLE = "تم تحديث صلاحياتك"


def roles_updated_message(roles: Iterable[str]) -> str:
    labels = "، ".join(ROLE_LABELS.get(role, role) for role in roles)
    return f"تم تعيين صلاحيات جديدة لك: {labels}. يمكنك الآن الوصول إلى لوحة الإدارة."


@dataclass(frozen=True)
class EffectivePermissions(ValueObject):
    """
    Capability flags derived from role assignments.

    ``admin`` implies every domain-specific admin role, whatever rows
    exist for those roles.
    """

    roles: Tuple[str, ...] = ()

    @classmethod
    def from_roles(cls, roles: Iterable[str]) -> "EffectivePermissions":
        return cls(roles=tuple(dict.fromkeys(roles)))

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)

    @property
    def is_properties_admin(self) -> bool:
        return self.has_role(Role.PROPERTIES_ADMIN) or self.is_admin

    @property
    def is_categories_admin(self) -> bool:
        return self.has_role(Role.CATEGORIES_ADMIN) or self.is_admin

    @property
    def is_notifications_admin(self) -> bool:
        return self.has_role(Role.NOTIFICATIONS_ADMIN) or self.is_admin

    @property
    def is_moderator(self) -> bool:
        return self.has_role(Role.MODERATOR)

    @property
    def is_any_admin(self) -> bool:
        return (
            self.is_admin
            or self.is_properties_admin
            or self.is_categories_admin
            or self.is_notifications_admin
            or self.is_moderator
        )

    def as_dict(self) -> dict:
        return {
            "roles": list(self.roles),
            "is_admin": self.is_admin,
            "is_properties_admin": self.is_properties_admin,
            "is_categories_admin": self.is_categories_admin,
            "is_notifications_admin": self.is_notifications_admin,
            "is_moderator": self.is_moderator,
            "is_any_admin": self.is_any_admin,
        }


class RoleResolutionService:
    """
    Keeps ``permissions`` in sync with the current principal's roles.

    Re-resolves on principal change and, debounced, on any realtime change
    of the principal's ``user_roles`` rows. Results that arrive for a
    previous principal or after ``close()`` are dropped.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        session: SessionProvider,
        *,
        debounce_seconds: Optional[float] = None,
    ):
        self.gateway = gateway
        self.session = session
        if debounce_seconds is None:
            debounce_seconds = getattr(settings, "ROLE_REFRESH_DEBOUNCE_SECONDS", 0.5)
        self.permissions: ObservableValue[EffectivePermissions] = ObservableValue(EffectivePermissions())
        self.loading = True
        self._principal: Optional[Principal] = None
        self._subscription = None
        self._guard = LifetimeGuard()
        self._tasks = BackgroundTasks("roles")
        self._debouncer = Debouncer(debounce_seconds, self.refresh, name="roles")
        self._unsubscribe_session = None

    @property
    def roles(self) -> Tuple[str, ...]:
        return self.permissions.value.roles

    async def start(self) -> None:
        """Resolve for the current principal and follow principal changes."""
        self._unsubscribe_session = self.session.principal.subscribe(self._on_principal_change)
        await self._reinitialize(self.session.current)

    def _on_principal_change(self, principal: Optional[Principal]) -> None:
        self._tasks.spawn(self._reinitialize(principal))

    async def _reinitialize(self, principal: Optional[Principal]) -> None:
        token = self._guard.begin()
        self._principal = principal
        self._debouncer.cancel()
        self.gateway.unsubscribe(self._subscription)
        self._subscription = None

        if principal is None:
            logger.debug("No principal, clearing roles")
            self.permissions.set(EffectivePermissions())
            self.loading = False
            return

        self._subscription = self.gateway.subscribe(
            USER_ROLES, self._on_role_change, filters={"user_id": principal.id}
        )
        await self._resolve(token, principal)

    def _on_role_change(self, event: ChangeEvent) -> None:
        logger.info(f"Role change detected ({event.event_type}), refreshing after {self._debouncer.delay}s")
        self._debouncer.trigger()

    async def refresh(self) -> None:
        """Re-read the roles of the current principal."""
        if self._principal is None or self._guard.closed:
            return
        await self._resolve(self._guard.token, self._principal)

    async def settle(self) -> None:
        """Wait for pending re-resolutions, including a debounced one."""
        await self._tasks.drain()
        await self._debouncer.flush()

    async def _resolve(self, token: int, principal: Principal) -> None:
        self.loading = True
        roles = await self.resolve_roles(principal)
        if not self._guard.is_current(token):
            logger.debug(f"Discarding stale roles for user {principal.id}")
            return
        self.permissions.set(EffectivePermissions.from_roles(roles))
        self.loading = False

    async def fetch_roles(self, principal: Principal) -> Result[List[str]]:
        """Role rows of ``principal`` in assignment order; failures are returned, not raised."""
        try:
            rows = await self.gateway.select(
                USER_ROLES, {"user_id": principal.id}, order_by="created_at"
            )
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Roles fetch failed for user {principal.id}: {e}", exc_info=True)
            return Result.failure(e)

        roles = []
        for row in rows:
            role = row.get("role")
            if role not in KNOWN_ROLES:
                logger.warning(f"Ignoring unknown role {role!r} for user {principal.id}")
                continue
            if role not in roles:
                roles.append(role)
        return Result.success(roles)

    async def resolve_roles(self, principal: Principal) -> List[str]:
        """Roles of ``principal``; a failed fetch or no rows means ``['user']``."""
        result = await self.fetch_roles(principal)
        roles = result.unwrap_or([])
        if not roles:
            logger.debug(f"No roles for user {principal.id}, using default role")
            return [DEFAULT_ROLE]
        return roles

    def close(self) -> None:
        self._guard.close()
        self._debouncer.cancel()
        self._tasks.cancel_all()
        self.gateway.unsubscribe(self._subscription)
        self._subscription = None
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None


class RoleAssignmentService:
    """Admin console action: replace a user's roles and tell them about it."""

    def __init__(self, gateway: RemoteGateway):
        self.gateway = gateway

    async def replace_roles(self, user_id, roles: Sequence[str]) -> Result[List[str]]:
        roles = list(dict.fromkeys(roles))
        unknown = [r for r in roles if r not in KNOWN_ROLES]
        if unknown:
            return Result.failure(ValueError(f"Unknown roles: {', '.join(unknown)}"))

        try:
            await self.gateway.delete(USER_ROLES, {"user_id": user_id})
            if roles:
                await self.gateway.insert(USER_ROLES, [{"user_id": user_id, "role": r} for r in roles])
                await self.gateway.insert(NOTIFICATIONS, [{
                    "user_id": user_id,
                    "title": ROLES_UPDATED_TITLE,
                    "message": roles_updated_message(roles),
                    "type": "success",
                }])
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Failed to update roles of user {user_id}: {e}")
            return Result.failure(e)

        logger.info(f"Roles of user {user_id} set to {roles}")
        return Result.success(roles)
