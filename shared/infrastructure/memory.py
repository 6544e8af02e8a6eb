"""
In-process backend

Tables live in dictionaries and every mutation is published on the
realtime hub, so the sync layer behaves exactly as against the database.
Used for offline development (``config.settings.dev`` can point the
gateway here) and as the fake backend in tests.
"""

from __future__ import annotations

import copy
import itertools
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from django.contrib.auth.hashers import check_password, make_password  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.realtime import RealtimeHub, row_matches
from shared.domain.base import DELETE, INSERT, UPDATE, ChangeEvent
from shared.domain.errors import AuthError, DuplicateError
from shared.infrastructure.gateway import (
    CATEGORIES,
    FAVORITES,
    NOTIFICATIONS,
    PROFILES,
    PROPERTIES,
    TABLES,
    USER_ROLES,
    AuthBackend,
    RemoteGateway,
    Row,
)

logger = logging.getLogger(__name__)

UNIQUE_TOGETHER: Dict[str, Tuple[Tuple[str, ...], ...]] = {
    FAVORITES: (("user_id", "property_id"),),
    USER_ROLES: (("user_id", "role"),),
    CATEGORIES: (("slug",),),
    PROFILES: (("user_id",),),
}

TABLE_DEFAULTS: Dict[str, Row] = {
    NOTIFICATIONS: {"type": "info", "read": False, "action_url": None},
    PROPERTIES: {"status": "active", "custom_data": {}, "images": [], "videos": []},
    CATEGORIES: {"parent_id": None, "order_index": 0, "status": "active", "custom_fields": []},
    PROFILES: {
        "push_token": None,
        "is_active": True,
        "suspension_reason": None,
        "suspended_at": None,
        "suspended_by_id": None,
    },
}


def _sort_key(value):
    # None sorts first, mixed types never compare against each other
    return (value is not None, value)


class InMemoryGateway(RemoteGateway):
    """Dictionary-backed ``RemoteGateway``"""

    def __init__(
        self,
        hub: Optional[RealtimeHub] = None,
        rpc_functions: Optional[Dict[str, Callable[..., Any]]] = None,
    ):
        super().__init__(hub)
        self.tables: Dict[str, List[Row]] = {table: [] for table in TABLES}
        self._ids = itertools.count(1)
        self._rpc: Dict[str, Callable[..., Any]] = {"is_admin": self._is_admin}
        self._rpc.update(rpc_functions or {})

    async def select(self, table, filters=None, *, order_by=None, limit=None):
        self.check_table(table)
        rows = [copy.deepcopy(r) for r in self.tables[table] if row_matches(r, filters)]
        if order_by:
            column = order_by.lstrip("-")
            rows.sort(key=lambda r: _sort_key(r.get(column)), reverse=order_by.startswith("-"))
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table, rows):
        self.check_table(table)
        now = timezone.now()
        prepared = []
        for row in rows:
            record = {**TABLE_DEFAULTS.get(table, {}), **copy.deepcopy(row)}
            record.setdefault("id", next(self._ids))
            record.setdefault("created_at", now)
            record.setdefault("updated_at", now)
            self._check_unique(table, record, itertools.chain(self.tables[table], prepared))
            prepared.append(record)

        # All-or-nothing like a single INSERT statement
        self.tables[table].extend(prepared)
        for record in prepared:
            self.hub.publish(ChangeEvent(table=table, event_type=INSERT, new=copy.deepcopy(record)))
        return [copy.deepcopy(r) for r in prepared]

    async def update(self, table, patch, filters):
        self.check_table(table)
        now = timezone.now()
        matched = [r for r in self.tables[table] if row_matches(r, filters)]
        candidates = [{**r, **copy.deepcopy(patch), "updated_at": now} for r in matched]
        # Every new row is checked before any is written, like one UPDATE statement
        untouched = [r for r in self.tables[table] if not any(r is m for m in matched)]
        for candidate in candidates:
            self._check_unique(table, candidate, itertools.chain(untouched, candidates))

        updated = []
        for record, candidate in zip(matched, candidates):
            old = copy.deepcopy(record)
            record.clear()
            record.update(candidate)
            updated.append((old, copy.deepcopy(record)))

        for old, new in updated:
            self.hub.publish(ChangeEvent(table=table, event_type=UPDATE, new=new, old=old))
        return [new for _, new in updated]

    async def delete(self, table, filters):
        self.check_table(table)
        removed = [r for r in self.tables[table] if row_matches(r, filters)]
        self.tables[table] = [r for r in self.tables[table] if not row_matches(r, filters)]
        for record in removed:
            self.hub.publish(ChangeEvent(table=table, event_type=DELETE, old=copy.deepcopy(record)))
        return len(removed)

    async def rpc(self, name, **params):
        try:
            function = self._rpc[name]
        except KeyError:
            raise ValueError(f"Unknown RPC function: {name}")
        return function(**params)

    def _is_admin(self, user_id) -> bool:
        return any(
            str(r["user_id"]) == str(user_id) and r["role"] == "admin"
            for r in self.tables[USER_ROLES]
        )

    def _check_unique(self, table: str, record: Row, rows: Iterable[Row]):
        """Raise ``DuplicateError`` when ``record`` clashes with any of ``rows``."""
        rows = list(rows)
        for columns in UNIQUE_TOGETHER.get(table, ()):
            key = tuple(str(record.get(c)) for c in columns)
            for existing in rows:
                if existing is record or existing.get("id") == record.get("id"):
                    continue
                if tuple(str(existing.get(c)) for c in columns) == key:
                    raise DuplicateError(
                        f"Duplicate {table} row for ({', '.join(columns)})=({', '.join(key)})"
                    )


class InMemoryAuthBackend(AuthBackend):
    """Accounts kept in memory, passwords hashed with Django's hashers"""

    def __init__(self):
        super().__init__()
        self._accounts: Dict[str, Row] = {}
        self._ids = itertools.count(1)

    def create_user(self, email: str, password: str) -> Row:
        email = email.strip().lower()
        if email in self._accounts:
            raise AuthError(f"Account already exists: {email}")
        account = {
            "user_id": next(self._ids),
            "email": email,
            "password": make_password(password),
        }
        self._accounts[email] = account
        return {"user_id": account["user_id"], "email": email}

    async def sign_in(self, email, password):
        account = self._accounts.get((email or "").strip().lower())
        if account is None or not check_password(password, account["password"]):
            raise AuthError("Invalid credentials")
        session = {"user_id": account["user_id"], "email": account["email"]}
        self._set_session(session)
        return session

    async def sign_up(self, email, password):
        if not email or not password:
            raise AuthError("Email and password are required")
        session = self.create_user(email, password)
        self._set_session(session)
        return session

    def expire_session(self):
        """Drop the current session the way a token expiry would"""
        logger.info("Session expired")
        self._set_session(None)
