"""Session/identity provider for the client sync layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from shared.application.state import ObservableValue
from shared.domain.base import Result, ValueObject
from shared.domain.errors import AuthError
from shared.infrastructure.gateway import AuthBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal(ValueObject):
    """Authenticated identity; read-only outside the session provider."""

    id: str
    email: Optional[str] = None

    @classmethod
    def from_session(cls, session: Optional[dict]) -> Optional["Principal"]:
        if not session or session.get("user_id") in (None, ""):
            return None
        return cls(id=str(session["user_id"]), email=session.get("email"))


class SessionProvider:
    """
    Holds the current principal as an observable cell.

    Every emission of the auth backend's session stream replaces the
    principal synchronously; ``loading`` turns False after the first one.
    Subscribers of ``principal`` are only notified when the identity
    actually changes, including to and from "no principal".
    """

    def __init__(self, auth: AuthBackend):
        self.auth = auth
        self.principal: ObservableValue[Optional[Principal]] = ObservableValue(None)
        self.loading = True
        self._unsubscribe = auth.on_session_change(self._on_session_change)

    def _on_session_change(self, session: Optional[dict]) -> None:
        principal = Principal.from_session(session)
        if principal != self.principal.value:
            logger.info(f"Session changed: {'user ' + principal.id if principal else 'signed out'}")
        self.principal.set(principal)
        self.loading = False

    @property
    def current(self) -> Optional[Principal]:
        return self.principal.value

    async def sign_in(self, email: str, password: str) -> Result[Principal]:
        try:
            session = await self.auth.sign_in(email, password)
        except AuthError as e:
            logger.warning(f"Sign-in failed for {email}: {e}")
            return Result.failure(e)
        return Result.success(Principal.from_session(session))

    async def sign_up(self, email: str, password: str) -> Result[Principal]:
        try:
            session = await self.auth.sign_up(email, password)
        except AuthError as e:
            logger.warning(f"Sign-up failed for {email}: {e}")
            return Result.failure(e)
        return Result.success(Principal.from_session(session))

    async def sign_out(self) -> Result[None]:
        try:
            await self.auth.sign_out()
        except AuthError as e:
            logger.warning(f"Sign-out failed: {e}")
            return Result.failure(e)
        return Result.success(None)

    def close(self) -> None:
        self._unsubscribe()
