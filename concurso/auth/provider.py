"""
Identity provider base.

Holds the current user, persists the session between CLI invocations and
notifies subscribers whenever the user signs in or out. The store controller
subscribes once at startup.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from concurso.core.errors import MappingError
from concurso.core.models import User
from concurso.store.mapping import parse_timestamp

IdentityListener = Callable[[User | None], Awaitable[None]]


class IdentityProvider:
    """Current-user holder with sign-in / sign-out change notification."""

    def __init__(self, session_path: Path):
        self.session_path = session_path
        self._user: User | None = None
        self._listeners: list[IdentityListener] = []

    @property
    def current_user(self) -> User | None:
        return self._user

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def restore(self) -> User | None:
        """Re-establish the persisted session, if any, and announce it."""
        data = self._read_session()
        if not data:
            return None
        try:
            user = user_from_session(data["user"])
        except (KeyError, TypeError, ValueError, MappingError) as e:
            logger.warning(f"Discarding unreadable session file: {e}")
            self._clear_session()
            return None
        self._restore_extra(data)
        await self._set_user(user)
        return user

    async def sign_out(self) -> None:
        self._clear_session()
        await self._set_user(None)

    async def close(self) -> None:
        """Release clients held by the provider."""

    # =========================================================================
    # Internals
    # =========================================================================

    def _restore_extra(self, data: dict[str, Any]) -> None:
        """Hook for providers that keep more than the user in the session."""

    async def _set_user(self, user: User | None) -> None:
        previous = self._user
        self._user = user
        if previous == user:
            return
        logger.info(f"Identity changed: {previous.id if previous else None} -> {user.id if user else None}")
        for listener in list(self._listeners):
            await listener(user)

    def _read_session(self) -> dict[str, Any] | None:
        if not self.session_path.exists():
            return None
        try:
            return json.loads(self.session_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read session file {self.session_path}: {e}")
            return None

    def _write_session(self, user: User, **extra: Any) -> None:
        self.session_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"user": user_to_session(user), **extra}
        self.session_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _clear_session(self) -> None:
        self.session_path.unlink(missing_ok=True)


def user_to_session(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def user_from_session(data: dict[str, Any]) -> User:
    created_at: datetime | None = None
    if data.get("created_at"):
        created_at = parse_timestamp(data["created_at"])
    if not data.get("id"):
        raise ValueError("session user has no id")
    return User(id=str(data["id"]), name=str(data.get("name") or ""), created_at=created_at)
