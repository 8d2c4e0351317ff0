"""
Local identity provider.

Profiles live in ``users.json`` keyed by the lower-cased display name; signing
in with an unknown name creates the profile. Used with the local and sql
backends, where there is no remote account service.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from loguru import logger

from concurso.auth.provider import IdentityProvider, user_from_session, user_to_session
from concurso.core.errors import AuthenticationError, ValidationError
from concurso.core.models import User


class LocalIdentityProvider(IdentityProvider):
    """Name-based sign-in backed by a profile file."""

    def __init__(self, users_path: Path, session_path: Path):
        super().__init__(session_path)
        self.users_path = users_path

    async def sign_in(self, name: str) -> User:
        """
        Sign in as ``name``, creating the profile on first use.

        Args:
            name: Display name (case-insensitive key)

        Returns:
            The signed-in User
        """
        display_name = (name or "").strip()
        if not display_name:
            raise ValidationError("User name must not be empty")

        profiles = self._load_profiles()
        key = display_name.lower()
        if key in profiles:
            user = user_from_session(profiles[key])
        else:
            user = User(id=str(uuid4()), name=display_name, created_at=datetime.now(timezone.utc))
            profiles[key] = user_to_session(user)
            self._save_profiles(profiles)
            logger.info(f"Created local profile for {display_name}")

        self._write_session(user)
        await self._set_user(user)
        return user

    def _load_profiles(self) -> dict[str, dict]:
        if not self.users_path.exists():
            return {}
        try:
            return json.loads(self.users_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read profiles from {self.users_path}: {e}")
            raise AuthenticationError(f"Profile file {self.users_path} is unreadable") from e

    def _save_profiles(self, profiles: dict[str, dict]) -> None:
        self.users_path.parent.mkdir(parents=True, exist_ok=True)
        self.users_path.write_text(json.dumps(profiles, indent=2), encoding="utf-8")
