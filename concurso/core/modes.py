"""
Concurso Backend Modes

Defines the three persistence modes selected at startup:
1. Local Mode - JSON key-value file in the data directory
2. SQL Mode - SQLAlchemy database (SQLite file by default, PostgreSQL via URL)
3. Rest Mode - Remote PostgREST-compatible service with e-mail accounts

Local and SQL modes use name-based local profiles; Rest mode signs in against
the remote auth endpoints and hands the access token to the backend.
"""

from __future__ import annotations

from enum import Enum

from loguru import logger

from concurso.auth.local import LocalIdentityProvider
from concurso.auth.provider import IdentityProvider
from concurso.auth.rest import RestIdentityProvider
from concurso.backends.base import PersistenceBackend
from concurso.backends.local import LocalBackend
from concurso.backends.rest import RestBackend
from concurso.backends.sql import SqlBackend
from config import Settings


class BackendMode(str, Enum):
    """Persistence mode for concurso."""

    LOCAL = "local"  # JSON file, offline
    SQL = "sql"  # Relational database
    REST = "rest"  # Remote service

    @property
    def uses_accounts(self) -> bool:
        """Whether sign-in takes e-mail and password instead of a profile name."""
        return self is BackendMode.REST


def create_identity_provider(settings: Settings) -> IdentityProvider:
    mode = BackendMode(settings.backend)
    if mode is BackendMode.REST:
        return RestIdentityProvider(
            settings.rest_url,
            settings.session_path,
            api_key=settings.rest_api_key,
            timeout=settings.request_timeout_seconds,
        )
    return LocalIdentityProvider(settings.users_path, settings.session_path)


def create_backend(settings: Settings, identity: IdentityProvider | None = None) -> PersistenceBackend:
    """
    Build the persistence backend for the configured mode.

    Args:
        settings: Application settings
        identity: Identity provider; in rest mode its access token authorizes requests

    Returns:
        A backend implementing PersistenceBackend
    """
    mode = BackendMode(settings.backend)
    logger.debug(f"Using {mode.value} backend")

    if mode is BackendMode.SQL:
        return SqlBackend(settings.get_database_url(), echo=settings.log_level == "DEBUG")

    if mode is BackendMode.REST:
        token_provider = None
        if isinstance(identity, RestIdentityProvider):
            rest_identity = identity

            def token_provider() -> str | None:
                return rest_identity.access_token

        return RestBackend(
            settings.rest_url,
            api_key=settings.rest_api_key,
            token_provider=token_provider,
            timeout=settings.request_timeout_seconds,
        )

    return LocalBackend(settings.store_path)
