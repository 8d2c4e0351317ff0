"""
Per-command wiring of settings, identity provider, backend and store.

Every CLI command runs inside ``open_workspace()``: the persisted session is
restored, which signs the user in and makes the store load their data.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from concurso.auth.provider import IdentityProvider
from concurso.backends.base import PersistenceBackend
from concurso.core.errors import AuthenticationError, ValidationError
from concurso.core.models import Folder, Question, User
from concurso.core.modes import BackendMode, create_backend, create_identity_provider
from concurso.store.controller import StoreController
from config import Settings, get_settings


@dataclass
class Workspace:
    settings: Settings
    identity: IdentityProvider
    backend: PersistenceBackend
    store: StoreController

    @property
    def mode(self) -> BackendMode:
        return BackendMode(self.settings.backend)

    @property
    def user(self) -> User | None:
        return self.identity.current_user

    def require_user(self) -> User:
        if self.identity.current_user is None:
            raise AuthenticationError("Not signed in. Run 'concurso signin' first")
        return self.identity.current_user

    def find_folder(self, ref: str) -> Folder:
        """Resolve a folder by id, id prefix or (case-insensitive) name."""
        self.require_user()
        return _resolve(ref, self.store.state.folders, lambda f: f.name, "folder")

    def find_question(self, ref: str) -> Question:
        """Resolve a question by id or id prefix."""
        self.require_user()
        return _resolve(ref, self.store.state.questions, None, "question")


def _resolve(ref, items, name_of, kind: str):
    ref = (ref or "").strip()
    if not ref:
        raise ValidationError(f"Give a {kind} id or name")

    for item in items:
        if item.id == ref:
            return item
    if name_of is not None:
        by_name = [item for item in items if name_of(item).lower() == ref.lower()]
        if len(by_name) == 1:
            return by_name[0]
        if len(by_name) > 1:
            raise ValidationError(f"Several folders are named '{ref}'; use the id")
    by_prefix = [item for item in items if item.id.startswith(ref)]
    if len(by_prefix) == 1:
        return by_prefix[0]
    if len(by_prefix) > 1:
        raise ValidationError(f"'{ref}' matches several {kind}s; give more of the id")
    raise ValidationError(f"No {kind} matches '{ref}'")


@asynccontextmanager
async def open_workspace(
    settings: Settings | None = None,
    restore: bool = True,
) -> AsyncIterator[Workspace]:
    """
    Build and tear down the objects a command needs.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        restore: Re-establish the persisted session on entry
    """
    settings = settings or get_settings()
    identity = create_identity_provider(settings)
    backend = create_backend(settings, identity)
    store = StoreController(backend, identity)
    store.attach()
    try:
        if restore:
            await identity.restore()
        yield Workspace(settings=settings, identity=identity, backend=backend, store=store)
    finally:
        store.detach()
        await backend.close()
        await identity.close()
