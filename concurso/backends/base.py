"""
Persistence backend interface.

All implementations exchange snake_case wire records (plain dicts); the
store controller converts them with ``concurso.store.mapping``. Lists are
ordered newest-created-first. Failures raise BackendError.
"""

from __future__ import annotations

from typing import Any, Protocol

Record = dict[str, Any]


class PersistenceBackend(Protocol):
    """Protocol for folder/question persistence."""

    name: str

    async def list_folders_by_user(self, user_id: str) -> list[Record]:
        """Return every folder owned by the user, newest first."""
        ...

    async def list_questions_by_user(self, user_id: str) -> list[Record]:
        """Return every question owned by the user, newest first."""
        ...

    async def create_folder(self, fields: Record) -> Record:
        """Persist a new folder and return the canonical record."""
        ...

    async def update_folder(self, folder_id: str, fields: Record) -> Record:
        """Replace the editable folder fields and return the canonical record."""
        ...

    async def delete_folder(self, folder_id: str) -> None:
        ...

    async def create_question(self, fields: Record) -> Record:
        ...

    async def update_question(self, question_id: str, fields: Record) -> Record:
        ...

    async def delete_question(self, question_id: str) -> None:
        ...

    async def delete_questions_by_folder(self, folder_id: str) -> None:
        """Remove every question of a folder (called before deleting the folder)."""
        ...

    async def close(self) -> None:
        """Release connections or clients held by the backend."""
        ...
