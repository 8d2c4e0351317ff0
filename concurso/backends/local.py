"""
Local key-value backend.

Everything lives in one JSON document (``<data_dir>/store.json``)::

    {
        "<user_id>": {"folders": [...], "questions": [...]}
    }

The document is read on every access and rewritten on every change. Ids are
client-assigned uuid4 strings. There is no schema versioning.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar
from uuid import uuid4

from loguru import logger

from concurso.backends.base import Record
from concurso.core.errors import BackendError, RecordNotFoundError

T = TypeVar("T")

Document = dict[str, dict[str, list[Record]]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _newest_first(records: list[Record]) -> list[Record]:
    return sorted(records, key=lambda r: r.get("created_at") or "", reverse=True)


class LocalBackend:
    """
    JSON-file persistence keyed by user id.

    Each operation reads, changes and rewrites the document on a worker
    thread; a lock keeps read-modify-write cycles from interleaving.
    """

    name = "local"

    def __init__(self, path: Path):
        self.path = path
        self._lock = asyncio.Lock()

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_folders_by_user(self, user_id: str) -> list[Record]:
        return await self._locked(self._list, user_id, "folders")

    async def list_questions_by_user(self, user_id: str) -> list[Record]:
        return await self._locked(self._list, user_id, "questions")

    # =========================================================================
    # Folders
    # =========================================================================

    async def create_folder(self, fields: Record) -> Record:
        record = {
            "id": str(uuid4()),
            "name": fields.get("name"),
            "description": fields.get("description"),
            "user_id": _owner(fields),
            "created_at": _now(),
        }
        return await self._locked(self._insert, "folders", record)

    async def update_folder(self, folder_id: str, fields: Record) -> Record:
        changes = {"name": fields.get("name"), "description": fields.get("description")}
        return await self._locked(self._update, "folders", folder_id, changes)

    async def delete_folder(self, folder_id: str) -> None:
        await self._locked(self._delete, "folders", folder_id)

    # =========================================================================
    # Questions
    # =========================================================================

    async def create_question(self, fields: Record) -> Record:
        _owner(fields)
        now = _now()
        record = {
            **{key: value for key, value in fields.items() if key != "id"},
            "id": str(uuid4()),
            "created_at": now,
            "updated_at": now,
        }
        return await self._locked(self._insert, "questions", record)

    async def update_question(self, question_id: str, fields: Record) -> Record:
        changes = {
            key: value for key, value in fields.items() if key not in ("id", "user_id", "created_at")
        }
        changes["updated_at"] = _now()
        return await self._locked(self._update, "questions", question_id, changes)

    async def delete_question(self, question_id: str) -> None:
        await self._locked(self._delete, "questions", question_id)

    async def delete_questions_by_folder(self, folder_id: str) -> None:
        removed = await self._locked(self._delete_by_folder, folder_id)
        logger.debug(f"Removed {removed} questions of folder {folder_id}")

    async def close(self) -> None:
        """Nothing to release; the file is opened per operation."""

    # =========================================================================
    # Document operations (run on a worker thread)
    # =========================================================================

    async def _locked(self, operation: Callable[..., T], *args: Any) -> T:
        async with self._lock:
            return await asyncio.to_thread(operation, *args)

    def _list(self, user_id: str, collection: str) -> list[Record]:
        bucket = self._load().get(user_id, {})
        return _newest_first(list(bucket.get(collection, [])))

    def _insert(self, collection: str, record: Record) -> Record:
        document = self._load()
        bucket = document.setdefault(record["user_id"], {"folders": [], "questions": []})
        bucket.setdefault(collection, []).append(record)
        self._save(document)
        return dict(record)

    def _update(self, collection: str, record_id: str, changes: Record) -> Record:
        document = self._load()
        record = self._find(document, collection, record_id)
        record.update(changes)
        self._save(document)
        return dict(record)

    def _delete(self, collection: str, record_id: str) -> None:
        document = self._load()
        self._find(document, collection, record_id)
        for bucket in document.values():
            bucket[collection] = [r for r in bucket.get(collection, []) if r.get("id") != record_id]
        self._save(document)

    def _delete_by_folder(self, folder_id: str) -> int:
        document = self._load()
        removed = 0
        for bucket in document.values():
            questions = bucket.get("questions", [])
            kept = [q for q in questions if q.get("folder_id") != folder_id]
            removed += len(questions) - len(kept)
            bucket["questions"] = kept
        self._save(document)
        return removed

    # =========================================================================
    # Storage
    # =========================================================================

    def _load(self) -> Document:
        if not self.path.exists():
            return {}
        try:
            data: Any = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise BackendError(f"Could not read local store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise BackendError(f"Local store {self.path} is not a JSON object")
        return data

    def _save(self, document: Document) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise BackendError(f"Could not write local store {self.path}: {e}") from e

    @staticmethod
    def _find(document: Document, collection: str, record_id: str) -> Record:
        # Ids are unique across users, so a scan of every bucket is enough.
        for bucket in document.values():
            for record in bucket.get(collection, []):
                if record.get("id") == record_id:
                    return record
        raise RecordNotFoundError(f"No {collection[:-1]} with id {record_id}")


def _owner(fields: Record) -> str:
    user_id = fields.get("user_id")
    if not user_id:
        raise BackendError("Record has no owner")
    return str(user_id)
