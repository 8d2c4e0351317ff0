"""
Relational backend (SQLAlchemy).

SQLite by default, PostgreSQL through ``CONCURSO_DATABASE_URL``. Rows are
converted to the same snake_case records the other backends return.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar
from uuid import uuid4

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from concurso.backends.base import Record
from concurso.core.errors import BackendError, RecordNotFoundError
from concurso.db.database import create_db_engine, init_db, make_session_factory, session_scope
from concurso.db.models import FolderRow, QuestionRow
from concurso.store.mapping import format_timestamp

T = TypeVar("T")

QUESTION_COLUMNS = (
    "folder_id",
    "title",
    "type",
    "options",
    "correct_answer",
    "correct_boolean",
    "explanation",
)


def _utc(value: datetime) -> str:
    # SQLite hands back naive datetimes; every stored value is UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_timestamp(value)


def folder_row_to_record(row: FolderRow) -> Record:
    return {
        "id": row.id,
        "name": row.name,
        "description": row.description,
        "user_id": row.user_id,
        "created_at": _utc(row.created_at),
    }


def question_row_to_record(row: QuestionRow) -> Record:
    return {
        "id": row.id,
        "folder_id": row.folder_id,
        "user_id": row.user_id,
        "title": row.title,
        "type": row.type,
        "options": list(row.options) if row.options is not None else None,
        "correct_answer": row.correct_answer,
        "correct_boolean": row.correct_boolean,
        "explanation": row.explanation,
        "created_at": _utc(row.created_at),
        "updated_at": _utc(row.updated_at),
    }


class SqlBackend:
    """
    Folder/question persistence in a relational database.

    Sessions are synchronous; each operation runs its transaction in a worker
    thread (``asyncio.to_thread``) so the event loop keeps running meanwhile.
    """

    name = "sql"

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.engine = create_db_engine(database_url, echo=echo)
        self._sessions = make_session_factory(self.engine)
        init_db(self.engine)

    async def list_folders_by_user(self, user_id: str) -> list[Record]:
        def work(session: Session) -> list[Record]:
            rows = session.scalars(
                select(FolderRow)
                .where(FolderRow.user_id == user_id)
                .order_by(FolderRow.created_at.desc())
            ).all()
            return [folder_row_to_record(row) for row in rows]

        return await self._transaction("list folders", work)

    async def list_questions_by_user(self, user_id: str) -> list[Record]:
        def work(session: Session) -> list[Record]:
            rows = session.scalars(
                select(QuestionRow)
                .where(QuestionRow.user_id == user_id)
                .order_by(QuestionRow.created_at.desc())
            ).all()
            return [question_row_to_record(row) for row in rows]

        return await self._transaction("list questions", work)

    # =========================================================================
    # Folders
    # =========================================================================

    async def create_folder(self, fields: Record) -> Record:
        row = FolderRow(
            id=str(uuid4()),
            user_id=fields.get("user_id"),
            name=fields.get("name"),
            description=fields.get("description"),
            created_at=datetime.now(timezone.utc),
        )

        def work(session: Session) -> Record:
            session.add(row)
            session.flush()
            return folder_row_to_record(row)

        return await self._transaction("create folder", work)

    async def update_folder(self, folder_id: str, fields: Record) -> Record:
        def work(session: Session) -> Record:
            row = self._get(session, FolderRow, folder_id)
            row.name = fields.get("name")
            row.description = fields.get("description")
            session.flush()
            return folder_row_to_record(row)

        return await self._transaction("update folder", work)

    async def delete_folder(self, folder_id: str) -> None:
        def work(session: Session) -> None:
            session.delete(self._get(session, FolderRow, folder_id))

        await self._transaction("delete folder", work)

    # =========================================================================
    # Questions
    # =========================================================================

    async def create_question(self, fields: Record) -> Record:
        now = datetime.now(timezone.utc)
        row = QuestionRow(
            id=str(uuid4()),
            user_id=fields.get("user_id"),
            created_at=now,
            updated_at=now,
            **{column: fields.get(column) for column in QUESTION_COLUMNS},
        )

        def work(session: Session) -> Record:
            session.add(row)
            session.flush()
            return question_row_to_record(row)

        return await self._transaction("create question", work)

    async def update_question(self, question_id: str, fields: Record) -> Record:
        def work(session: Session) -> Record:
            row = self._get(session, QuestionRow, question_id)
            for column in QUESTION_COLUMNS:
                if column in fields:
                    setattr(row, column, fields[column])
            row.updated_at = datetime.now(timezone.utc)
            session.flush()
            return question_row_to_record(row)

        return await self._transaction("update question", work)

    async def delete_question(self, question_id: str) -> None:
        def work(session: Session) -> None:
            session.delete(self._get(session, QuestionRow, question_id))

        await self._transaction("delete question", work)

    async def delete_questions_by_folder(self, folder_id: str) -> None:
        def work(session: Session) -> None:
            result = session.execute(delete(QuestionRow).where(QuestionRow.folder_id == folder_id))
            logger.debug(f"Removed {result.rowcount} questions of folder {folder_id}")

        await self._transaction("delete questions", work)

    async def close(self) -> None:
        await asyncio.to_thread(self.engine.dispose)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _transaction(self, action: str, work: Callable[[Session], T]) -> T:
        """Run ``work`` inside one committed session on a worker thread."""

        def run() -> T:
            with session_scope(self._sessions) as session:
                return work(session)

        try:
            return await asyncio.to_thread(run)
        except SQLAlchemyError as e:
            raise self._error(action, e) from e

    @staticmethod
    def _get(session: Session, model, record_id: str):
        row = session.get(model, record_id)
        if row is None:
            raise RecordNotFoundError(f"No {model.__tablename__[:-1]} with id {record_id}")
        return row

    @staticmethod
    def _error(action: str, error: SQLAlchemyError) -> BackendError:
        if isinstance(error, IntegrityError):
            logger.error(f"Constraint violated during {action}: {error.orig}")
            return BackendError(f"Could not {action}: constraint violated ({error.orig})")
        logger.error(f"Database error during {action}: {error}")
        return BackendError(f"Could not {action}: database error")
