"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from concurso.core.errors import BackendError, RecordNotFoundError  # noqa: E402
from concurso.core.models import Folder, Question, QuestionType  # noqa: E402
from config import Settings, get_settings  # noqa: E402

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (local files and SQLite)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings pointing every file at a temporary data directory."""
    monkeypatch.setenv("CONCURSO_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CONCURSO_EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.delenv("CONCURSO_BACKEND", raising=False)
    get_settings.cache_clear()
    yield Settings(_env_file=None)
    get_settings.cache_clear()


# =============================================================================
# Record factories
# =============================================================================


def make_folder(user_id="user-1", name="Direito", folder_id=None, minutes=0, description=None):
    return Folder(
        id=folder_id or str(uuid4()),
        name=name,
        user_id=user_id,
        created_at=T0 + timedelta(minutes=minutes),
        description=description,
    )


def make_question(folder_id, user_id="user-1", question_id=None, title="Qual e a capital?", boolean=False):
    if boolean:
        return Question(
            id=question_id or str(uuid4()),
            folder_id=folder_id,
            user_id=user_id,
            title=title,
            type=QuestionType.BOOLEAN,
            created_at=T0,
            updated_at=T0,
            correct_boolean=True,
        )
    return Question(
        id=question_id or str(uuid4()),
        folder_id=folder_id,
        user_id=user_id,
        title=title,
        type=QuestionType.MULTIPLE_CHOICE,
        created_at=T0,
        updated_at=T0,
        options=("Rio", "Brasilia", "Salvador"),
        correct_answer="B",
        explanation="Capital since 1960",
    )


@pytest.fixture
def folder_factory():
    return make_folder


@pytest.fixture
def question_factory():
    return make_question


# =============================================================================
# In-memory backend
# =============================================================================


class InMemoryBackend:
    """Backend double: records in dicts, optional failures and request gates."""

    name = "memory"

    def __init__(self):
        self.folders: dict[str, dict] = {}
        self.questions: dict[str, dict] = {}
        self.calls: list[str] = []
        self.fail_on: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self._clock = 0

    def seed_folder(self, record: dict) -> dict:
        self.folders[record["id"]] = dict(record)
        return record

    def seed_question(self, record: dict) -> dict:
        self.questions[record["id"]] = dict(record)
        return record

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.gates:
            await self.gates[name].wait()
        if name in self.fail_on:
            raise BackendError(f"{name} failed")

    def _timestamp(self) -> str:
        self._clock += 1
        return (T0 + timedelta(seconds=self._clock)).isoformat()

    async def list_folders_by_user(self, user_id):
        await self._enter("list_folders_by_user")
        rows = [dict(r) for r in self.folders.values() if r["user_id"] == user_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    async def list_questions_by_user(self, user_id):
        await self._enter("list_questions_by_user")
        rows = [dict(r) for r in self.questions.values() if r["user_id"] == user_id]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)

    async def create_folder(self, fields):
        await self._enter("create_folder")
        record = {**fields, "id": str(uuid4()), "created_at": self._timestamp()}
        self.folders[record["id"]] = record
        return dict(record)

    async def update_folder(self, folder_id, fields):
        await self._enter("update_folder")
        if folder_id not in self.folders:
            raise RecordNotFoundError(folder_id)
        self.folders[folder_id].update(fields)
        return dict(self.folders[folder_id])

    async def delete_folder(self, folder_id):
        await self._enter("delete_folder")
        if folder_id not in self.folders:
            raise RecordNotFoundError(folder_id)
        del self.folders[folder_id]

    async def create_question(self, fields):
        await self._enter("create_question")
        now = self._timestamp()
        record = {**fields, "id": str(uuid4()), "created_at": now, "updated_at": now}
        self.questions[record["id"]] = record
        return dict(record)

    async def update_question(self, question_id, fields):
        await self._enter("update_question")
        if question_id not in self.questions:
            raise RecordNotFoundError(question_id)
        self.questions[question_id].update(fields, updated_at=self._timestamp())
        return dict(self.questions[question_id])

    async def delete_question(self, question_id):
        await self._enter("delete_question")
        if question_id not in self.questions:
            raise RecordNotFoundError(question_id)
        del self.questions[question_id]

    async def delete_questions_by_folder(self, folder_id):
        await self._enter("delete_questions_by_folder")
        self.questions = {k: v for k, v in self.questions.items() if v["folder_id"] != folder_id}

    async def close(self):
        self.calls.append("close")


@pytest.fixture
def memory_backend():
    return InMemoryBackend()
