"""
Boundary mapping between backend wire records and domain types.

Backends speak snake_case dictionaries (``folder_id``, ``created_at`` ...).
Everything that crosses into the store goes through the functions below,
which either build a valid domain record or raise MappingError. Missing
optional fields get explicit defaults; unknown fields are ignored.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger

from concurso.core.errors import MappingError, ValidationError
from concurso.core.models import (
    MAX_OPTIONS,
    MIN_OPTIONS,
    Folder,
    FolderFields,
    Question,
    QuestionFields,
    QuestionType,
    letter_to_index,
)

if TYPE_CHECKING:
    from concurso.backends.base import Record

T = TypeVar("T", Folder, Question)

FOLDER_FIELDS = frozenset({"id", "name", "description", "created_at", "user_id"})
QUESTION_FIELDS = frozenset(
    {
        "id",
        "folder_id",
        "user_id",
        "title",
        "type",
        "options",
        "correct_answer",
        "correct_boolean",
        "explanation",
        "created_at",
        "updated_at",
    }
)


# =============================================================================
# Field helpers
# =============================================================================


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise MappingError(f"Invalid timestamp: {value!r}") from None
    else:
        raise MappingError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def _require_str(record: Mapping[str, Any], key: str) -> str:
    value = record.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MappingError(f"Record is missing required field '{key}'")
    return str(value)


def _optional_str(record: Mapping[str, Any], key: str) -> str | None:
    value = record.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _log_unknown(record: Mapping[str, Any], known: frozenset[str], kind: str) -> None:
    extra = set(record) - known
    if extra:
        logger.debug(f"Ignoring unknown {kind} fields: {sorted(extra)}")


# =============================================================================
# Wire -> domain
# =============================================================================


def folder_from_record(record: Mapping[str, Any]) -> Folder:
    """Build a Folder from a backend record."""
    if not isinstance(record, Mapping):
        raise MappingError(f"Folder record must be a mapping, got {type(record).__name__}")
    _log_unknown(record, FOLDER_FIELDS, "folder")

    return Folder(
        id=_require_str(record, "id"),
        name=_require_str(record, "name").strip(),
        user_id=_require_str(record, "user_id"),
        created_at=parse_timestamp(record.get("created_at")),
        description=_optional_str(record, "description"),
    )


def question_from_record(record: Mapping[str, Any]) -> Question:
    """Build a Question from a backend record, enforcing the per-type invariants."""
    if not isinstance(record, Mapping):
        raise MappingError(f"Question record must be a mapping, got {type(record).__name__}")
    _log_unknown(record, QUESTION_FIELDS, "question")

    question_id = _require_str(record, "id")
    try:
        question_type = QuestionType(record.get("type"))
    except ValueError:
        raise MappingError(
            f"Question {question_id} has unknown type {record.get('type')!r}"
        ) from None

    created_at = parse_timestamp(record.get("created_at"))
    updated_raw = record.get("updated_at")
    updated_at = parse_timestamp(updated_raw) if updated_raw else created_at

    options: tuple[str, ...] = ()
    correct_answer: str | None = None
    correct_boolean: bool | None = None

    if question_type is QuestionType.MULTIPLE_CHOICE:
        raw_options = record.get("options")
        if not isinstance(raw_options, (list, tuple)) or not all(
            isinstance(opt, str) for opt in raw_options
        ):
            raise MappingError(f"Question {question_id} has invalid options")
        options = tuple(raw_options)
        if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
            raise MappingError(
                f"Question {question_id} has {len(options)} options "
                f"(expected {MIN_OPTIONS}-{MAX_OPTIONS})"
            )
        try:
            index = letter_to_index(str(record.get("correct_answer") or ""))
        except ValidationError:
            raise MappingError(f"Question {question_id} has an invalid answer letter") from None
        if index >= len(options):
            raise MappingError(f"Question {question_id} answer points past its options")
        correct_answer = str(record["correct_answer"]).strip().upper()
    else:
        value = record.get("correct_boolean")
        if not isinstance(value, bool):
            raise MappingError(f"Question {question_id} has no correct true/false value")
        correct_boolean = value

    return Question(
        id=question_id,
        folder_id=_require_str(record, "folder_id"),
        user_id=_require_str(record, "user_id"),
        title=_require_str(record, "title").strip(),
        type=question_type,
        created_at=created_at,
        updated_at=updated_at,
        options=options,
        correct_answer=correct_answer,
        correct_boolean=correct_boolean,
        explanation=_optional_str(record, "explanation"),
    )


def map_owned_records(
    records: Iterable[Mapping[str, Any]],
    mapper: Callable[[Mapping[str, Any]], T],
    user_id: str,
) -> list[T]:
    """
    Map a list response, keeping only valid records owned by ``user_id``.

    Invalid records are skipped with a warning rather than failing the
    whole load.
    """
    mapped: list[T] = []
    for record in records:
        try:
            item = mapper(record)
        except MappingError as e:
            logger.warning(f"Skipping malformed record: {e}")
            continue
        if item.user_id != user_id:
            logger.warning(f"Skipping record {item.id} owned by another user")
            continue
        mapped.append(item)
    return mapped


# =============================================================================
# Domain -> wire
# =============================================================================


def folder_to_record(fields: FolderFields, user_id: str | None = None) -> Record:
    """Payload for create (with ``user_id``) or full-replace update (without)."""
    record: Record = {
        "name": fields.name,
        "description": fields.description,
    }
    if user_id is not None:
        record["user_id"] = user_id
    return record


def question_to_record(fields: QuestionFields, user_id: str | None = None) -> Record:
    """Payload for create (with ``user_id``) or full-replace update (without)."""
    is_multiple = fields.type is QuestionType.MULTIPLE_CHOICE
    record: Record = {
        "folder_id": fields.folder_id,
        "title": fields.title,
        "type": fields.type.value,
        "options": list(fields.options) if is_multiple else None,
        "correct_answer": fields.correct_answer if is_multiple else None,
        "correct_boolean": None if is_multiple else fields.correct_boolean,
        "explanation": fields.explanation,
    }
    if user_id is not None:
        record["user_id"] = user_id
    return record
