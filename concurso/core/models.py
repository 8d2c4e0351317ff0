"""
Domain types for the study-question manager.

Records (User, Folder, Question, StudySession) are immutable so that the
reducer can hand out snapshots without copying. User input travels in
FolderFields / QuestionFields and is normalized by ``validated()`` before
any persistence call.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from concurso.core.errors import ValidationError

# =============================================================================
# Constants
# =============================================================================

OPTION_LETTERS = "ABCDE"
MIN_OPTIONS = 2
MAX_OPTIONS = len(OPTION_LETTERS)


class QuestionType(str, Enum):
    """Kind of quiz question."""

    MULTIPLE_CHOICE = "multiple"
    BOOLEAN = "boolean"

    @property
    def label(self) -> str:
        if self is QuestionType.MULTIPLE_CHOICE:
            return "Multiple choice"
        return "True/False"


class TimerMode(str, Enum):
    """Run mode of a study session timer."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


def letter_to_index(letter: str) -> int:
    """Convert an option letter (A-E) into a zero-based index."""
    normalized = letter.strip().upper()
    if len(normalized) != 1 or normalized not in OPTION_LETTERS:
        raise ValidationError(f"Answer must be one of {', '.join(OPTION_LETTERS)}")
    return OPTION_LETTERS.index(normalized)


def _clean_optional(text: str | None) -> str | None:
    if text is None:
        return None
    cleaned = text.strip()
    return cleaned or None


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class User:
    """Signed-in user as reported by the identity provider."""

    id: str
    name: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class Folder:
    """A named group of questions (a study subject)."""

    id: str
    name: str
    user_id: str
    created_at: datetime
    description: str | None = None


@dataclass(frozen=True)
class Question:
    """A single quiz item, either multiple choice or a true/false judgment."""

    id: str
    folder_id: str
    user_id: str
    title: str
    type: QuestionType
    created_at: datetime
    updated_at: datetime
    options: tuple[str, ...] = ()
    correct_answer: str | None = None  # 'A'..'E'
    correct_boolean: bool | None = None
    explanation: str | None = None

    @property
    def is_multiple_choice(self) -> bool:
        return self.type is QuestionType.MULTIPLE_CHOICE

    @property
    def correct_display(self) -> str:
        """Human-readable correct answer ("Letter B", "TRUE", "FALSE")."""
        if self.is_multiple_choice:
            return f"Letter {self.correct_answer}"
        return "TRUE" if self.correct_boolean else "FALSE"

    def lettered_options(self) -> list[tuple[str, str]]:
        return [(OPTION_LETTERS[i], option) for i, option in enumerate(self.options)]


@dataclass(frozen=True)
class StudySession:
    """Snapshot of a study timer, published by the view that owns the timer."""

    folder_id: str
    duration_minutes: int
    remaining_seconds: int
    mode: TimerMode = TimerMode.IDLE
    started_at: datetime | None = None


# =============================================================================
# Submissions
# =============================================================================


@dataclass(frozen=True)
class FolderFields:
    """User-editable folder fields (full replace on edit)."""

    name: str
    description: str | None = None

    def validated(self) -> FolderFields:
        """Return a trimmed copy, or raise ValidationError."""
        name = (self.name or "").strip()
        if not name:
            raise ValidationError("Folder name must not be empty")
        return FolderFields(name=name, description=_clean_optional(self.description))


@dataclass(frozen=True)
class QuestionFields:
    """User-editable question fields (full replace on edit)."""

    folder_id: str
    title: str
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: tuple[str, ...] = field(default_factory=tuple)
    correct_answer: str | None = "A"
    correct_boolean: bool | None = None
    explanation: str | None = None

    def validated(self) -> QuestionFields:
        """
        Normalize the submission.

        Multiple choice: blank option slots are dropped, 2-5 options must
        remain and the answer letter must point at one of them.
        True/false: a correct value is required.

        Raises:
            ValidationError: If any rule is violated
        """
        if not self.folder_id:
            raise ValidationError("Question must belong to a folder")

        title = (self.title or "").strip()
        if not title:
            raise ValidationError("Question title must not be empty")

        try:
            question_type = QuestionType(self.type)
        except ValueError:
            raise ValidationError(f"Unknown question type: {self.type!r}") from None

        explanation = _clean_optional(self.explanation)

        if question_type is QuestionType.BOOLEAN:
            if self.correct_boolean is None:
                raise ValidationError("True/false questions need a correct value")
            return replace(
                self,
                title=title,
                type=question_type,
                options=(),
                correct_answer=None,
                correct_boolean=bool(self.correct_boolean),
                explanation=explanation,
            )

        options = tuple(opt.strip() for opt in self.options if opt and opt.strip())
        if len(options) < MIN_OPTIONS:
            raise ValidationError(
                f"Add at least {MIN_OPTIONS} options to a multiple choice question"
            )
        if len(options) > MAX_OPTIONS:
            raise ValidationError(f"A question can have at most {MAX_OPTIONS} options")

        index = letter_to_index(self.correct_answer or "")
        if index >= len(options):
            raise ValidationError(
                f"Answer {self.correct_answer.strip().upper()} does not match any of the "
                f"{len(options)} options"
            )

        return replace(
            self,
            title=title,
            type=question_type,
            options=options,
            correct_answer=OPTION_LETTERS[index],
            correct_boolean=None,
            explanation=explanation,
        )
