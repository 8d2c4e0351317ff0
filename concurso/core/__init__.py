"""
Core Module - Shared domain types, errors and mode selection.

Components:
- models: Folder, Question, User, StudySession and the submission types
- errors: Error taxonomy surfaced to the user
- modes: Backend / identity provider selection at startup
"""

from concurso.core.errors import (
    AuthenticationError,
    BackendError,
    ConcursoError,
    ExportError,
    MappingError,
    RecordNotFoundError,
    ValidationError,
)
from concurso.core.models import (
    OPTION_LETTERS,
    Folder,
    FolderFields,
    Question,
    QuestionFields,
    QuestionType,
    StudySession,
    TimerMode,
    User,
)

__all__ = [
    "OPTION_LETTERS",
    "AuthenticationError",
    "BackendError",
    "ConcursoError",
    "ExportError",
    "Folder",
    "FolderFields",
    "MappingError",
    "Question",
    "QuestionFields",
    "QuestionType",
    "RecordNotFoundError",
    "StudySession",
    "TimerMode",
    "User",
    "ValidationError",
]
