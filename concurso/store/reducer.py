"""
Pure state transitions for the in-memory domain store.

``reduce(state, intent)`` never mutates its input: every transition returns
a new AppState built from immutable tuples, so a reader holding an older
snapshot never observes a half-applied change.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from concurso.core.models import Folder, Question, StudySession

# =============================================================================
# State
# =============================================================================


@dataclass(frozen=True)
class AppState:
    """Folders and questions of the signed-in user, plus the active timer snapshot."""

    folders: tuple[Folder, ...] = ()
    questions: tuple[Question, ...] = ()
    timer: StudySession | None = None


INITIAL_STATE = AppState()


# =============================================================================
# Intents
# =============================================================================


@dataclass(frozen=True)
class ReplaceFolders:
    folders: tuple[Folder, ...]


@dataclass(frozen=True)
class ReplaceQuestions:
    questions: tuple[Question, ...]


@dataclass(frozen=True)
class AddFolder:
    folder: Folder


@dataclass(frozen=True)
class AddQuestion:
    question: Question


@dataclass(frozen=True)
class UpdateFolder:
    folder: Folder


@dataclass(frozen=True)
class UpdateQuestion:
    question: Question


@dataclass(frozen=True)
class DeleteFolder:
    folder_id: str


@dataclass(frozen=True)
class DeleteQuestion:
    question_id: str


@dataclass(frozen=True)
class ResetAll:
    pass


@dataclass(frozen=True)
class SetStudySession:
    session: StudySession | None


Intent = (
    ReplaceFolders
    | ReplaceQuestions
    | AddFolder
    | AddQuestion
    | UpdateFolder
    | UpdateQuestion
    | DeleteFolder
    | DeleteQuestion
    | ResetAll
    | SetStudySession
)


# =============================================================================
# Reducer
# =============================================================================


def reduce(state: AppState, intent: Intent) -> AppState:
    """
    Apply one intent to the state.

    Args:
        state: Current state (left untouched)
        intent: The transition to apply

    Returns:
        A new AppState

    Raises:
        TypeError: For objects that are not known intents
    """
    if isinstance(intent, ReplaceFolders):
        return replace(state, folders=tuple(intent.folders))

    if isinstance(intent, ReplaceQuestions):
        return replace(state, questions=tuple(intent.questions))

    if isinstance(intent, AddFolder):
        return replace(state, folders=state.folders + (intent.folder,))

    if isinstance(intent, AddQuestion):
        return replace(state, questions=state.questions + (intent.question,))

    if isinstance(intent, UpdateFolder):
        folder = intent.folder
        return replace(
            state,
            folders=tuple(folder if f.id == folder.id else f for f in state.folders),
        )

    if isinstance(intent, UpdateQuestion):
        question = intent.question
        return replace(
            state,
            questions=tuple(question if q.id == question.id else q for q in state.questions),
        )

    if isinstance(intent, DeleteFolder):
        # Cascade in the same transition: no state ever holds orphaned questions
        return replace(
            state,
            folders=tuple(f for f in state.folders if f.id != intent.folder_id),
            questions=tuple(q for q in state.questions if q.folder_id != intent.folder_id),
        )

    if isinstance(intent, DeleteQuestion):
        return replace(
            state,
            questions=tuple(q for q in state.questions if q.id != intent.question_id),
        )

    if isinstance(intent, ResetAll):
        return INITIAL_STATE

    if isinstance(intent, SetStudySession):
        return replace(state, timer=intent.session)

    raise TypeError(f"Unknown intent: {intent!r}")
