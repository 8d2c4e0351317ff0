"""
Store controller: bridges the reducer to the identity provider and the
persistence backend.

The controller owns the single state cell. It never changes state
speculatively: every mutation is validated locally, confirmed by the backend,
and only then dispatched as an intent carrying the backend's canonical record.

Usage:
    controller = StoreController(backend, identity)
    controller.attach()
    await identity.restore()
    result = await controller.create_folder(FolderFields(name="Direito"))
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from loguru import logger

from concurso.backends.base import PersistenceBackend
from concurso.core.errors import (
    AuthenticationError,
    BackendError,
    ConcursoError,
    MappingError,
    ValidationError,
)
from concurso.core.models import (
    Folder,
    FolderFields,
    Question,
    QuestionFields,
    QuestionType,
    User,
)
from concurso.store.mapping import (
    folder_from_record,
    folder_to_record,
    map_owned_records,
    question_from_record,
    question_to_record,
)
from concurso.store.reducer import (
    INITIAL_STATE,
    AddFolder,
    AddQuestion,
    AppState,
    DeleteFolder,
    DeleteQuestion,
    Intent,
    ReplaceFolders,
    ReplaceQuestions,
    ResetAll,
    UpdateFolder,
    UpdateQuestion,
    reduce,
)

if TYPE_CHECKING:
    from concurso.auth.provider import IdentityProvider

StateListener = Callable[[AppState], None]
OwnedT = TypeVar("OwnedT", Folder, Question)


@dataclass
class OperationResult:
    """Outcome of a store operation, ready to show to the user."""

    success: bool
    record: Folder | Question | None = None
    error: str | None = None
    error_kind: str | None = None

    @classmethod
    def ok(cls, record: Folder | Question | None = None) -> OperationResult:
        return cls(success=True, record=record)

    @classmethod
    def failed(cls, error: ConcursoError) -> OperationResult:
        return cls(success=False, error=str(error), error_kind=error.kind)


class StaleSessionError(AuthenticationError):
    """The session changed while a request was in flight."""


class StoreController:
    """
    Owner of the domain state for one authenticated session.

    Intents are applied in dispatch order; a dispatch issued from inside a
    state listener is queued behind the one being applied.
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        identity: IdentityProvider | None = None,
    ):
        self.backend = backend
        self.identity = identity
        self._state: AppState = INITIAL_STATE
        self._listeners: list[StateListener] = []
        self._pending: deque[Intent] = deque()
        self._dispatching = False
        self._user_id: str | None = None
        # Bumped on every session start/end; responses from an older
        # generation are discarded.
        self._generation = 0
        self._detach_identity: Callable[[], None] | None = None

    # =========================================================================
    # State access
    # =========================================================================

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener(state)`` after every applied intent."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, intent: Intent) -> AppState:
        """Apply an intent (FIFO) and notify listeners."""
        self._pending.append(intent)
        if self._dispatching:
            return self._state

        self._dispatching = True
        try:
            while self._pending:
                next_intent = self._pending.popleft()
                self._state = reduce(self._state, next_intent)
                logger.debug(f"Applied {type(next_intent).__name__}")
                for listener in list(self._listeners):
                    listener(self._state)
        finally:
            self._dispatching = False
        return self._state

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    def attach(self) -> None:
        """Subscribe to the identity provider's sign-in / sign-out notifications."""
        if self.identity is None or self._detach_identity is not None:
            return
        self._detach_identity = self.identity.subscribe(self._on_identity_change)

    def detach(self) -> None:
        if self._detach_identity is not None:
            self._detach_identity()
            self._detach_identity = None

    async def _on_identity_change(self, user: User | None) -> None:
        if user is None:
            self.on_session_end()
        else:
            await self.on_session_start(user.id)

    async def on_session_start(self, user_id: str) -> bool:
        """
        Load the user's folders and questions.

        The previous user's data is cleared before the first await, so it is
        never visible under the new session. Backend failures leave an empty
        workspace.

        Returns:
            True if the data was loaded and applied
        """
        self._generation += 1
        generation = self._generation
        self._user_id = user_id
        self.dispatch(ResetAll())

        try:
            folder_records = await self.backend.list_folders_by_user(user_id)
            question_records = await self.backend.list_questions_by_user(user_id)
        except BackendError as e:
            logger.error(f"Error loading data for user {user_id}: {e}")
            return False

        if generation != self._generation:
            logger.info(f"Discarding stale load for user {user_id}")
            return False

        folders = map_owned_records(folder_records, folder_from_record, user_id)
        folder_ids = {folder.id for folder in folders}
        questions = []
        for question in map_owned_records(question_records, question_from_record, user_id):
            if question.folder_id not in folder_ids:
                logger.warning(f"Skipping question {question.id} of unknown folder {question.folder_id}")
                continue
            questions.append(question)

        self.dispatch(ReplaceFolders(tuple(folders)))
        self.dispatch(ReplaceQuestions(tuple(questions)))
        logger.info(f"Loaded {len(folders)} folders and {len(questions)} questions for {user_id}")
        return True

    def on_session_end(self) -> None:
        self._generation += 1
        self._user_id = None
        self.dispatch(ResetAll())

    # =========================================================================
    # Folder operations
    # =========================================================================

    async def create_folder(self, fields: FolderFields) -> OperationResult:
        try:
            user_id, generation = self._begin()
            clean = fields.validated()
            record = await self.backend.create_folder(folder_to_record(clean, user_id))
            folder = self._owned(folder_from_record(record), user_id)
            self._check_generation(generation)
        except ConcursoError as e:
            return self._fail("create folder", e)

        self.dispatch(AddFolder(folder))
        logger.info(f"Folder created: {folder.id}")
        return OperationResult.ok(folder)

    async def update_folder(self, folder_id: str, fields: FolderFields) -> OperationResult:
        try:
            user_id, generation = self._begin()
            self._known_folder(folder_id)
            clean = fields.validated()
            record = await self.backend.update_folder(folder_id, folder_to_record(clean))
            folder = self._owned(folder_from_record(record), user_id)
            if folder.id != folder_id:
                raise MappingError(f"Backend returned folder {folder.id} for {folder_id}")
            self._check_generation(generation)
        except ConcursoError as e:
            return self._fail("update folder", e)

        self.dispatch(UpdateFolder(folder))
        logger.info(f"Folder updated: {folder.id}")
        return OperationResult.ok(folder)

    async def delete_folder(self, folder_id: str) -> OperationResult:
        """Delete a folder and its questions (questions first, for referential integrity)."""
        try:
            _, generation = self._begin()
            folder = self._known_folder(folder_id)
            await self.backend.delete_questions_by_folder(folder_id)
            try:
                await self.backend.delete_folder(folder_id)
            except BackendError:
                logger.error(
                    f"Questions of folder {folder_id} were deleted but the folder was not; "
                    "local state left unchanged"
                )
                raise
            self._check_generation(generation)
        except ConcursoError as e:
            return self._fail("delete folder", e)

        self.dispatch(DeleteFolder(folder_id))
        logger.info(f"Folder deleted: {folder_id}")
        return OperationResult.ok(folder)

    # =========================================================================
    # Question operations
    # =========================================================================

    async def create_question(self, fields: QuestionFields) -> OperationResult:
        try:
            user_id, generation = self._begin()
            clean = fields.validated()
            self._known_folder(clean.folder_id)
            record = await self.backend.create_question(question_to_record(clean, user_id))
            question = self._owned(question_from_record(record), user_id)
            self._check_generation(generation)
        except ConcursoError as e:
            return self._fail("create question", e)

        self.dispatch(AddQuestion(question))
        logger.info(f"Question created: {question.id}")
        return OperationResult.ok(question)

    async def update_question(self, question_id: str, fields: QuestionFields) -> OperationResult:
        try:
            user_id, generation = self._begin()
            self._known_question(question_id)
            clean = fields.validated()
            self._known_folder(clean.folder_id)
            record = await self.backend.update_question(question_id, question_to_record(clean))
            question = self._owned(question_from_record(record), user_id)
            if question.id != question_id:
                raise MappingError(f"Backend returned question {question.id} for {question_id}")
            self._check_generation(generation)
        except ConcursoError as e:
            return self._fail("update question", e)

        self.dispatch(UpdateQuestion(question))
        logger.info(f"Question updated: {question.id}")
        return OperationResult.ok(question)

    async def delete_question(self, question_id: str) -> OperationResult:
        try:
            _, generation = self._begin()
            question = self._known_question(question_id)
            await self.backend.delete_question(question_id)
            self._check_generation(generation)
        except ConcursoError as e:
            return self._fail("delete question", e)

        self.dispatch(DeleteQuestion(question_id))
        logger.info(f"Question deleted: {question_id}")
        return OperationResult.ok(question)

    # =========================================================================
    # Read helpers
    # =========================================================================

    def folder(self, folder_id: str) -> Folder | None:
        return next((f for f in self._state.folders if f.id == folder_id), None)

    def question(self, question_id: str) -> Question | None:
        return next((q for q in self._state.questions if q.id == question_id), None)

    def questions_in(self, folder_id: str) -> list[Question]:
        return [q for q in self._state.questions if q.folder_id == folder_id]

    def question_counts(self) -> dict[str, int]:
        """Number of questions per folder id (folders without questions map to 0)."""
        counts = {folder.id: 0 for folder in self._state.folders}
        for question in self._state.questions:
            counts[question.folder_id] = counts.get(question.folder_id, 0) + 1
        return counts

    def type_counts(self, folder_id: str) -> dict[QuestionType, int]:
        counts = {question_type: 0 for question_type in QuestionType}
        for question in self.questions_in(folder_id):
            counts[question.type] += 1
        return counts

    def search_folders(self, term: str = "") -> list[Folder]:
        """Case-insensitive name filter, in state order."""
        needle = term.strip().lower()
        return [f for f in self._state.folders if needle in f.name.lower()]

    # =========================================================================
    # Internals
    # =========================================================================

    def _begin(self) -> tuple[str, int]:
        if self._user_id is None:
            raise AuthenticationError("Sign in first")
        return self._user_id, self._generation

    def _check_generation(self, generation: int) -> None:
        if generation != self._generation:
            raise StaleSessionError("The session changed before the request completed")

    def _known_folder(self, folder_id: str) -> Folder:
        folder = self.folder(folder_id)
        if folder is None or folder.user_id != self._user_id:
            raise ValidationError(f"Unknown folder: {folder_id}")
        return folder

    def _known_question(self, question_id: str) -> Question:
        question = self.question(question_id)
        if question is None or question.user_id != self._user_id:
            raise ValidationError(f"Unknown question: {question_id}")
        return question

    @staticmethod
    def _owned(item: OwnedT, user_id: str) -> OwnedT:
        if item.user_id != user_id:
            raise MappingError(f"Backend returned record {item.id} owned by another user")
        return item

    @staticmethod
    def _fail(action: str, error: ConcursoError) -> OperationResult:
        if isinstance(error, ValidationError):
            logger.warning(f"Could not {action}: {error}")
        else:
            logger.error(f"Could not {action}: {error}")
        return OperationResult.failed(error)
