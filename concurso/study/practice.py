"""
Practice and review runs over a folder's questions.

Practice mode checks each answer and keeps a score; answering a question
again replaces the earlier attempt. Review mode only reveals the answers.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum

from concurso.core.errors import ValidationError
from concurso.core.models import Question, QuestionType, letter_to_index

TRUE_WORDS = frozenset({"true", "t", "yes", "y", "1", "certo", "c", "v"})
FALSE_WORDS = frozenset({"false", "f", "no", "n", "0", "errado", "e"})


class PracticeMode(str, Enum):
    PRACTICE = "practice"
    REVIEW = "review"


@dataclass(frozen=True)
class AnswerResult:
    """Outcome of one answered question."""

    is_correct: bool
    correct_display: str
    explanation: str | None = None


def parse_answer(question: Question, raw: str | bool) -> str | bool:
    """
    Normalize user input for a question.

    Multiple choice answers are option letters; true/false answers accept
    true/false, yes/no and certo/errado spellings.

    Raises:
        ValidationError: If the input is not a valid answer for the question
    """
    if question.is_multiple_choice:
        if not isinstance(raw, str):
            raise ValidationError("Answer with an option letter")
        index = letter_to_index(raw)
        if index >= len(question.options):
            letters = ", ".join(letter for letter, _ in question.lettered_options())
            raise ValidationError(f"Choose one of {letters}")
        return raw.strip().upper()

    return parse_boolean(raw)


def parse_boolean(raw: str | bool) -> bool:
    if isinstance(raw, bool):
        return raw
    word = str(raw).strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    raise ValidationError("Answer with true or false")


def filter_questions(
    questions: Iterable[Question],
    question_type: QuestionType | None = None,
    search: str = "",
) -> list[Question]:
    """Type filter plus case-insensitive title search."""
    needle = search.strip().lower()
    return [
        q
        for q in questions
        if (question_type is None or q.type is question_type) and needle in q.title.lower()
    ]


class PracticeSession:
    """An ordered run over a set of questions."""

    def __init__(self, questions: Sequence[Question], mode: PracticeMode = PracticeMode.PRACTICE):
        self.questions = list(questions)
        self.mode = PracticeMode(mode)
        self._attempts: dict[str, AnswerResult] = {}

    def __iter__(self) -> Iterator[Question]:
        return iter(self.questions)

    def __len__(self) -> int:
        return len(self.questions)

    def answer(self, question_id: str, raw: str | bool) -> AnswerResult:
        if self.mode is PracticeMode.REVIEW:
            raise ValidationError("Review mode shows answers without scoring")
        question = self._get(question_id)
        given = parse_answer(question, raw)
        if question.is_multiple_choice:
            is_correct = given == question.correct_answer
        else:
            is_correct = given is question.correct_boolean

        result = AnswerResult(
            is_correct=is_correct,
            correct_display=question.correct_display,
            explanation=question.explanation,
        )
        self._attempts[question_id] = result
        return result

    def reveal(self, question_id: str) -> AnswerResult:
        """The answer key for a question, without recording an attempt."""
        question = self._get(question_id)
        return AnswerResult(
            is_correct=True,
            correct_display=question.correct_display,
            explanation=question.explanation,
        )

    def retry(self, question_id: str) -> None:
        self._attempts.pop(question_id, None)

    def score(self) -> tuple[int, int, float]:
        """Return ``(correct, answered, percent)``."""
        answered = len(self._attempts)
        correct = sum(1 for result in self._attempts.values() if result.is_correct)
        percent = correct / answered * 100 if answered else 0.0
        return correct, answered, percent

    def _get(self, question_id: str) -> Question:
        for question in self.questions:
            if question.id == question_id:
                return question
        raise ValidationError(f"Question {question_id} is not part of this session")
