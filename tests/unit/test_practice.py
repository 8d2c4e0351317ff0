"""
Unit tests for practice and review runs.
"""

import pytest

from concurso.core.errors import ValidationError
from concurso.core.models import QuestionType
from concurso.study.practice import (
    PracticeMode,
    PracticeSession,
    filter_questions,
    parse_answer,
    parse_boolean,
)


@pytest.fixture
def questions(question_factory):
    return [
        question_factory("f1", question_id="mc", title="Qual e a capital?"),
        question_factory("f1", question_id="tf", title="Brasilia e a capital", boolean=True),
    ]


class TestParsing:
    def test_letters(self, questions):
        assert parse_answer(questions[0], " b ") == "B"

    def test_letter_beyond_options(self, questions):
        with pytest.raises(ValidationError, match="A, B, C"):
            parse_answer(questions[0], "D")

    @pytest.mark.parametrize("raw", ["certo", "C", "yes", "true", True])
    def test_true_spellings(self, raw):
        assert parse_boolean(raw) is True

    @pytest.mark.parametrize("raw", ["errado", "E", "no", "false", False])
    def test_false_spellings(self, raw):
        assert parse_boolean(raw) is False

    def test_unknown_boolean(self):
        with pytest.raises(ValidationError):
            parse_boolean("maybe")


class TestFilter:
    def test_by_type_and_search(self, questions):
        assert [q.id for q in filter_questions(questions, QuestionType.BOOLEAN)] == ["tf"]
        assert [q.id for q in filter_questions(questions, search="QUAL")] == ["mc"]
        assert len(filter_questions(questions)) == 2


class TestPracticeSession:
    def test_scoring(self, questions):
        session = PracticeSession(questions)

        assert session.answer("mc", "B").is_correct
        wrong = session.answer("tf", "errado")

        assert not wrong.is_correct
        assert wrong.correct_display == "TRUE"
        assert session.score() == (1, 2, 50.0)

    def test_retry_replaces_attempt(self, questions):
        session = PracticeSession(questions)
        session.answer("mc", "A")

        session.retry("mc")
        assert session.score() == (0, 0, 0.0)
        session.answer("mc", "B")

        assert session.score() == (1, 1, 100.0)

    def test_review_mode_does_not_score(self, questions):
        session = PracticeSession(questions, PracticeMode.REVIEW)

        revealed = session.reveal("mc")

        assert revealed.correct_display == "Letter B"
        assert revealed.explanation == "Capital since 1960"
        with pytest.raises(ValidationError):
            session.answer("mc", "B")

    def test_unknown_question(self, questions):
        with pytest.raises(ValidationError):
            PracticeSession(questions).answer("missing", "A")

    def test_empty_score(self):
        assert PracticeSession([]).score() == (0, 0, 0.0)
