"""
Unit tests for domain types and submission validation.
"""

import pytest

from concurso.core.errors import ValidationError
from concurso.core.models import (
    FolderFields,
    QuestionFields,
    QuestionType,
    letter_to_index,
)


class TestLetters:
    def test_letter_to_index(self):
        assert letter_to_index("A") == 0
        assert letter_to_index(" e ") == 4
        assert letter_to_index("c") == 2

    @pytest.mark.parametrize("letter", ["", "F", "AB", "1"])
    def test_letter_to_index_rejects(self, letter):
        with pytest.raises(ValidationError):
            letter_to_index(letter)


class TestFolderFields:
    def test_trims_and_clears_empty_description(self):
        fields = FolderFields(name="  Direito  ", description="   ").validated()

        assert fields.name == "Direito"
        assert fields.description is None

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="name"):
            FolderFields(name="   ").validated()


class TestQuestionFields:
    """Tests for QuestionFields.validated()."""

    def test_multiple_choice_drops_blank_slots(self):
        fields = QuestionFields(
            folder_id="f1",
            title=" Capital? ",
            options=("Rio", "", "Brasilia", "  ", ""),
            correct_answer="b",
            correct_boolean=True,
        ).validated()

        assert fields.title == "Capital?"
        assert fields.options == ("Rio", "Brasilia")
        assert fields.correct_answer == "B"
        assert fields.correct_boolean is None

    def test_single_option_rejected(self):
        with pytest.raises(ValidationError, match="at least 2"):
            QuestionFields(folder_id="f1", title="Q", options=("Only",), correct_answer="A").validated()

    def test_too_many_options_rejected(self):
        with pytest.raises(ValidationError, match="at most 5"):
            QuestionFields(
                folder_id="f1", title="Q", options=tuple("abcdef"), correct_answer="A"
            ).validated()

    def test_answer_must_point_at_an_option(self):
        with pytest.raises(ValidationError, match="does not match"):
            QuestionFields(folder_id="f1", title="Q", options=("x", "y"), correct_answer="C").validated()

    def test_boolean_requires_value(self):
        with pytest.raises(ValidationError, match="correct value"):
            QuestionFields(folder_id="f1", title="Q", type=QuestionType.BOOLEAN).validated()

    def test_boolean_clears_options(self):
        fields = QuestionFields(
            folder_id="f1",
            title="A Terra e redonda",
            type=QuestionType.BOOLEAN,
            options=("x", "y"),
            correct_answer="A",
            correct_boolean=False,
            explanation="",
        ).validated()

        assert fields.options == ()
        assert fields.correct_answer is None
        assert fields.correct_boolean is False
        assert fields.explanation is None

    def test_requires_folder_and_title(self):
        with pytest.raises(ValidationError, match="folder"):
            QuestionFields(folder_id="", title="Q", options=("x", "y")).validated()
        with pytest.raises(ValidationError, match="title"):
            QuestionFields(folder_id="f1", title=" ", options=("x", "y")).validated()


class TestQuestion:
    def test_correct_display(self, question_factory):
        mc = question_factory("f1")
        tf = question_factory("f1", boolean=True)

        assert mc.correct_display == "Letter B"
        assert tf.correct_display == "TRUE"

    def test_lettered_options(self, question_factory):
        question = question_factory("f1")

        assert question.lettered_options() == [("A", "Rio"), ("B", "Brasilia"), ("C", "Salvador")]

    def test_type_labels(self):
        assert QuestionType.MULTIPLE_CHOICE.label == "Multiple choice"
        assert QuestionType("boolean") is QuestionType.BOOLEAN
