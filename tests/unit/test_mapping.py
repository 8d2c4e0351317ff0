"""
Unit tests for wire record <-> domain mapping.
"""

from datetime import timezone

import pytest

from concurso.core.errors import MappingError
from concurso.core.models import FolderFields, QuestionFields, QuestionType
from concurso.store.mapping import (
    folder_from_record,
    folder_to_record,
    map_owned_records,
    parse_timestamp,
    question_from_record,
    question_to_record,
)


@pytest.fixture
def mc_record():
    return {
        "id": "q1",
        "folder_id": "f1",
        "user_id": "u1",
        "title": "Capital?",
        "type": "multiple",
        "options": ["Rio", "Brasilia"],
        "correct_answer": "b",
        "correct_boolean": None,
        "explanation": "",
        "created_at": "2024-03-01T12:00:00Z",
    }


class TestTimestamps:
    def test_z_suffix(self):
        parsed = parse_timestamp("2024-03-01T12:00:00Z")
        assert parsed.tzinfo is not None
        assert parsed.hour == 12

    def test_naive_becomes_utc(self):
        assert parse_timestamp("2024-03-01T12:00:00").tzinfo is timezone.utc

    @pytest.mark.parametrize("value", [None, "", "yesterday", 12])
    def test_invalid(self, value):
        with pytest.raises(MappingError):
            parse_timestamp(value)


class TestFolderMapping:
    def test_from_record(self):
        folder = folder_from_record(
            {"id": "f1", "name": " Direito ", "user_id": "u1", "created_at": "2024-03-01T12:00:00+00:00", "extra": 1}
        )

        assert folder.name == "Direito"
        assert folder.description is None

    def test_missing_owner(self):
        with pytest.raises(MappingError, match="user_id"):
            folder_from_record({"id": "f1", "name": "x", "created_at": "2024-03-01T12:00:00Z"})

    def test_to_record_only_sends_owner_on_create(self):
        fields = FolderFields(name="Direito", description=None)

        assert folder_to_record(fields, "u1") == {"name": "Direito", "description": None, "user_id": "u1"}
        assert "user_id" not in folder_to_record(fields)


class TestQuestionMapping:
    def test_multiple_choice(self, mc_record):
        question = question_from_record(mc_record)

        assert question.type is QuestionType.MULTIPLE_CHOICE
        assert question.options == ("Rio", "Brasilia")
        assert question.correct_answer == "B"
        assert question.explanation is None
        assert question.updated_at == question.created_at

    def test_answer_out_of_range(self, mc_record):
        mc_record["correct_answer"] = "C"
        with pytest.raises(MappingError, match="past its options"):
            question_from_record(mc_record)

    def test_unknown_type(self, mc_record):
        mc_record["type"] = "essay"
        with pytest.raises(MappingError, match="unknown type"):
            question_from_record(mc_record)

    def test_boolean_needs_bool(self, mc_record):
        mc_record.update(type="boolean", correct_boolean="yes")
        with pytest.raises(MappingError):
            question_from_record(mc_record)

        mc_record["correct_boolean"] = False
        question = question_from_record(mc_record)
        assert question.correct_boolean is False
        assert question.options == ()

    def test_to_record_for_boolean(self):
        fields = QuestionFields(
            folder_id="f1", title="T", type=QuestionType.BOOLEAN, correct_boolean=True
        ).validated()

        record = question_to_record(fields, "u1")

        assert record["type"] == "boolean"
        assert record["options"] is None
        assert record["correct_answer"] is None
        assert record["correct_boolean"] is True
        assert record["user_id"] == "u1"


class TestMapOwnedRecords:
    def test_skips_malformed_and_foreign(self, mc_record):
        foreign = {**mc_record, "id": "q2", "user_id": "someone-else"}
        broken = {**mc_record, "id": "q3", "options": "Rio"}

        result = map_owned_records([mc_record, foreign, broken], question_from_record, "u1")

        assert [q.id for q in result] == ["q1"]
