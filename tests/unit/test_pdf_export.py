"""
Unit tests for the PDF export.
"""

from datetime import datetime

import pytest

from concurso.core.errors import ExportError
from concurso.export import export_file_name, export_to_document

WHEN = datetime(2024, 3, 1, 9, 30)


class TestFileName:
    def test_non_alphanumerics_replaced(self, folder_factory):
        folder = folder_factory(name="Direito Constitucional/2024")

        assert export_file_name(folder, WHEN) == "Direito_Constitucional_2024_questions_2024-03-01.pdf"

    def test_accents_replaced(self, folder_factory):
        assert export_file_name(folder_factory(name="Português"), WHEN) == "Portugu_s_questions_2024-03-01.pdf"


class TestExport:
    def test_writes_pdf(self, tmp_path, folder_factory, question_factory):
        folder = folder_factory(name="Direito", description="Constitucional & Civil")
        questions = [
            question_factory(folder.id, title="Qual <e> a capital?"),
            question_factory(folder.id, title="Brasilia e a capital", boolean=True),
        ]

        path = export_to_document(questions, folder, tmp_path / "out", generated_at=WHEN)

        assert path == tmp_path / "out" / "Direito_questions_2024-03-01.pdf"
        assert path.read_bytes().startswith(b"%PDF")

    def test_empty_folder(self, tmp_path, folder_factory):
        with pytest.raises(ExportError, match="no questions"):
            export_to_document([], folder_factory(), tmp_path)

    def test_unwritable_target(self, tmp_path, folder_factory, question_factory):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        folder = folder_factory()

        with pytest.raises(ExportError):
            export_to_document([question_factory(folder.id)], folder, blocker / "sub")
