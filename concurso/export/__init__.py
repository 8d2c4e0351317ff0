"""Document export."""

from concurso.export.pdf_export import export_file_name, export_to_document

__all__ = ["export_file_name", "export_to_document"]
