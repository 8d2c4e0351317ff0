"""
PDF export of a folder's questions.

Builds an A4 document with reportlab's platypus layout engine: a header with
the folder details, then one block per question with the options (correct
one highlighted), the explanation and a footer line with the answer.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from xml.sax.saxutils import escape

from loguru import logger
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from concurso.core.errors import ExportError
from concurso.core.models import Folder, Question

APP_TITLE = "ConCurso Pro"
ACCENT = colors.HexColor("#3B82F6")
MUTED = colors.HexColor("#6B7280")
CORRECT = colors.HexColor("#059669")
WRONG = colors.HexColor("#EF4444")


def export_file_name(folder: Folder, when: datetime) -> str:
    """``<folder name with non-alphanumerics replaced>_questions_<YYYY-MM-DD>.pdf``"""
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", folder.name)
    return f"{safe_name}_questions_{when.strftime('%Y-%m-%d')}.pdf"


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "app": ParagraphStyle(
            "ExportApp", parent=base["Heading1"], fontName="Helvetica-Bold",
            fontSize=20, leading=24, alignment=1, textColor=colors.HexColor("#1F2937"),
        ),
        "folder": ParagraphStyle(
            "ExportFolder", parent=base["Heading2"], fontName="Helvetica-Bold",
            fontSize=15, leading=19, alignment=1, textColor=ACCENT,
        ),
        "meta": ParagraphStyle(
            "ExportMeta", parent=base["BodyText"], fontName="Helvetica",
            fontSize=9.5, leading=12.5, alignment=1, textColor=MUTED,
        ),
        "label": ParagraphStyle(
            "ExportLabel", parent=base["BodyText"], fontName="Helvetica-Bold",
            fontSize=8.5, leading=11, textColor=colors.HexColor("#1D4ED8"),
        ),
        "question": ParagraphStyle(
            "ExportQuestion", parent=base["BodyText"], fontName="Helvetica-Bold",
            fontSize=11, leading=15, spaceBefore=4, spaceAfter=6,
            textColor=colors.HexColor("#1F2937"),
        ),
        "option": ParagraphStyle(
            "ExportOption", parent=base["BodyText"], fontName="Helvetica",
            fontSize=10, leading=13, leftIndent=10, textColor=colors.HexColor("#1F2937"),
        ),
        "option_correct": ParagraphStyle(
            "ExportOptionCorrect", parent=base["BodyText"], fontName="Helvetica-Bold",
            fontSize=10, leading=13, leftIndent=10, textColor=CORRECT,
        ),
        "explanation": ParagraphStyle(
            "ExportExplanation", parent=base["BodyText"], fontName="Helvetica-Oblique",
            fontSize=9.5, leading=12.5, backColor=colors.HexColor("#FEF3C7"),
            borderPadding=6, spaceBefore=6, textColor=colors.HexColor("#92400E"),
        ),
        "footer": ParagraphStyle(
            "ExportFooter", parent=base["BodyText"], fontName="Helvetica",
            fontSize=8.5, leading=11, spaceBefore=8, textColor=MUTED,
        ),
    }


def _header(folder: Folder, count: int, when: datetime, styles: dict[str, ParagraphStyle]) -> list:
    story = [
        Paragraph(APP_TITLE, styles["app"]),
        Paragraph(escape(folder.name), styles["folder"]),
    ]
    if folder.description:
        story.append(Paragraph(escape(folder.description), styles["meta"]))
    story.append(
        Paragraph(
            f"Total questions: {count} | Generated: {when.strftime('%d/%m/%Y %H:%M')}",
            styles["meta"],
        )
    )
    story.append(Spacer(1, 10 * mm))
    return story


def _judgment_table(question: Question) -> Table:
    cells = [
        f"CERTO {'✓' if question.correct_boolean else ''}".strip(),
        f"ERRADO {'✓' if not question.correct_boolean else ''}".strip(),
    ]
    table = Table([cells], colWidths=[60 * mm, 60 * mm])
    marked_col = 0 if question.correct_boolean else 1
    marked_color = CORRECT if question.correct_boolean else WRONG
    table.setStyle(
        TableStyle(
            [
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("FONTNAME", (0, 0), (-1, -1), "Helvetica-Bold"),
                ("TEXTCOLOR", (0, 0), (-1, -1), MUTED),
                ("BOX", (0, 0), (0, 0), 0.5, colors.HexColor("#E5E7EB")),
                ("BOX", (1, 0), (1, 0), 0.5, colors.HexColor("#E5E7EB")),
                ("TEXTCOLOR", (marked_col, 0), (marked_col, 0), marked_color),
                ("BOX", (marked_col, 0), (marked_col, 0), 1.5, marked_color),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    return table


def _question_block(
    question: Question, number: int, total: int, styles: dict[str, ParagraphStyle]
) -> KeepTogether:
    block = [
        Paragraph(f"{question.type.label.upper()} · Question {number} of {total}", styles["label"]),
        Paragraph(escape(question.title), styles["question"]),
    ]

    if question.is_multiple_choice:
        for letter, option in question.lettered_options():
            if letter == question.correct_answer:
                block.append(Paragraph(f"{letter}) {escape(option)} ✓ CORRECT", styles["option_correct"]))
            else:
                block.append(Paragraph(f"{letter}) {escape(option)}", styles["option"]))
        answer = question.correct_display
    else:
        block.append(_judgment_table(question))
        answer = "CERTO" if question.correct_boolean else "ERRADO"

    if question.explanation:
        block.append(Paragraph(f"Explanation: {escape(question.explanation)}", styles["explanation"]))

    block.append(
        Paragraph(
            f"Created: {question.created_at.strftime('%d/%m/%Y')} | Answer: {answer}",
            styles["footer"],
        )
    )
    block.append(Spacer(1, 8 * mm))
    return KeepTogether(block)


def export_to_document(
    questions: Sequence[Question],
    folder: Folder,
    output_dir: Path,
    generated_at: datetime | None = None,
) -> Path:
    """
    Write the folder's questions to a PDF file.

    Args:
        questions: Questions in display order
        folder: Folder the questions belong to
        output_dir: Target directory (created if missing)
        generated_at: Timestamp for the header and file name (defaults to now)

    Returns:
        Path of the written file

    Raises:
        ExportError: If there is nothing to export or the file cannot be written
    """
    if not questions:
        raise ExportError(f"Folder '{folder.name}' has no questions to export")

    when = generated_at or datetime.now()
    target = Path(output_dir) / export_file_name(folder, when)
    styles = _styles()

    story = _header(folder, len(questions), when, styles)
    for number, question in enumerate(questions, start=1):
        story.append(_question_block(question, number, len(questions), styles))

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        doc = SimpleDocTemplate(
            str(target),
            pagesize=A4,
            leftMargin=16 * mm,
            rightMargin=16 * mm,
            topMargin=14 * mm,
            bottomMargin=14 * mm,
            title=f"{APP_TITLE} - {folder.name}",
        )
        doc.build(story)
    except OSError as e:
        logger.error(f"Error writing PDF {target}: {e}")
        raise ExportError(f"Could not write {target}: {e}") from e

    logger.info(f"Exported {len(questions)} questions to {target}")
    return target
