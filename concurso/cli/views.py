"""
Rich renderables for the CLI.

Pure functions from domain values to tables and panels; commands print them.
"""

from __future__ import annotations

from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from concurso.core.models import Folder, Question, QuestionType, StudySession, TimerMode, User
from concurso.study.practice import AnswerResult

SHORT_ID = 8
URGENCY_STYLES = {"normal": "bold white", "warning": "bold dark_orange", "critical": "bold red"}
TYPE_STYLES = {QuestionType.MULTIPLE_CHOICE: "cyan", QuestionType.BOOLEAN: "magenta"}


def short_id(record_id: str) -> str:
    return record_id[:SHORT_ID]


def style_question_type(question_type: QuestionType) -> str:
    return f"[{TYPE_STYLES[question_type]}]{question_type.label}[/]"


# =============================================================================
# Folders and questions
# =============================================================================


def folders_table(folders: list[Folder], counts: dict[str, int]) -> Table:
    table = Table(title="Folders", show_lines=False)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Description")
    table.add_column("Questions", justify="right")
    table.add_column("Created")

    for folder in folders:
        table.add_row(
            short_id(folder.id),
            Text(folder.name, style="bold"),
            folder.description or "",
            str(counts.get(folder.id, 0)),
            folder.created_at.strftime("%Y-%m-%d"),
        )
    return table


def questions_table(folder: Folder, questions: list[Question], type_counts: dict[QuestionType, int]) -> Table:
    summary = ", ".join(f"{qt.label}: {count}" for qt, count in type_counts.items())
    table = Table(title=f"{folder.name} ({summary})")
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Question")
    table.add_column("Answer", justify="center")

    for question in questions:
        table.add_row(
            short_id(question.id),
            style_question_type(question.type),
            Text(question.title),
            question.correct_display,
        )
    return table


def question_panel(question: Question, number: int, total: int, reveal: bool = False) -> Panel:
    """A question card; ``reveal`` marks the correct option."""
    body = Text(question.title + "\n\n", style="bold")

    if question.is_multiple_choice:
        for letter, option in question.lettered_options():
            if reveal and letter == question.correct_answer:
                body.append(f"  {letter}) {option}  ✓\n", style="bold green")
            else:
                body.append(f"  {letter}) {option}\n")
    else:
        for label, value in (("CERTO", True), ("ERRADO", False)):
            if reveal and question.correct_boolean is value:
                body.append(f"  [{label}]  ✓\n", style="bold green")
            else:
                body.append(f"  [{label}]\n")

    return Panel(
        body,
        title=f"{style_question_type(question.type)} · Question {number} of {total}",
        border_style="blue",
    )


def answer_panel(result: AnswerResult) -> Panel:
    if result.is_correct:
        text = Text("Correct!", style="bold green")
    else:
        text = Text(f"Incorrect. Correct answer: {result.correct_display}", style="bold red")
    if result.explanation:
        text.append(f"\n\n💡 {result.explanation}", style="yellow")
    return Panel(text, border_style="green" if result.is_correct else "red")


def key_panel(result: AnswerResult) -> Panel:
    text = Text(f"Answer: {result.correct_display}", style="bold green")
    if result.explanation:
        text.append(f"\n\n💡 {result.explanation}", style="yellow")
    return Panel(text, border_style="green")


def score_panel(correct: int, answered: int, percent: float) -> Panel:
    color = "green" if percent >= 70 else "yellow" if percent >= 50 else "red"
    return Panel(
        f"[bold]{correct}[/] of [bold]{answered}[/] correct  ·  [{color}]{percent:.0f}%[/]",
        title="Result",
        border_style=color,
    )


def user_panel(user: User, backend: str) -> Panel:
    lines = [f"[bold]{user.name}[/]", f"[dim]id:[/] {user.id}", f"[dim]backend:[/] {backend}"]
    if user.created_at:
        lines.append(f"[dim]since:[/] {user.created_at.strftime('%Y-%m-%d')}")
    return Panel("\n".join(lines), title="Signed in", border_style="green")


# =============================================================================
# Timer
# =============================================================================


def timer_panel(folder_name: str, session: StudySession, clock: str, urgency: str, progress: float) -> Panel:
    status = {
        TimerMode.RUNNING: "[green]running[/]",
        TimerMode.PAUSED: "[yellow]paused[/]",
        TimerMode.IDLE: "[dim]idle[/]",
    }[session.mode]

    table = Table.grid(padding=(0, 1))
    table.add_row(Text(clock, style=URGENCY_STYLES.get(urgency, "bold white"), justify="center"))
    table.add_row(ProgressBar(total=100, completed=progress, width=40))
    table.add_row(Text.from_markup(f"{session.duration_minutes} min session · {status}"))
    table.add_row(Text("Ctrl+C to pause", style="dim"))

    return Panel(table, title=f"⏱  Study timer · {folder_name}", border_style="blue", expand=False)
