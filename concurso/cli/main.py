"""
Concurso CLI - Study question manager for the terminal

Organize quiz questions into folders, practice them, time study sessions and
export a folder to PDF.

Usage:
    concurso signin maria              # Local profile (local/sql backends)
    concurso folders create Direito    # New folder
    concurso questions add Direito "..." -o "..." -o "..." --answer B
    concurso practice Direito          # Answer the folder's questions
    concurso timer Direito -m 25       # Countdown with pause menu
    concurso export Direito            # PDF in ./exports
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from loguru import logger
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from concurso import __version__
from concurso.cli.views import (
    answer_panel,
    folders_table,
    key_panel,
    question_panel,
    questions_table,
    score_panel,
    short_id,
    timer_panel,
    user_panel,
)
from concurso.cli.workspace import Workspace, open_workspace
from concurso.core.errors import ConcursoError, ValidationError
from concurso.core.models import (
    MAX_OPTIONS,
    FolderFields,
    QuestionFields,
    QuestionType,
    TimerMode,
)
from concurso.core.modes import BackendMode
from concurso.export.pdf_export import export_to_document
from concurso.store.controller import OperationResult
from concurso.store.reducer import SetStudySession
from concurso.study.alerts import CompletionAlert, DesktopNotifier
from concurso.study.practice import PracticeMode, PracticeSession, filter_questions, parse_boolean
from concurso.study.timer import SessionTimer
from config import get_settings

T = TypeVar("T")

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="concurso",
    help="📚 Concurso CLI - Study question manager",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)
folders_app = typer.Typer(help="Manage folders (study subjects)", no_args_is_help=True)
questions_app = typer.Typer(help="Manage the questions of a folder", no_args_is_help=True)
app.add_typer(folders_app, name="folders")
app.add_typer(questions_app, name="questions")

console = Console()


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command coroutine; known errors become a red message and exit code 1."""
    try:
        return asyncio.run(coro)
    except ConcursoError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None


def _report(result: OperationResult, success_message: str) -> None:
    if not result.success:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{success_message}[/green]")


def _question_type(value: str | None) -> QuestionType | None:
    if value is None or value == "all":
        return None
    try:
        return QuestionType(value)
    except ValueError:
        raise ValidationError("Type must be 'multiple', 'boolean' or 'all'") from None


# =============================================================================
# Account
# =============================================================================


@app.command()
def signin(
    name: Annotated[str | None, typer.Argument(help="Profile name (local and sql backends)")] = None,
    email: Annotated[str | None, typer.Option("--email", "-e", help="Account e-mail (rest backend)")] = None,
    password: Annotated[str | None, typer.Option("--password", "-p", help="Account password")] = None,
) -> None:
    """Sign in and load your folders."""

    async def _signin() -> None:
        async with open_workspace(restore=False) as ws:
            if ws.mode.uses_accounts:
                user = await ws.identity.sign_in(
                    email or Prompt.ask("E-mail"),
                    password or Prompt.ask("Password", password=True),
                )
            else:
                user = await ws.identity.sign_in(name or Prompt.ask("Profile name"))
            folders = len(ws.store.state.folders)
            console.print(f"[green]Signed in as {user.name}[/green] [dim]({folders} folders)[/dim]")

    _run(_signin())


@app.command()
def signup(
    email: Annotated[str, typer.Option("--email", "-e", prompt=True, help="Account e-mail")],
    password: Annotated[
        str,
        typer.Option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True),
    ],
    name: Annotated[str, typer.Option("--name", "-n", help="Display name")] = "",
) -> None:
    """Create a remote account (rest backend)."""

    async def _signup() -> None:
        async with open_workspace(restore=False) as ws:
            if not ws.mode.uses_accounts:
                console.print("[yellow]Local profiles need no sign-up: run 'concurso signin NAME'[/yellow]")
                return
            user = await ws.identity.sign_up(email, password, name)
            console.print(f"[green]Account created. Signed in as {user.name}[/green]")

    _run(_signup())


@app.command()
def signout() -> None:
    """Sign out and clear the saved session."""

    async def _signout() -> None:
        async with open_workspace() as ws:
            if ws.user is None:
                console.print("[dim]Not signed in[/dim]")
                return
            await ws.identity.sign_out()
            console.print("[green]Signed out[/green]")

    _run(_signout())


@app.command()
def whoami() -> None:
    """Show the signed-in user."""

    async def _whoami() -> None:
        async with open_workspace() as ws:
            console.print(user_panel(ws.require_user(), ws.mode.value))

    _run(_whoami())


# =============================================================================
# Folders
# =============================================================================


@folders_app.command("list")
def folders_list(
    search: Annotated[str, typer.Option("--search", "-s", help="Filter by name")] = "",
) -> None:
    """List your folders with their question counts."""

    async def _list() -> None:
        async with open_workspace() as ws:
            ws.require_user()
            folders = ws.store.search_folders(search)
            if not folders:
                hint = "No folders match" if search else "No folders yet. Create one with 'concurso folders create NAME'"
                console.print(f"[dim]{hint}[/dim]")
                return
            console.print(folders_table(folders, ws.store.question_counts()))

    _run(_list())


@folders_app.command("create")
def folders_create(
    name: Annotated[str, typer.Argument(help="Folder name")],
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
) -> None:
    """Create a folder."""

    async def _create() -> None:
        async with open_workspace() as ws:
            result = await ws.store.create_folder(FolderFields(name=name, description=description))
            record_id = short_id(result.record.id) if result.record else ""
            _report(result, f"Folder created: {name.strip()} ({record_id})")

    _run(_create())


@folders_app.command("edit")
def folders_edit(
    folder: Annotated[str, typer.Argument(help="Folder id or name")],
    name: Annotated[str | None, typer.Option("--name", "-n")] = None,
    description: Annotated[str | None, typer.Option("--description", "-d")] = None,
) -> None:
    """Rename a folder or change its description."""

    async def _edit() -> None:
        async with open_workspace() as ws:
            current = ws.find_folder(folder)
            fields = FolderFields(
                name=name if name is not None else current.name,
                description=description if description is not None else current.description,
            )
            result = await ws.store.update_folder(current.id, fields)
            _report(result, "Folder updated")

    _run(_edit())


@folders_app.command("delete")
def folders_delete(
    folder: Annotated[str, typer.Argument(help="Folder id or name")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a folder and all of its questions."""

    async def _delete() -> None:
        async with open_workspace() as ws:
            current = ws.find_folder(folder)
            count = len(ws.store.questions_in(current.id))
            message = f"Delete '{current.name}' and its {count} questions?"
            if not yes and not Confirm.ask(message, default=False):
                raise typer.Exit(0)
            result = await ws.store.delete_folder(current.id)
            _report(result, f"Folder deleted: {current.name}")

    _run(_delete())


# =============================================================================
# Questions
# =============================================================================


def _question_fields(
    folder_id: str,
    title: str,
    type_: QuestionType,
    options: list[str],
    answer: str | None,
    explanation: str | None,
) -> QuestionFields:
    if type_ is QuestionType.BOOLEAN:
        return QuestionFields(
            folder_id=folder_id,
            title=title,
            type=type_,
            correct_boolean=parse_boolean(answer) if answer is not None else None,
            explanation=explanation,
        )
    return QuestionFields(
        folder_id=folder_id,
        title=title,
        type=type_,
        options=tuple(options),
        correct_answer=answer,
        explanation=explanation,
    )


@questions_app.command("list")
def questions_list(
    folder: Annotated[str, typer.Argument(help="Folder id or name")],
    type_: Annotated[str, typer.Option("--type", "-t", help="multiple, boolean or all")] = "all",
    search: Annotated[str, typer.Option("--search", "-s", help="Filter by question text")] = "",
) -> None:
    """List the questions of a folder."""

    async def _list() -> None:
        async with open_workspace() as ws:
            current = ws.find_folder(folder)
            all_questions = ws.store.questions_in(current.id)
            questions = filter_questions(all_questions, _question_type(type_), search)
            if not questions:
                hint = "No questions match the filters" if all_questions else "No questions in this folder yet"
                console.print(f"[dim]{hint}[/dim]")
                return
            console.print(questions_table(current, questions, ws.store.type_counts(current.id)))

    _run(_list())


@questions_app.command("add")
def questions_add(
    folder: Annotated[str, typer.Argument(help="Folder id or name")],
    title: Annotated[str, typer.Argument(help="Question text")],
    type_: Annotated[str, typer.Option("--type", "-t", help="multiple or boolean")] = "multiple",
    option: Annotated[
        list[str] | None, typer.Option("--option", "-o", help=f"Answer option (2-{MAX_OPTIONS}, repeat)")
    ] = None,
    answer: Annotated[
        str | None, typer.Option("--answer", "-a", help="Correct letter, or true/false (certo/errado)")
    ] = None,
    explanation: Annotated[str | None, typer.Option("--explanation", "-x")] = None,
) -> None:
    """Add a question to a folder."""

    async def _add() -> None:
        async with open_workspace() as ws:
            current = ws.find_folder(folder)
            question_type = _question_type(type_) or QuestionType.MULTIPLE_CHOICE
            if answer is None and question_type is QuestionType.MULTIPLE_CHOICE:
                raise ValidationError("Give the correct letter with --answer")
            fields = _question_fields(current.id, title, question_type, option or [], answer, explanation)
            result = await ws.store.create_question(fields)
            _report(result, f"Question added to {current.name}")

    _run(_add())


@questions_app.command("edit")
def questions_edit(
    question: Annotated[str, typer.Argument(help="Question id (or unique prefix)")],
    title: Annotated[str | None, typer.Option("--title")] = None,
    type_: Annotated[str | None, typer.Option("--type", "-t", help="multiple or boolean")] = None,
    option: Annotated[list[str] | None, typer.Option("--option", "-o", help="Replace all options")] = None,
    answer: Annotated[str | None, typer.Option("--answer", "-a")] = None,
    explanation: Annotated[str | None, typer.Option("--explanation", "-x")] = None,
    folder: Annotated[str | None, typer.Option("--folder", "-f", help="Move to another folder")] = None,
) -> None:
    """Edit a question; omitted options keep their current values."""

    async def _edit() -> None:
        async with open_workspace() as ws:
            current = ws.find_question(question)
            target_folder = ws.find_folder(folder).id if folder else current.folder_id
            question_type = _question_type(type_) or current.type
            if answer is not None:
                new_answer = answer
            elif question_type is current.type:
                new_answer = current.correct_answer if current.is_multiple_choice else str(current.correct_boolean)
            else:
                new_answer = "A" if question_type is QuestionType.MULTIPLE_CHOICE else None
            fields = _question_fields(
                target_folder,
                title if title is not None else current.title,
                question_type,
                option if option else list(current.options),
                new_answer,
                explanation if explanation is not None else current.explanation,
            )
            result = await ws.store.update_question(current.id, fields)
            _report(result, "Question updated")

    _run(_edit())


@questions_app.command("delete")
def questions_delete(
    question: Annotated[str, typer.Argument(help="Question id (or unique prefix)")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a question."""

    async def _delete() -> None:
        async with open_workspace() as ws:
            current = ws.find_question(question)
            if not yes and not Confirm.ask(f"Delete '{current.title[:60]}'?", default=False):
                raise typer.Exit(0)
            result = await ws.store.delete_question(current.id)
            _report(result, "Question deleted")

    _run(_delete())


# =============================================================================
# Practice
# =============================================================================


@app.command()
def practice(
    folder: Annotated[str, typer.Argument(help="Folder id or name")],
    review: Annotated[bool, typer.Option("--review", "-r", help="Show answers instead of asking")] = False,
    type_: Annotated[str, typer.Option("--type", "-t", help="multiple, boolean or all")] = "all",
    search: Annotated[str, typer.Option("--search", "-s", help="Only questions containing this text")] = "",
) -> None:
    """Answer (or review) the questions of a folder."""

    async def _load():
        async with open_workspace() as ws:
            current = ws.find_folder(folder)
            questions = filter_questions(ws.store.questions_in(current.id), _question_type(type_), search)
            return current, questions

    current, questions = _run(_load())
    if not questions:
        console.print("[dim]No questions to practice[/dim]")
        return

    mode = PracticeMode.REVIEW if review else PracticeMode.PRACTICE
    session = PracticeSession(questions, mode)
    console.print(Panel(f"[bold]{current.name}[/bold] · {len(session)} questions · {mode.value}", border_style="blue"))

    for number, question in enumerate(session, start=1):
        if mode is PracticeMode.REVIEW:
            console.print(question_panel(question, number, len(session), reveal=True))
            console.print(key_panel(session.reveal(question.id)))
            continue

        console.print(question_panel(question, number, len(session)))
        while True:
            if question.is_multiple_choice:
                choices = [letter for letter, _ in question.lettered_options()]
                raw = Prompt.ask("Your answer", choices=choices + [c.lower() for c in choices], show_choices=False)
            else:
                raw = Prompt.ask("Certo or errado", choices=["c", "e", "certo", "errado", "true", "false"])
            try:
                result = session.answer(question.id, raw)
            except ValidationError as e:
                console.print(f"[red]{e}[/red]")
                continue
            console.print(answer_panel(result))
            if result.is_correct or not Confirm.ask("Try again?", default=False):
                break
            session.retry(question.id)

    if mode is PracticeMode.PRACTICE:
        console.print(score_panel(*session.score()))


# =============================================================================
# Timer
# =============================================================================


class _CompletionMessage:
    """Blocking completion message; stops the live display first."""

    def __init__(self) -> None:
        self.live: Live | None = None

    def __call__(self, message: str) -> None:
        if self.live is not None:
            self.live.stop()
        console.print(Panel(f"⏰ {message}", border_style="red"))
        console.input("[dim]Press Enter to continue[/dim]")


def _render_timer(ws: Workspace, folder_name: str, timer: SessionTimer):
    snapshot = ws.store.state.timer or timer.snapshot()
    return timer_panel(folder_name, snapshot, timer.format_time(), timer.urgency, timer.progress_percent)


async def _run_timer_segment(timer: SessionTimer, folder_name: str, message: _CompletionMessage) -> None:
    """Run the countdown until it completes; Ctrl+C cancels this coroutine."""
    async with open_workspace() as ws:
        timer.on_change = lambda snapshot: ws.store.dispatch(SetStudySession(snapshot))
        try:
            with Live(_render_timer(ws, folder_name, timer), console=console, refresh_per_second=4) as live:
                message.live = live
                timer.start()
                while timer.mode is TimerMode.RUNNING:
                    await asyncio.sleep(0.2)
                    live.update(_render_timer(ws, folder_name, timer))
        finally:
            message.live = None
            if timer.mode is TimerMode.RUNNING:
                timer.pause()
            timer.dispose()
            timer.on_change = None


@app.command()
def timer(
    folder: Annotated[str, typer.Argument(help="Folder id or name")],
    minutes: Annotated[int | None, typer.Option("--minutes", "-m", help="Session length (1-180)")] = None,
) -> None:
    """Time a study session. Ctrl+C pauses (continue / reset / stop)."""
    settings = get_settings()

    async def _load():
        async with open_workspace(settings) as ws:
            return ws.find_folder(folder)

    current = _run(_load())

    if minutes is None:
        presets = [str(p) for p in settings.timer_presets]
        minutes = int(Prompt.ask("Minutes", choices=presets, default=str(settings.default_timer_minutes)))

    message = _CompletionMessage()
    alert = CompletionAlert(
        sound=console.bell,
        show_message=message,
        notifier=DesktopNotifier(),
        notifications_enabled=settings.notifications_enabled,
    )
    session_timer = SessionTimer(
        current.id,
        alert,
        default_minutes=settings.default_timer_minutes,
        max_minutes=settings.max_timer_minutes,
    )
    try:
        session_timer.set_duration(minutes)
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None

    while True:
        try:
            _run(_run_timer_segment(session_timer, current.name, message))
        except KeyboardInterrupt:
            session_timer.pause()
            console.print(f"[yellow]Paused at {session_timer.format_time()}[/yellow]")
            choice = Prompt.ask("Continue, reset or stop?", choices=["continue", "reset", "stop"], default="continue")
            if choice == "reset":
                session_timer.reset()
            elif choice == "stop":
                session_timer.stop()
                console.print("[dim]Timer stopped[/dim]")
                return
            continue
        break

    logger.info(f"Timer finished for {current.name} ({session_timer.completions} completion)")


# =============================================================================
# Export
# =============================================================================


@app.command("export")
def export_pdf(
    folder: Annotated[str, typer.Argument(help="Folder id or name")],
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output directory")] = None,
) -> None:
    """Export a folder's questions to a PDF file."""

    async def _export() -> Path:
        async with open_workspace() as ws:
            current = ws.find_folder(folder)
            questions = ws.store.questions_in(current.id)
            return export_to_document(questions, current, output or ws.settings.export_dir)

    with console.status("Generating PDF..."):
        path = _run(_export())
    console.print(f"[green]PDF saved to {path}[/green]")


# =============================================================================
# Entry Point
# =============================================================================


@app.callback(invoke_without_command=True)
def callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
    backend: Annotated[
        str | None, typer.Option("--backend", help="Override the backend (local, sql, rest)")
    ] = None,
    version: Annotated[bool, typer.Option("--version", help="Show version and exit")] = False,
) -> None:
    """
    📚 Concurso CLI - Study question manager

    \b
    Backends:
      local - JSON file in ~/.concurso (default)
      sql   - SQLAlchemy database (SQLite by default)
      rest  - Remote service with e-mail accounts
    """
    if version:
        console.print(f"concurso {__version__}")
        raise typer.Exit(0)

    settings = get_settings()
    if backend:
        try:
            settings.backend = BackendMode(backend).value
        except ValueError:
            console.print(f"[red]Unknown backend: {backend}[/red]")
            raise typer.Exit(2) from None
    if verbose:
        _configure_logging("DEBUG", settings.log_file)


def _configure_logging(level: str, log_file: str | None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, format="<level>{message}</level>")
    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            rotation="1 MB",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        )


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    _configure_logging(settings.log_level, settings.log_file)
    app()


if __name__ == "__main__":
    main()
