"""Study tools: session timer, completion alerts, practice runs."""

from concurso.study.alerts import CompletionAlert, DesktopNotifier, NotificationPermission
from concurso.study.practice import (
    AnswerResult,
    PracticeMode,
    PracticeSession,
    filter_questions,
    parse_answer,
    parse_boolean,
)
from concurso.study.timer import AsyncioTickScheduler, SessionTimer, TickHandle, TickScheduler

__all__ = [
    "AnswerResult",
    "AsyncioTickScheduler",
    "CompletionAlert",
    "DesktopNotifier",
    "NotificationPermission",
    "PracticeMode",
    "PracticeSession",
    "SessionTimer",
    "TickHandle",
    "TickScheduler",
    "filter_questions",
    "parse_answer",
    "parse_boolean",
]
