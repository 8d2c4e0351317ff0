"""
Study session completion alerts.

A finished session produces three signals: an audible bell, a desktop
notification (only when permission was granted) and a blocking message the
user has to acknowledge. Notification failures never prevent the other two.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from collections.abc import Callable
from enum import Enum

from loguru import logger


class NotificationPermission(str, Enum):
    """Whether desktop notifications may be shown."""

    DEFAULT = "default"  # not asked yet
    GRANTED = "granted"
    DENIED = "denied"


class DesktopNotifier:
    """Native notifications through ``notify-send`` (Linux) or ``osascript`` (macOS)."""

    def _command(self, title: str, message: str) -> list[str] | None:
        if sys.platform == "darwin" and shutil.which("osascript"):
            safe_title = title.replace('"', '\\"')
            safe_message = message.replace('"', '\\"')
            script = f'display notification "{safe_message}" with title "{safe_title}"'
            return ["osascript", "-e", script]
        if sys.platform.startswith("linux") and shutil.which("notify-send"):
            return ["notify-send", title, message]
        return None

    def available(self) -> bool:
        return self._command("", "") is not None

    def notify(self, title: str, message: str) -> None:
        """
        Show a notification.

        Raises:
            OSError: If no notifier is installed or it could not be started
            subprocess.SubprocessError: If the notifier failed or hung
        """
        command = self._command(title, message)
        if command is None:
            raise OSError("No desktop notifier available on this platform")
        subprocess.run(command, check=True, timeout=5, capture_output=True)


class CompletionAlert:
    """Side effects fired once when a study session reaches zero."""

    def __init__(
        self,
        sound: Callable[[], None],
        show_message: Callable[[str], None],
        notifier: DesktopNotifier | None = None,
        notifications_enabled: bool = True,
    ):
        """
        Args:
            sound: Plays the audible alert (the terminal bell in the CLI)
            show_message: Shows a message and returns once it is acknowledged
            notifier: Desktop notification sender; None disables notifications
            notifications_enabled: User setting; False denies permission up front
        """
        self.sound = sound
        self.show_message = show_message
        self.notifier = notifier
        self.permission = (
            NotificationPermission.DEFAULT
            if notifications_enabled and notifier is not None
            else NotificationPermission.DENIED
        )

    def request_permission(self) -> NotificationPermission:
        """Decide the notification permission once; later calls return the decision."""
        if self.permission is NotificationPermission.DEFAULT:
            if self.notifier is not None and self.notifier.available():
                self.permission = NotificationPermission.GRANTED
            else:
                self.permission = NotificationPermission.DENIED
            logger.debug(f"Notification permission: {self.permission.value}")
        return self.permission

    def fire(self, title: str, message: str) -> None:
        self.sound()
        if self.permission is NotificationPermission.GRANTED and self.notifier is not None:
            try:
                self.notifier.notify(title, message)
            except (OSError, subprocess.SubprocessError) as e:
                logger.debug(f"Desktop notification failed: {e}")
        self.show_message(message)
