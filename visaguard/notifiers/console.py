"""
Notifiers that reach the user on the local machine.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from typing import Optional

import click

from visaguard.notifiers.base import Notifier

logger = logging.getLogger(__name__)

APP_NAME = "VisaGuard"


class ConsoleNotifier(Notifier):
    """Print notifications to the terminal."""

    TITLE_COLORS = {
        "Visa Expiration Warning": "yellow",
        "Visa Expiring Soon": "red",
        "Visa Expired": "red",
    }

    def __init__(self, err: bool = False) -> None:
        self.err = err

    def show(self, title: str, body: str) -> None:
        body = body.strip()
        if not body:
            return
        color = self.TITLE_COLORS.get(title, "cyan")
        click.echo(
            click.style(f"[{title or APP_NAME}]", fg=color, bold=True) + f" {body}",
            err=self.err,
        )


class DesktopNotifier(Notifier):
    """
    Show a desktop notification using the platform's command-line tool.

    Linux uses ``notify-send``; macOS uses ``osascript``. On platforms
    without either, notifications are logged and dropped.
    """

    def __init__(self, urgency: str = "normal", timeout: float = 10.0) -> None:
        self.urgency = urgency
        self.timeout = timeout
        self._command = self._find_command()

    @staticmethod
    def _find_command() -> Optional[str]:
        if sys.platform == "darwin":
            return shutil.which("osascript")
        return shutil.which("notify-send")

    def is_supported(self) -> bool:
        return self._command is not None

    def show(self, title: str, body: str) -> None:
        body = body.strip()
        if not body:
            return
        if not self.is_supported():
            logger.warning("Desktop notifications are not supported on this platform.")
            return

        title = title or APP_NAME
        if sys.platform == "darwin":
            script = f"display notification {_applescript_quote(body)} with title {_applescript_quote(title)}"
            args = [self._command, "-e", script]
        else:
            args = [self._command, "--app-name", APP_NAME, "--urgency", self.urgency, "--", title, body]

        subprocess.run(args, check=True, timeout=self.timeout, capture_output=True)
        logger.debug("Notification shown: %s", title)


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
