"""
User-facing notifications raised by the organization context.
"""

from __future__ import annotations

from typing import Protocol

import structlog

log = structlog.get_logger()


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    """Writes notifications to the structured log."""

    def success(self, message: str) -> None:
        log.info("notify.success", message=message)

    def error(self, message: str) -> None:
        log.error("notify.error", message=message)


class RecordingNotifier:
    """Keeps notifications in memory, e.g. for a CLI to print at the end."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    @property
    def errors(self) -> list[str]:
        return [m for kind, m in self.messages if kind == "error"]

    @property
    def successes(self) -> list[str]:
        return [m for kind, m in self.messages if kind == "success"]
