"""Severity-tagged activity log shown to the operator during a run."""
from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

logger = logging.getLogger(__name__)

MAX_ENTRIES = 200


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class ActivityEntry:
    message: str
    severity: Severity = Severity.INFO
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:9])


class ActivityLog:
    """Keeps the most recent entries and forwards each one to ``logging``."""

    def __init__(self, *, max_entries: int = MAX_ENTRIES) -> None:
        self._entries: deque[ActivityEntry] = deque(maxlen=max_entries)

    def add(self, message: str, severity: Severity = Severity.INFO) -> ActivityEntry:
        entry = ActivityEntry(message=message, severity=Severity(severity))
        self._entries.append(entry)
        logger.log(_LOG_LEVELS[entry.severity], "%s", message)
        return entry

    def info(self, message: str) -> ActivityEntry:
        return self.add(message, Severity.INFO)

    def success(self, message: str) -> ActivityEntry:
        return self.add(message, Severity.SUCCESS)

    def warning(self, message: str) -> ActivityEntry:
        return self.add(message, Severity.WARNING)

    def error(self, message: str) -> ActivityEntry:
        return self.add(message, Severity.ERROR)

    def entries(self, severity: Severity | None = None) -> list[ActivityEntry]:
        """Entries newest first, optionally filtered by severity."""

        ordered = list(reversed(self._entries))
        if severity is None:
            return ordered
        return [entry for entry in ordered if entry.severity is Severity(severity)]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["ActivityEntry", "ActivityLog", "MAX_ENTRIES", "Severity"]
