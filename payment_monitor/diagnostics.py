"""In-memory diagnostic log: bounded ring buffer of recent activity.

Every component writes here; GET /logs and GET /health read from it.
Each entry is also emitted through the standard logging system.

Thread-safety: appends may come from the event loop and from worker
threads running blocking collaborators, so the buffer is lock-guarded.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class LogEntry:
    """A single timestamped diagnostic message."""

    timestamp: datetime
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp.isoformat(), "message": self.message}


class DiagnosticLog:
    """Fixed-capacity, oldest-first-eviction log of recent messages."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, message: str, level: int = logging.INFO) -> LogEntry:
        """Record a message stamped with the current time."""
        with self._lock:
            entry = LogEntry(timestamp=datetime.now(timezone.utc), message=message)
            self._entries.append(entry)
        logger.log(level, "%s", message)
        return entry

    def warning(self, message: str) -> LogEntry:
        return self.append(message, level=logging.WARNING)

    def recent(self, n: int) -> list[LogEntry]:
        """Return the last ``n`` entries in chronological order."""
        if n <= 0:
            return []
        with self._lock:
            entries = list(self._entries)
        return entries[-n:]

    def last(self) -> LogEntry | None:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Process-wide log shared by every component
diagnostic_log = DiagnosticLog()
