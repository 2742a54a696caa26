"""Channel protocol: shared message and result types for the sinks.

Security contract:
- Per-channel credentials come from Settings (env vars, not hardcoded)
- Channel failures are reported as SendResult, never raised to the caller
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass
class NotificationMessage:
    """A notification ready for dispatch to a channel."""
    title: str
    body: str
    html: str = ""
    severity: str = "info"  # info, warning, error, critical


@dataclass
class SendResult:
    """Result of delivering to a sink."""
    success: bool
    channel_id: str
    error: str = ""
    response_id: str = ""  # Provider id (SMTP message-id, Airtable record id)


@runtime_checkable
class Channel(Protocol):
    """Protocol for alert channels."""

    @property
    def channel_id(self) -> str:
        """Unique identifier for this channel."""
        ...

    @property
    def channel_type(self) -> str:
        """Type of channel (email, slack, etc.)."""
        ...

    @property
    def is_configured(self) -> bool:
        """Whether this channel has valid credentials configured."""
        ...

    def format_message(self, message: NotificationMessage) -> Any:
        """Format a notification for this channel's transport."""
        ...

    def send(self, formatted: Any) -> SendResult:
        """Send a formatted message. Returns SendResult."""
        ...
