from __future__ import annotations

from typing import Protocol, runtime_checkable, Iterable, Union

from playcode.application.events import AuditEvent


@runtime_checkable
class EventLogPort(Protocol):
    """
    Minimal audit log port.

    Implementations may log to stdout, keep events in memory, or persist to DB.
    """

    def append(self, event: Union[AuditEvent, dict]) -> None:
        """Append an event."""

    def stream(self, category: str) -> Iterable[dict]:
        """Stream events of one category, oldest first (may be empty)."""

    def close(self) -> None:
        """Close underlying resources (optional)."""
