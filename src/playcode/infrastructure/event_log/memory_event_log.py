from __future__ import annotations

from typing import Iterable, Union, List

from playcode.application.events import AuditEvent
from playcode.application.ports.event_log_port import EventLogPort


class InMemoryEventLog(EventLogPort):
    """Simple in-memory event log (useful for tests)."""

    def __init__(self) -> None:
        self.events: List[dict] = []

    def append(self, event: Union[AuditEvent, dict]) -> None:
        if isinstance(event, AuditEvent):
            self.events.append(event.to_dict())
        else:
            self.events.append(dict(event))

    def stream(self, category: str) -> Iterable[dict]:
        return (e for e in self.events if e.get("category") == category)

    def of_type(self, type_: str) -> List[dict]:
        return [e for e in self.events if e.get("type") == type_]

    def close(self) -> None:
        return None
