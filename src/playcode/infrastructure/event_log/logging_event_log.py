from __future__ import annotations

import logging
from typing import Iterable, Union, Optional

from playcode.application.events import AuditEvent
from playcode.application.ports.event_log_port import EventLogPort


class LoggingEventLog(EventLogPort):
    """
    Emit audit events as JSON lines to the Python logger.

    Always available; used alone when the database backend cannot start.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self._logger = logger or logging.getLogger("playcode.eventlog")
        self._level = level

    def append(self, event: Union[AuditEvent, dict]) -> None:
        if isinstance(event, AuditEvent):
            payload = event.to_json()
        else:
            payload = AuditEvent.from_dict(event).to_json()
        self._logger.log(self._level, payload)

    def stream(self, category: str) -> Iterable[dict]:
        # Logging backend cannot stream retrospectively.
        return iter(())

    def close(self) -> None:
        return None
