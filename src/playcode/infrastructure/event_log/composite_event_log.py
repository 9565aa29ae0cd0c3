from __future__ import annotations

import logging
from typing import Iterable, List, Union

from playcode.application.events import AuditEvent
from playcode.application.ports.event_log_port import EventLogPort

logger = logging.getLogger(__name__)


class CompositeEventLog(EventLogPort):
    """
    Tee events to multiple backends.

    Keeps JSON logging alongside the SQL table. A failing backend never blocks
    the others.
    """

    def __init__(self, backends: List[EventLogPort]):
        self._backends = [b for b in backends if b is not None]

    def append(self, event: Union[AuditEvent, dict]) -> None:
        for backend in self._backends:
            try:
                backend.append(event)
            except Exception as e:
                logger.warning(f"CompositeEventLog backend append failed: {e}")

    def stream(self, category: str) -> Iterable[dict]:
        # First backend that yields anything wins.
        for backend in self._backends:
            try:
                items = list(backend.stream(category))
            except Exception as e:
                logger.debug(f"CompositeEventLog backend stream failed: {e}")
                continue
            if items:
                return iter(items)
        return iter(())

    def close(self) -> None:
        for backend in self._backends:
            try:
                backend.close()
            except Exception as e:
                logger.debug(f"CompositeEventLog backend close failed: {e}")

    def list_events(self, *, category=None, limit: int = 100):
        for backend in self._backends:
            if hasattr(backend, "list_events"):
                try:
                    return backend.list_events(category=category, limit=limit)  # type: ignore[attr-defined]
                except Exception as e:
                    logger.debug(f"CompositeEventLog backend list_events failed: {e}")
        return []
