from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import asc, desc, select

from playcode.application.events import AuditEvent, utcnow
from playcode.application.ports.event_log_port import EventLogPort
from playcode.infrastructure.stores.models import AuditEventModel, Base, as_utc
from playcode.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

logger = logging.getLogger(__name__)


def _parse_ts(ts: Any) -> datetime:
    if isinstance(ts, datetime):
        return ts
    if isinstance(ts, str):
        try:
            return datetime.fromisoformat(ts)
        except ValueError:
            pass
    return utcnow()


def _row_to_dict(row: AuditEventModel) -> Dict[str, Any]:
    return {
        "event_id": row.event_id,
        "category": row.category,
        "type": row.type,
        "source": row.source,
        "payload": row.get_payload(),
        "ts": as_utc(row.ts).isoformat(),
    }


class SqlAlchemyEventLog(EventLogPort):
    """
    Persist audit events via SQLAlchemy.

    - append(): insert one row
    - stream(category): yield events ordered by ts
    """

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def append(self, event: Union[AuditEvent, dict]) -> None:
        evt = event.to_dict() if isinstance(event, AuditEvent) else dict(event)
        if not evt.get("type"):
            raise ValueError("Event missing type")

        with self._provider.session() as session:
            row = AuditEventModel(
                event_id=str(evt.get("event_id") or ""),
                category=str(evt.get("category") or ""),
                type=str(evt.get("type") or ""),
                source=str(evt.get("source") or ""),
                ts=_parse_ts(evt.get("ts")),
            )
            row.set_payload(evt.get("payload") or {})
            session.add(row)
            session.commit()

    def stream(self, category: str) -> Iterable[dict]:
        with self._provider.session() as session:
            rows = session.execute(
                select(AuditEventModel)
                .where(AuditEventModel.category == category)
                .order_by(asc(AuditEventModel.ts))
            ).scalars()
            for row in rows:
                yield _row_to_dict(row)

    def list_events(self, *, category: Optional[str] = None, limit: int = 100) -> List[dict]:
        with self._provider.session() as session:
            stmt = select(AuditEventModel)
            if category:
                stmt = stmt.where(AuditEventModel.category == category)
            stmt = stmt.order_by(desc(AuditEventModel.ts)).limit(limit)
            return [_row_to_dict(r) for r in session.execute(stmt).scalars()]

    def close(self) -> None:
        self._provider.engine.dispose()
