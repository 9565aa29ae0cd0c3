from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import asc, select

from playcode.infrastructure.stores.models import AnalyticsEventModel, Base, as_utc
from playcode.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url


class SqlAlchemyAnalyticsStore:
    """Enriched analytics events."""

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def add_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        with self._provider.session() as session:
            row = AnalyticsEventModel(
                id=event["id"],
                event=event["event"],
                category=event["category"],
                action=event.get("action") or "",
                label=event.get("label"),
                value=event.get("value"),
                user_id=event.get("userId"),
                session_id=event.get("sessionId"),
                ip=event.get("ip") or "unknown",
                user_agent=(event.get("userAgent") or "")[:512],
                referer=(event.get("referer") or "")[:512],
                ts=event["timestamp"],
            )
            row.set_metadata(event.get("metadata") or {})
            session.add(row)
            session.commit()
            return self._to_dict(row)

    def list_events(
        self,
        *,
        since: Optional[datetime] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._provider.session() as session:
            stmt = select(AnalyticsEventModel)
            if since is not None:
                stmt = stmt.where(AnalyticsEventModel.ts >= since)
            if category:
                stmt = stmt.where(AnalyticsEventModel.category == category)
            stmt = stmt.order_by(asc(AnalyticsEventModel.ts))
            if limit:
                stmt = stmt.limit(limit)
            return [self._to_dict(r) for r in session.execute(stmt).scalars()]

    def close(self) -> None:
        self._provider.engine.dispose()

    @staticmethod
    def _to_dict(row: AnalyticsEventModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "event": row.event,
            "category": row.category,
            "action": row.action,
            "label": row.label,
            "value": row.value,
            "userId": row.user_id,
            "sessionId": row.session_id,
            "metadata": row.get_metadata(),
            "ip": row.ip,
            "userAgent": row.user_agent,
            "referer": row.referer,
            "timestamp": as_utc(row.ts).isoformat(),
        }
