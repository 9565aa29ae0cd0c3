from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_event_id() -> str:
    return uuid.uuid4().hex


# Categories used across the service.
SECURITY = "security"
APPROVAL = "approval"
PAYMENT = "payment"
CRM = "crm"
ONBOARDING = "onboarding"


@dataclass
class AuditEvent:
    """
    Envelope for security and audit events.

    Backends persist it as-is; `category` groups events for listing.
    """

    category: str
    type: str
    source: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=new_event_id)
    ts: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "category": self.category,
            "type": self.type,
            "source": self.source,
            "payload": self.payload,
            "ts": self.ts.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEvent":
        ts = data.get("ts")
        if isinstance(ts, str):
            try:
                ts = datetime.fromisoformat(ts)
            except ValueError:
                ts = None
        return cls(
            category=str(data.get("category") or ""),
            type=str(data.get("type") or ""),
            source=str(data.get("source") or ""),
            payload=dict(data.get("payload") or {}),
            event_id=str(data.get("event_id") or new_event_id()),
            ts=ts if isinstance(ts, datetime) else utcnow(),
        )


def make_event(
    *,
    category: str,
    type: str,
    source: str = "",
    payload: Optional[Dict[str, Any]] = None,
) -> AuditEvent:
    return AuditEvent(category=category, type=type, source=source, payload=payload or {})
