"""
CRM value types shared by the manager and provider adapters.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

SUPPORTED_PROVIDERS = ("hubspot", "salesforce", "pipedrive", "rd_station")

WEBHOOK_EVENT_TYPES = ("lead.created", "lead.updated", "lead.converted", "deal.won", "deal.lost")
CRM_EVENT_TYPES = ("lead.created", "lead.updated", "sync.started", "sync.completed", "sync.error")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CRMResponse:
    success: bool
    data: Any = None
    error: Optional[str] = None
    code: Optional[str] = None
    timestamp: datetime = field(default_factory=_now)

    @classmethod
    def ok(cls, data: Any = None) -> "CRMResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, code: Optional[str] = None) -> "CRMResponse":
        return cls(success=False, error=error, code=code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "code": self.code,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class CRMEvent:
    type: str
    data: Any = None
    timestamp: datetime = field(default_factory=_now)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CRMNotification:
    type: str  # success / warning / error / info
    title: str
    message: str
    achievement: Optional[str] = None
    xp_gained: Optional[int] = None
    id: str = field(default_factory=lambda: str(int(time.time() * 1000)))
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "achievement": self.achievement,
            "xpGained": self.xp_gained,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class CRMWebhookEvent:
    id: str
    type: str
    provider: str
    data: Dict[str, Any]
    signature: str = ""
    timestamp: datetime = field(default_factory=_now)


@dataclass
class CRMFieldMapping:
    local_field: str
    crm_field: str
    required: bool = False
    transformer: Optional[Callable[[Any], Any]] = None


@dataclass
class CRMCustomField:
    name: str
    label: str
    type: str = "text"  # text / number / date / select / multiselect / boolean
    options: List[str] = field(default_factory=list)
    required: bool = False


@dataclass
class CRMSearchQuery:
    email: Optional[str] = None
    company: Optional[str] = None
    min_score: Optional[int] = None
    max_score: Optional[int] = None
    page: Optional[int] = None
    limit: int = 100


@dataclass
class CRMAdapterConfig:
    provider: str
    api_key: str
    portal_id: str = ""
    webhook_secret: str = ""
    mappings: List[CRMFieldMapping] = field(default_factory=list)
