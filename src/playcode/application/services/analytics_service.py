from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from playcode.core.errors import RateLimitError
from playcode.domain.analytics import (
    achievements_for,
    gaming_metrics,
    generate_dashboard,
    normalize_timeframe,
    timeframe_cutoff,
)
from playcode.infrastructure.security.input_validation import AnalyticsEventIn, parse_model
from playcode.infrastructure.security.rate_limit import RateLimiter
from playcode.infrastructure.stores.analytics_store import SqlAlchemyAnalyticsStore

logger = logging.getLogger(__name__)


def new_event_id() -> str:
    return f"event_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class AnalyticsService:
    """Stores gaming events and builds the analytics dashboard."""

    def __init__(self, store: SqlAlchemyAnalyticsStore, rate_limiter: RateLimiter):
        self.store = store
        self.rate_limiter = rate_limiter

    def track(
        self,
        body: Any,
        *,
        ip: str = "unknown",
        user_agent: str = "",
        referer: str = "",
    ) -> Dict[str, Any]:
        if self.rate_limiter.is_rate_limited(ip):
            raise RateLimitError("Rate limit exceeded", context={"achievement": "speed_demon"})

        data: AnalyticsEventIn = parse_model(AnalyticsEventIn, body)
        event = {
            **data.model_dump(),
            "id": new_event_id(),
            "timestamp": datetime.now(timezone.utc),
            "ip": ip,
            "userAgent": user_agent,
            "referer": referer,
        }
        stored = self.store.add_event(event)
        logger.debug(f"Analytics event {stored['event']} ({stored['category']}) from {ip}")
        return {
            "success": True,
            "message": "Event tracked successfully",
            "eventId": stored["id"],
            "gamingMetrics": gaming_metrics(data.event),
            "achievements": achievements_for(data.event, data.category, data.action),
        }

    def dashboard(
        self,
        timeframe: Optional[str] = None,
        category: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        timeframe = normalize_timeframe(timeframe)
        events = self.store.list_events(since=timeframe_cutoff(timeframe, now), category=category or None)
        return {
            "success": True,
            "data": generate_dashboard(events),
            "metadata": {
                "totalEvents": len(events),
                "timeframe": timeframe,
                "category": category or "all",
                "generatedAt": now.isoformat(),
            },
        }
