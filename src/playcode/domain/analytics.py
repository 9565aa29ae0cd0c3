"""
Gaming analytics: per-event metrics, achievements and the dashboard aggregates.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
POWER_UP_SELECTED = "power_up_selected"
KONAMI_CODE_ENTERED = "konami_code_entered"
EASTER_EGG_FOUND = "easter_egg_found"
HERO_BOOT_COMPLETED = "hero_boot_completed"
MISSION_STARTED = "mission_started"
CONTACT_FORM_SUBMITTED = "contact_form_submitted"
PAGE_LOAD_TIME = "page_load_time"
INTERACTIVE_TIME = "interactive_time"

CATEGORIES = ("gaming", "ui", "achievement", "power-up", "navigation", "interaction", "security")

EVENT_XP: Dict[str, int] = {
    ACHIEVEMENT_UNLOCKED: 100,
    POWER_UP_SELECTED: 50,
    KONAMI_CODE_ENTERED: 500,
    CONTACT_FORM_SUBMITTED: 200,
}
DEFAULT_EVENT_XP = 10

TIMEFRAMES: Dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(days=1),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_TIMEFRAME = "24h"


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def gaming_metrics(event: str) -> Dict[str, Any]:
    xp = EVENT_XP.get(event, DEFAULT_EVENT_XP)
    return {
        "xpGained": xp,
        "achievementTriggered": event in (ACHIEVEMENT_UNLOCKED, KONAMI_CODE_ENTERED),
        "engagementScore": min(100, xp / 5),
        "gamingLevel": "novice",
    }


def achievements_for(event: str, category: str, action: str) -> List[str]:
    achievements: List[str] = []
    if event == KONAMI_CODE_ENTERED:
        achievements.append("secret_discoverer")
    if category == "power-up" and action == "selected":
        achievements.append("power_collector")
    if event == HERO_BOOT_COMPLETED:
        achievements.append("system_initiated")
    return achievements


def normalize_timeframe(timeframe: Optional[str]) -> str:
    return timeframe if timeframe in TIMEFRAMES else DEFAULT_TIMEFRAME


def timeframe_cutoff(timeframe: Optional[str], now: datetime) -> datetime:
    return now - TIMEFRAMES[normalize_timeframe(timeframe)]


def _counts(values: Iterable[str]) -> List[tuple[str, int]]:
    counts: Dict[str, int] = {}
    for v in values:
        counts[v] = counts.get(v, 0) + 1
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def _sessions(events: List[Dict[str, Any]]) -> Dict[str, int]:
    per_session: Dict[str, int] = {}
    for e in events:
        sid = e.get("sessionId")
        if sid:
            per_session[sid] = per_session.get(sid, 0) + 1
    return per_session


def average_value(events: List[Dict[str, Any]], event_name: str) -> int:
    values = [e["value"] for e in events if e.get("event") == event_name and e.get("value")]
    if not values:
        return 0
    return _round(sum(values) / len(values))


def bounce_rate(events: List[Dict[str, Any]]) -> int:
    sessions = _sessions(events)
    if not sessions:
        return 0
    bounced = sum(1 for count in sessions.values() if count == 1)
    return _round(bounced / len(sessions) * 100)


def conversion_rate(events: List[Dict[str, Any]]) -> int:
    sessions = _sessions(events)
    if not sessions:
        return 0
    conversions = sum(1 for e in events if e.get("event") in (CONTACT_FORM_SUBMITTED, MISSION_STARTED))
    return _round(conversions / len(sessions) * 100)


def _xp(event: Dict[str, Any]) -> float:
    xp = (event.get("metadata") or {}).get("xp")
    if isinstance(xp, bool) or not isinstance(xp, (int, float)):
        return 0
    return xp


def generate_dashboard(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate enriched events (API shape: event, category, userId, sessionId, value, metadata)."""
    return {
        "overview": {
            "totalEvents": len(events),
            "uniqueUsers": len({e["userId"] for e in events if e.get("userId")}),
            "topEvents": [
                {"event": name, "count": count} for name, count in _counts(e.get("event") for e in events)[:10]
            ],
            "topCategories": [
                {"category": name, "count": count} for name, count in _counts(e.get("category") for e in events)
            ],
        },
        "gaming": {
            "totalXP": sum(_xp(e) for e in events),
            "achievementsUnlocked": sum(1 for e in events if e.get("event") == ACHIEVEMENT_UNLOCKED),
            "powerUpsSelected": sum(1 for e in events if e.get("category") == "power-up"),
            "easterEggsFound": sum(1 for e in events if e.get("event") == EASTER_EGG_FOUND),
        },
        "performance": {
            "avgPageLoadTime": average_value(events, PAGE_LOAD_TIME),
            "avgInteractiveTime": average_value(events, INTERACTIVE_TIME),
            "bounceRate": bounce_rate(events),
        },
        "conversion": {
            "contactFormSubmissions": sum(1 for e in events if e.get("event") == CONTACT_FORM_SUBMITTED),
            "missionStarted": sum(1 for e in events if e.get("event") == MISSION_STARTED),
            "conversionRate": conversion_rate(events),
        },
    }
