"""
Lead scoring and the deal heuristics derived from it.
"""

from __future__ import annotations

import math
import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

PROJECT_POINTS: Dict[str, int] = {
    "website": 100,
    "webapp": 300,
    "mobile": 500,
    "ai": 800,
    "ecommerce": 400,
    "custom": 1000,
}

BUDGET_MULTIPLIERS: Dict[str, float] = {
    "startup": 1.0,
    "small": 1.5,
    "medium": 2.0,
    "large": 3.0,
    "custom": 2.5,
}

URGENCY_MULTIPLIERS: Dict[str, float] = {
    "low": 0.8,
    "normal": 1.0,
    "high": 1.3,
    "critical": 1.5,
}

COMPANY_BONUS = 200
PHONE_BONUS = 150
DETAILED_MESSAGE_BONUS = 100
DETAILED_MESSAGE_LENGTH = 100

DEAL_BASE_AMOUNTS: Dict[str, int] = {
    "startup": 10000,
    "small": 30000,
    "medium": 100000,
    "large": 200000,
    "custom": 150000,
}
DEFAULT_DEAL_BASE = 50000

DEAL_PROJECT_MULTIPLIERS: Dict[str, float] = {
    "website": 0.8,
    "webapp": 1.2,
    "mobile": 1.5,
    "ai": 2.0,
    "ecommerce": 1.3,
    "custom": 1.8,
}

DEAL_URGENCY_MULTIPLIERS: Dict[str, float] = {
    "critical": 1.3,
    "high": 1.15,
}

CLOSE_DAYS: Dict[str, int] = {
    "low": 60,
    "normal": 30,
    "high": 14,
    "critical": 7,
}
DEFAULT_CLOSE_DAYS = 30

PLAYER_LEVELS = (
    "new_player",
    "power_up_selection",
    "mission_briefing",
    "boss_battle",
    "achievement_unlocked",
)

DEAL_STAGES: Dict[str, str] = {
    "new_player": "qualifiedtobuy",
    "power_up_selection": "presentationscheduled",
    "mission_briefing": "decisionmakerboughtin",
    "boss_battle": "contractsent",
    "achievement_unlocked": "closedwon",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_lead_score(
    project_type: Optional[str],
    budget_range: Optional[str],
    company: Optional[str] = None,
    phone: Optional[str] = None,
    message: Optional[str] = None,
    urgency: Optional[str] = "normal",
) -> int:
    """
    Points for the project type, scaled by budget, plus contact bonuses,
    scaled by urgency.

    Unknown project types score 0 and unknown tiers leave the score unchanged.
    """
    score: float = PROJECT_POINTS.get(project_type or "", 0)
    score *= BUDGET_MULTIPLIERS.get(budget_range or "", 1.0)

    if company and company.strip():
        score += COMPANY_BONUS
    if phone and phone.strip():
        score += PHONE_BONUS
    if message and len(message) > DETAILED_MESSAGE_LENGTH:
        score += DETAILED_MESSAGE_BONUS

    score *= URGENCY_MULTIPLIERS.get(urgency or "normal", 1.0)
    return round_half_up(score)


def deal_amount(budget_range: Optional[str], project_type: Optional[str], urgency: Optional[str]) -> int:
    base = DEAL_BASE_AMOUNTS.get(budget_range or "", DEFAULT_DEAL_BASE)
    amount = base * DEAL_PROJECT_MULTIPLIERS.get(project_type or "", 1.0)
    amount *= DEAL_URGENCY_MULTIPLIERS.get(urgency or "", 1.0)
    return round_half_up(amount)


def close_date(urgency: Optional[str], today: Optional[date] = None) -> str:
    today = today or datetime.now(timezone.utc).date()
    days = CLOSE_DAYS.get(urgency or "", DEFAULT_CLOSE_DAYS)
    return (today + timedelta(days=days)).isoformat()


def deal_stage_for_level(player_level: Optional[str]) -> str:
    return DEAL_STAGES.get(player_level or "", "qualifiedtobuy")


def new_lead_id() -> str:
    return f"lead_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class GamingLead:
    email: str
    name: str
    id: str = field(default_factory=new_lead_id)
    phone: Optional[str] = None
    company: Optional[str] = None
    lead_score: int = 0
    player_level: str = "new_player"
    achievements: List[str] = field(default_factory=list)
    power_ups: List[str] = field(default_factory=list)
    project_type: Optional[str] = None
    budget_range: Optional[str] = None
    urgency: str = "normal"
    message: Optional[str] = None
    source: str = "website"
    campaign: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    crm_id: Optional[str] = None
    crm_provider: Optional[str] = None
    sync_status: str = "pending"  # pending / synced / error
    last_sync_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "company": self.company,
            "leadScore": self.lead_score,
            "playerLevel": self.player_level,
            "achievements": list(self.achievements),
            "powerUps": list(self.power_ups),
            "projectType": self.project_type,
            "budgetRange": self.budget_range,
            "urgency": self.urgency,
            "message": self.message,
            "source": self.source,
            "campaign": self.campaign,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "crmId": self.crm_id,
            "crmProvider": self.crm_provider,
            "syncStatus": self.sync_status,
            "lastSyncAt": self.last_sync_at.isoformat() if self.last_sync_at else None,
        }
