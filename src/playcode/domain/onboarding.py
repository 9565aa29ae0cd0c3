"""
Onboarding records, catalog names and the follow-up reminder schedule.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

SERVICE_TYPES: Tuple[str, ...] = ("website", "ecommerce", "mobile", "marketing", "automation")
PLAN_TYPES: Tuple[str, ...] = ("starter", "pro", "enterprise")
PAYMENT_STATUSES: Tuple[str, ...] = ("paid", "pending", "failed")
REMINDER_TYPES: Tuple[str, ...] = ("email", "whatsapp", "both")

SERVICE_NAMES: Dict[str, str] = {
    "website": "Website/Landing Page",
    "ecommerce": "E-commerce",
    "mobile": "Aplicativo Mobile",
    "marketing": "Marketing Digital",
    "automation": "Automação de Processos",
}

# WhatsApp messages use shorter labels.
SHORT_SERVICE_NAMES: Dict[str, str] = {
    **SERVICE_NAMES,
    "mobile": "App Mobile",
    "automation": "Automação",
}

SERVICE_EMOJIS: Dict[str, str] = {
    "website": "🌐",
    "ecommerce": "🛒",
    "mobile": "📱",
    "marketing": "📊",
    "automation": "⚡",
}

PLAN_NAMES: Dict[str, str] = {
    "starter": "Starter Pack",
    "pro": "Pro Guild",
    "enterprise": "Enterprise",
}

# Plan labels printed on the exported onboarding document.
EXPORT_PLAN_NAMES: Dict[str, str] = {
    "starter": "Starter Pack - R$ 797",
    "pro": "Pro Guild - R$ 2.497",
    "enterprise": "Enterprise - Sob consulta",
}

# (days after creation, channel)
REMINDER_SCHEDULE: Tuple[Tuple[int, str], ...] = (
    (1, "email"),
    (3, "both"),
    (5, "both"),
    (7, "both"),
)


def new_onboarding_id() -> str:
    return f"onboarding_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def new_reminder_id() -> str:
    return f"reminder_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def follow_up_urgency(days_elapsed: int) -> str:
    if days_elapsed >= 5:
        return "high"
    if days_elapsed >= 3:
        return "medium"
    return "low"


def reminder_times(created_at: datetime) -> List[Tuple[datetime, str]]:
    return [(created_at + timedelta(days=days), channel) for days, channel in REMINDER_SCHEDULE]


def plan_mapping_for_subscription(plan_id: str) -> Tuple[str, str]:
    """Map a subscription plan id to (service_type, plan_type); unmatched ids are enterprise."""
    plan_id = (plan_id or "").lower()
    if "starter" in plan_id:
        return "website", "starter"
    if "pro" in plan_id:
        return "ecommerce", "pro"
    return "automation", "enterprise"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class OnboardingRecord:
    id: str
    customer_id: str
    customer_name: str
    customer_email: str
    service_type: str
    plan_type: str
    payment_id: str = ""
    amount: float = 0.0
    status: str = "pending"
    customer_phone: Optional[str] = None
    subscription_id: Optional[str] = None
    form_data: Dict[str, Any] = field(default_factory=dict)
    current_step: int = 0
    completed_steps: List[int] = field(default_factory=list)
    is_completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_access_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OnboardingRecord":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__ if k in data})

    def to_api(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerPhone": self.customer_phone,
            "serviceType": self.service_type,
            "planType": self.plan_type,
            "paymentId": self.payment_id,
            "amount": self.amount,
            "status": self.status,
            "formData": self.form_data,
            "currentStep": self.current_step,
            "completedSteps": list(self.completed_steps),
            "isCompleted": self.is_completed,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "lastAccessDate": _iso(self.last_access_date),
            "completedAt": _iso(self.completed_at),
        }


@dataclass
class FollowUpReminder:
    id: str
    onboarding_id: str
    customer_email: str
    reminder_type: str
    scheduled_for: datetime
    customer_phone: Optional[str] = None
    sent_at: Optional[datetime] = None
    status: str = "pending"
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FollowUpReminder":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__ if k in data})
