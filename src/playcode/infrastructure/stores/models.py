from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _loads(raw: Optional[str], default):
    try:
        data = json.loads(raw or "")
    except Exception:
        return default
    return data if isinstance(data, type(default)) else default


class OnboardingModel(Base):
    __tablename__ = "onboardings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), default="", index=True)
    customer_name: Mapped[str] = mapped_column(String(200), default="")
    customer_email: Mapped[str] = mapped_column(String(320), default="", index=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    service_type: Mapped[str] = mapped_column(String(32), index=True)
    plan_type: Mapped[str] = mapped_column(String(32), index=True)
    payment_id: Mapped[str] = mapped_column(String(128), default="")
    subscription_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    amount: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(String(16), default="pending")

    form_data_json: Mapped[str] = mapped_column(Text, default="{}")
    current_step: Mapped[int] = mapped_column(Integer, default=0)
    completed_steps_json: Mapped[str] = mapped_column(Text, default="[]")
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    last_access_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    reminders = relationship("FollowUpReminderModel", back_populates="onboarding", cascade="all, delete-orphan")

    def set_form_data(self, data: Dict[str, Any]) -> None:
        self.form_data_json = json.dumps(data or {}, ensure_ascii=False)

    def get_form_data(self) -> Dict[str, Any]:
        return _loads(self.form_data_json, {})

    def set_completed_steps(self, steps: List[int]) -> None:
        self.completed_steps_json = json.dumps([int(s) for s in steps or []])

    def get_completed_steps(self) -> List[int]:
        return _loads(self.completed_steps_json, [])


class FollowUpReminderModel(Base):
    __tablename__ = "follow_up_reminders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    onboarding_id: Mapped[str] = mapped_column(String(64), ForeignKey("onboardings.id"), index=True)
    customer_email: Mapped[str] = mapped_column(String(320), default="")
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    reminder_type: Mapped[str] = mapped_column(String(16), default="email")
    scheduled_for: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    onboarding = relationship("OnboardingModel", back_populates="reminders")


class ProjectModel(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    onboarding_id: Mapped[str] = mapped_column(String(64), index=True)
    customer_id: Mapped[str] = mapped_column(String(64), default="")
    service_type: Mapped[str] = mapped_column(String(32), default="")
    plan_type: Mapped[str] = mapped_column(String(32), default="")
    status: Mapped[str] = mapped_column(String(32), default="pending_kickoff")
    onboarding_data_json: Mapped[str] = mapped_column(Text, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def set_onboarding_data(self, data: Dict[str, Any]) -> None:
        self.onboarding_data_json = json.dumps(data or {}, ensure_ascii=False)

    def get_onboarding_data(self) -> Dict[str, Any]:
        return _loads(self.onboarding_data_json, {})


class ApprovalModel(Base):
    __tablename__ = "approvals"

    # sha256 of the full token; the token itself is never stored
    token_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    token_prefix: Mapped[str] = mapped_column(String(16), default="")
    customer_id: Mapped[str] = mapped_column(String(64), default="", index=True)
    customer_email: Mapped[str] = mapped_column(String(320), default="")
    customer_name: Mapped[str] = mapped_column(String(200), default="")
    project_type: Mapped[str] = mapped_column(String(64), default="")
    approval_json: Mapped[str] = mapped_column(Text, default="{}")

    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def set_approval(self, data: Dict[str, Any]) -> None:
        self.approval_json = json.dumps(data or {}, ensure_ascii=False)

    def get_approval(self) -> Dict[str, Any]:
        return _loads(self.approval_json, {})


class AnalyticsEventModel(Base):
    __tablename__ = "analytics_events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event: Mapped[str] = mapped_column(String(100), index=True)
    category: Mapped[str] = mapped_column(String(32), index=True)
    action: Mapped[str] = mapped_column(String(100), default="")
    label: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    metadata_json: Mapped[str] = mapped_column(Text, default="{}")

    ip: Mapped[str] = mapped_column(String(64), default="unknown")
    user_agent: Mapped[str] = mapped_column(String(512), default="")
    referer: Mapped[str] = mapped_column(String(512), default="")
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    def set_metadata(self, data: Dict[str, Any]) -> None:
        self.metadata_json = json.dumps(data or {}, ensure_ascii=False)

    def get_metadata(self) -> Dict[str, Any]:
        return _loads(self.metadata_json, {})


class SubscriptionModel(Base):
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    reference_id: Mapped[str] = mapped_column(String(200), default="", index=True)
    plan_id: Mapped[str] = mapped_column(String(64), default="")
    billing_cycle: Mapped[str] = mapped_column(String(16), default="monthly")
    customer_email: Mapped[str] = mapped_column(String(320), default="", index=True)
    customer_name: Mapped[str] = mapped_column(String(200), default="")
    customer_json: Mapped[str] = mapped_column(Text, default="{}")
    amount: Mapped[int] = mapped_column(Integer, default=0)
    setup_fee: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(32), default="PENDING", index=True)
    checkout_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    mock: Mapped[bool] = mapped_column(Boolean, default=False)
    onboarding_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    payments_json: Mapped[str] = mapped_column(Text, default="[]")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def set_customer(self, data: Dict[str, Any]) -> None:
        self.customer_json = json.dumps(data or {}, ensure_ascii=False)

    def get_customer(self) -> Dict[str, Any]:
        return _loads(self.customer_json, {})

    def set_payments(self, items: List[Dict[str, Any]]) -> None:
        self.payments_json = json.dumps(items or [], ensure_ascii=False, default=str)

    def get_payments(self) -> List[Dict[str, Any]]:
        return _loads(self.payments_json, [])


class AuditEventModel(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(64), index=True)
    category: Mapped[str] = mapped_column(String(32), default="", index=True)
    type: Mapped[str] = mapped_column(String(64), default="", index=True)
    source: Mapped[str] = mapped_column(String(128), default="")
    payload_json: Mapped[str] = mapped_column(Text, default="{}")
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    def set_payload(self, payload: Dict[str, Any]) -> None:
        self.payload_json = json.dumps(payload or {}, ensure_ascii=False, default=str)

    def get_payload(self) -> Dict[str, Any]:
        return _loads(self.payload_json, {})
