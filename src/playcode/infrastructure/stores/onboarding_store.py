from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, desc, select

from playcode.infrastructure.stores.models import (
    Base,
    FollowUpReminderModel,
    OnboardingModel,
    ProjectModel,
    as_utc,
)
from playcode.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

_UPDATABLE = {
    "customer_name",
    "customer_email",
    "customer_phone",
    "service_type",
    "plan_type",
    "payment_id",
    "subscription_id",
    "amount",
    "status",
    "current_step",
    "is_completed",
    "updated_at",
    "last_access_date",
    "completed_at",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAlchemyOnboardingStore:
    """Onboarding records, their follow-up reminders and kicked-off projects."""

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    # ---- onboardings ----

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = data.get("created_at") or _utcnow()
        with self._provider.session() as session:
            row = OnboardingModel(
                id=data["id"],
                customer_id=data.get("customer_id") or "",
                customer_name=data.get("customer_name") or "",
                customer_email=data.get("customer_email") or "",
                customer_phone=data.get("customer_phone"),
                service_type=data["service_type"],
                plan_type=data["plan_type"],
                payment_id=data.get("payment_id") or "",
                subscription_id=data.get("subscription_id"),
                amount=float(data.get("amount") or 0),
                status=data.get("status") or "pending",
                current_step=int(data.get("current_step") or 0),
                is_completed=bool(data.get("is_completed") or False),
                created_at=now,
                updated_at=data.get("updated_at") or now,
                last_access_date=data.get("last_access_date"),
                completed_at=data.get("completed_at"),
            )
            row.set_form_data(data.get("form_data") or {})
            row.set_completed_steps(data.get("completed_steps") or [])
            session.add(row)
            session.commit()
            return self._onboarding_to_dict(row)

    def get(self, onboarding_id: str) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.get(OnboardingModel, onboarding_id)
            return self._onboarding_to_dict(row) if row else None

    def get_by_subscription(self, subscription_id: str) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.execute(
                select(OnboardingModel).where(OnboardingModel.subscription_id == subscription_id).limit(1)
            ).scalar_one_or_none()
            return self._onboarding_to_dict(row) if row else None

    def update(self, onboarding_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._provider.session() as session:
            row = session.get(OnboardingModel, onboarding_id)
            if row is None:
                return None
            for key, value in updates.items():
                if key == "form_data":
                    row.set_form_data(value or {})
                elif key == "completed_steps":
                    row.set_completed_steps(value or [])
                elif key in _UPDATABLE:
                    setattr(row, key, value)
            session.commit()
            return self._onboarding_to_dict(row)

    def delete(self, onboarding_id: str) -> bool:
        with self._provider.session() as session:
            row = session.get(OnboardingModel, onboarding_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def list(
        self,
        *,
        is_completed: Optional[bool] = None,
        service_type: Optional[str] = None,
        plan_type: Optional[str] = None,
        created_before: Optional[datetime] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._provider.session() as session:
            stmt = select(OnboardingModel)
            if is_completed is not None:
                stmt = stmt.where(OnboardingModel.is_completed == is_completed)
            if service_type:
                stmt = stmt.where(OnboardingModel.service_type == service_type)
            if plan_type:
                stmt = stmt.where(OnboardingModel.plan_type == plan_type)
            if created_before is not None:
                stmt = stmt.where(OnboardingModel.created_at <= created_before)
            if created_from is not None:
                stmt = stmt.where(OnboardingModel.created_at >= created_from)
            if created_to is not None:
                stmt = stmt.where(OnboardingModel.created_at <= created_to)
            stmt = stmt.order_by(desc(OnboardingModel.created_at))
            if limit:
                stmt = stmt.limit(limit)
            return [self._onboarding_to_dict(r) for r in session.execute(stmt).scalars()]

    # ---- reminders ----

    def add_reminders(self, reminders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        with self._provider.session() as session:
            rows = []
            for r in reminders:
                row = FollowUpReminderModel(
                    id=r["id"],
                    onboarding_id=r["onboarding_id"],
                    customer_email=r.get("customer_email") or "",
                    customer_phone=r.get("customer_phone"),
                    reminder_type=r.get("reminder_type") or "email",
                    scheduled_for=r["scheduled_for"],
                    status=r.get("status") or "pending",
                )
                session.add(row)
                rows.append(row)
            session.commit()
            return [self._reminder_to_dict(r) for r in rows]

    def list_reminders(self, onboarding_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._provider.session() as session:
            stmt = select(FollowUpReminderModel)
            if onboarding_id:
                stmt = stmt.where(FollowUpReminderModel.onboarding_id == onboarding_id)
            stmt = stmt.order_by(FollowUpReminderModel.scheduled_for)
            return [self._reminder_to_dict(r) for r in session.execute(stmt).scalars()]

    def due_reminders(self, now: datetime) -> List[Dict[str, Any]]:
        with self._provider.session() as session:
            stmt = (
                select(FollowUpReminderModel)
                .where(FollowUpReminderModel.status == "pending")
                .where(FollowUpReminderModel.scheduled_for <= now)
                .order_by(FollowUpReminderModel.scheduled_for)
            )
            return [self._reminder_to_dict(r) for r in session.execute(stmt).scalars()]

    def update_reminder(
        self, reminder_id: str, *, status: str, sent_at: Optional[datetime] = None, error: Optional[str] = None
    ) -> None:
        with self._provider.session() as session:
            row = session.get(FollowUpReminderModel, reminder_id)
            if row is None:
                return
            row.status = status
            row.sent_at = sent_at
            row.error = error
            session.commit()

    def delete_reminders(self, onboarding_id: str) -> int:
        with self._provider.session() as session:
            result = session.execute(
                delete(FollowUpReminderModel).where(FollowUpReminderModel.onboarding_id == onboarding_id)
            )
            session.commit()
            return int(result.rowcount or 0)

    # ---- projects ----

    def add_project(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with self._provider.session() as session:
            row = ProjectModel(
                onboarding_id=data["onboarding_id"],
                customer_id=data.get("customer_id") or "",
                service_type=data.get("service_type") or "",
                plan_type=data.get("plan_type") or "",
                status=data.get("status") or "pending_kickoff",
                created_at=_utcnow(),
            )
            row.set_onboarding_data(data.get("onboarding_data") or {})
            session.add(row)
            session.commit()
            return self._project_to_dict(row)

    def list_projects(self, onboarding_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._provider.session() as session:
            stmt = select(ProjectModel)
            if onboarding_id:
                stmt = stmt.where(ProjectModel.onboarding_id == onboarding_id)
            return [self._project_to_dict(r) for r in session.execute(stmt.order_by(ProjectModel.id)).scalars()]

    def close(self) -> None:
        self._provider.engine.dispose()

    # ---- mapping ----

    @staticmethod
    def _onboarding_to_dict(row: OnboardingModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "customer_id": row.customer_id,
            "customer_name": row.customer_name,
            "customer_email": row.customer_email,
            "customer_phone": row.customer_phone,
            "service_type": row.service_type,
            "plan_type": row.plan_type,
            "payment_id": row.payment_id,
            "subscription_id": row.subscription_id,
            "amount": row.amount,
            "status": row.status,
            "form_data": row.get_form_data(),
            "current_step": row.current_step,
            "completed_steps": row.get_completed_steps(),
            "is_completed": bool(row.is_completed),
            "created_at": as_utc(row.created_at),
            "updated_at": as_utc(row.updated_at),
            "last_access_date": as_utc(row.last_access_date),
            "completed_at": as_utc(row.completed_at),
        }

    @staticmethod
    def _reminder_to_dict(row: FollowUpReminderModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "onboarding_id": row.onboarding_id,
            "customer_email": row.customer_email,
            "customer_phone": row.customer_phone,
            "reminder_type": row.reminder_type,
            "scheduled_for": as_utc(row.scheduled_for),
            "sent_at": as_utc(row.sent_at),
            "status": row.status,
            "error": row.error,
        }

    @staticmethod
    def _project_to_dict(row: ProjectModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "onboarding_id": row.onboarding_id,
            "customer_id": row.customer_id,
            "service_type": row.service_type,
            "plan_type": row.plan_type,
            "status": row.status,
            "onboarding_data": row.get_onboarding_data(),
            "created_at": as_utc(row.created_at),
        }
