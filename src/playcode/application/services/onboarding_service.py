"""
Onboarding lifecycle: records, wizard progress, completion and follow-up
reminders.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from playcode.application.events import ONBOARDING, make_event
from playcode.application.ports.event_log_port import EventLogPort
from playcode.core.errors import NotFoundError, ValidationError
from playcode.domain.onboarding import (
    PAYMENT_STATUSES,
    PLAN_TYPES,
    SERVICE_TYPES,
    OnboardingRecord,
    new_onboarding_id,
    new_reminder_id,
    reminder_times,
)
from playcode.infrastructure.security.input_validation import is_valid_email
from playcode.infrastructure.stores.onboarding_store import SqlAlchemyOnboardingStore

logger = logging.getLogger(__name__)

UPDATE_FIELDS = ("form_data", "current_step", "completed_steps", "is_completed", "completed_at")
API_FIELDS = {
    "formData": "form_data",
    "currentStep": "current_step",
    "completedSteps": "completed_steps",
    "isCompleted": "is_completed",
    "completedAt": "completed_at",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def updates_from_api(data: Dict[str, Any]) -> Dict[str, Any]:
    """Translate camelCase request fields into service updates."""
    updates = {API_FIELDS[k]: v for k, v in data.items() if k in API_FIELDS}
    completed_at = updates.get("completed_at")
    if isinstance(completed_at, str):
        try:
            updates["completed_at"] = datetime.fromisoformat(completed_at.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError("completedAt must be an ISO date", context={"completedAt": completed_at}) from e
    return updates


class OnboardingService:
    def __init__(
        self,
        store: SqlAlchemyOnboardingStore,
        *,
        email_service=None,
        whatsapp=None,
        event_log: Optional[EventLogPort] = None,
        app_url: str = "http://localhost:3000",
    ):
        self.store = store
        self.email_service = email_service
        self.whatsapp = whatsapp
        self.event_log = event_log
        self.app_url = app_url.rstrip("/")

    def onboarding_url(self, onboarding_id: str) -> str:
        return f"{self.app_url}/onboarding/{onboarding_id}"

    # records

    def create_onboarding(self, data: Dict[str, Any]) -> OnboardingRecord:
        errors: List[str] = []
        if not data.get("customer_name"):
            errors.append("customer_name is required")
        if not is_valid_email(str(data.get("customer_email") or "")):
            errors.append("customer_email is invalid")
        if data.get("service_type") not in SERVICE_TYPES:
            errors.append(f"service_type must be one of {', '.join(SERVICE_TYPES)}")
        if data.get("plan_type") not in PLAN_TYPES:
            errors.append(f"plan_type must be one of {', '.join(PLAN_TYPES)}")
        if data.get("status", "pending") not in PAYMENT_STATUSES:
            errors.append(f"status must be one of {', '.join(PAYMENT_STATUSES)}")
        if errors:
            raise ValidationError("Invalid onboarding data", context={"details": errors})

        now = _utcnow()
        row = self.store.create(
            {
                **data,
                "id": data.get("id") or new_onboarding_id(),
                "form_data": {},
                "current_step": 0,
                "completed_steps": [],
                "is_completed": False,
                "created_at": now,
                "updated_at": now,
            }
        )
        logger.info(f"Onboarding created: {row['id']} ({row['service_type']}/{row['plan_type']})")
        return OnboardingRecord.from_dict(row)

    def get_onboarding(self, onboarding_id: str, touch: bool = True) -> Optional[OnboardingRecord]:
        row = self.store.get(onboarding_id)
        if row is None:
            return None
        if touch:
            row = self.store.update(onboarding_id, {"last_access_date": _utcnow()}) or row
        return OnboardingRecord.from_dict(row)

    def require_onboarding(self, onboarding_id: str, touch: bool = False) -> OnboardingRecord:
        record = self.get_onboarding(onboarding_id, touch=touch)
        if record is None:
            raise NotFoundError("Onboarding não encontrado", context={"id": onboarding_id})
        return record

    def find_by_subscription(self, subscription_id: str) -> Optional[OnboardingRecord]:
        row = self.store.get_by_subscription(subscription_id)
        return OnboardingRecord.from_dict(row) if row else None

    async def send_welcome(self, record: OnboardingRecord) -> bool:
        """Welcome email plus WhatsApp when a phone is known. Returns whether the email went out."""
        url = self.onboarding_url(record.id)
        sent = False
        if self.email_service is not None:
            try:
                await self.email_service.send_welcome_email(
                    record.customer_email, record.customer_name, record.service_type, record.plan_type, url
                )
                sent = True
            except Exception as e:
                logger.error(f"Welcome email for {record.id} failed: {e}")
        if record.customer_phone and self.whatsapp is not None:
            try:
                await self.whatsapp.send_welcome(record.customer_phone, record.customer_name, record.service_type, url)
            except Exception as e:
                logger.error(f"Welcome WhatsApp for {record.id} failed: {e}")
        return sent

    def update_onboarding(self, onboarding_id: str, updates: Dict[str, Any]) -> OnboardingRecord:
        now = _utcnow()
        changes = {k: v for k, v in updates.items() if k in UPDATE_FIELDS and v is not None}
        if changes.get("is_completed") and not changes.get("completed_at"):
            changes["completed_at"] = now
        changes["updated_at"] = now
        changes["last_access_date"] = now

        row = self.store.update(onboarding_id, changes)
        if row is None:
            raise NotFoundError("Onboarding não encontrado", context={"id": onboarding_id})
        return OnboardingRecord.from_dict(row)

    def apply_api_update(self, onboarding_id: str, data: Dict[str, Any]) -> OnboardingRecord:
        """PUT semantics: a completion needs the final form data and runs the kickoff."""
        updates = updates_from_api(data)
        if updates.get("is_completed"):
            if updates.get("form_data") is None:
                raise ValidationError("Form data is required for completion", code="MISSING_FORM_DATA")
            return self.complete_onboarding(onboarding_id, updates["form_data"])
        return self.update_onboarding(onboarding_id, updates)

    def delete_onboarding(self, onboarding_id: str) -> None:
        if not self.store.delete(onboarding_id):
            raise NotFoundError("Onboarding não encontrado", context={"id": onboarding_id})
        self.store.delete_reminders(onboarding_id)

    def list_onboardings(self, **filters: Any) -> List[OnboardingRecord]:
        return [OnboardingRecord.from_dict(row) for row in self.store.list(**filters)]

    # wizard progress

    def save_form_progress(self, onboarding_id: str, form_data: Dict[str, Any], current_step: int) -> OnboardingRecord:
        return self.update_onboarding(onboarding_id, {"form_data": form_data, "current_step": current_step})

    def mark_step_completed(self, onboarding_id: str, step_index: int) -> Optional[OnboardingRecord]:
        record = self.get_onboarding(onboarding_id, touch=False)
        if record is None:
            return None
        completed = list(record.completed_steps)
        if step_index not in completed:
            completed.append(step_index)
        return self.update_onboarding(
            onboarding_id,
            {"completed_steps": completed, "current_step": max(record.current_step, step_index + 1)},
        )

    def complete_onboarding(self, onboarding_id: str, final_form_data: Dict[str, Any]) -> OnboardingRecord:
        record = self.update_onboarding(
            onboarding_id,
            {"form_data": final_form_data, "is_completed": True, "completed_at": _utcnow()},
        )
        self.trigger_project_kickoff(record)
        return record

    def trigger_project_kickoff(self, record: OnboardingRecord) -> Dict[str, Any]:
        project = self.store.add_project(
            {
                "onboarding_id": record.id,
                "customer_id": record.customer_id,
                "service_type": record.service_type,
                "plan_type": record.plan_type,
                "onboarding_data": record.form_data,
                "status": "pending_kickoff",
            }
        )
        if self.event_log is not None:
            self.event_log.append(
                make_event(
                    category=ONBOARDING,
                    type="project_kickoff",
                    source="onboarding_service",
                    payload={"onboarding_id": record.id, "project_id": project["id"], "service_type": record.service_type},
                )
            )
        logger.info(f"Project kickoff triggered for onboarding {record.id}")
        return project

    # reminders

    def schedule_follow_up_reminders(self, onboarding_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        record = self.get_onboarding(onboarding_id, touch=False)
        if record is None:
            return []
        reminders = [
            {
                "id": new_reminder_id(),
                "onboarding_id": record.id,
                "customer_email": record.customer_email,
                "customer_phone": record.customer_phone,
                "reminder_type": channel,
                "scheduled_for": scheduled_for,
                "status": "pending",
            }
            for scheduled_for, channel in reminder_times(now or _utcnow())
        ]
        saved = self.store.add_reminders(reminders)
        logger.info(f"Scheduled {len(saved)} follow-up reminders for {record.id}")
        return saved

    async def process_scheduled_reminders(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or _utcnow()
        counts = {"processed": 0, "sent": 0, "skipped": 0, "failed": 0}
        for reminder in self.store.due_reminders(now):
            counts["processed"] += 1
            outcome = await self._send_follow_up_reminder(reminder, now)
            counts[outcome] += 1
        if counts["processed"]:
            logger.info(f"Follow-up reminders processed: {counts}")
        return counts

    async def _send_follow_up_reminder(self, reminder: Dict[str, Any], now: datetime) -> str:
        record = self.get_onboarding(reminder["onboarding_id"], touch=False)
        if record is None or record.is_completed:
            self.store.update_reminder(reminder["id"], status="sent", sent_at=now)
            return "skipped"

        days_elapsed = int((now - record.created_at).total_seconds() // 86400) if record.created_at else 0
        url = self.onboarding_url(record.id)
        channel = reminder["reminder_type"]
        try:
            if channel in ("email", "both") and self.email_service is not None:
                await self.email_service.send_follow_up_email(
                    reminder["customer_email"], record.customer_name, record.service_type, url, days_elapsed
                )
            phone = reminder.get("customer_phone")
            if channel in ("whatsapp", "both") and phone and self.whatsapp is not None:
                await self.whatsapp.send_follow_up(phone, record.customer_name, record.service_type, url, days_elapsed)
        except Exception as e:
            logger.error(f"Follow-up reminder {reminder['id']} failed: {e}")
            self.store.update_reminder(reminder["id"], status="failed", sent_at=now, error=str(e))
            return "failed"

        self.store.update_reminder(reminder["id"], status="sent", sent_at=now)
        return "sent"

    # reporting

    def get_onboarding_stats(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Dict[str, Any]:
        records = self.list_onboardings(created_from=start, created_to=end)
        total = len(records)
        completed = [r for r in records if r.is_completed]

        by_service: Dict[str, int] = {}
        for r in records:
            by_service[r.service_type] = by_service.get(r.service_type, 0) + 1

        durations = [
            (r.completed_at - r.created_at).total_seconds() / 3600
            for r in completed
            if r.completed_at and r.created_at
        ]
        return {
            "total": total,
            "completed": len(completed),
            "byService": by_service,
            "averageCompletionTime": round(sum(durations) / len(durations), 2) if durations else 0,
            "conversionRate": len(completed) / total if total else 0,
        }

    def get_incomplete_onboardings(self, days_old: int = 7, now: Optional[datetime] = None) -> List[OnboardingRecord]:
        cutoff = (now or _utcnow()) - timedelta(days=days_old)
        return self.list_onboardings(is_completed=False, created_before=cutoff)
