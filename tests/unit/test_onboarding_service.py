from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from playcode.application.services.email_service import EmailService
from playcode.application.services.onboarding_service import OnboardingService, updates_from_api
from playcode.core.errors import NotFoundError, ValidationError
from playcode.infrastructure.notifications.email_senders import InMemoryEmailSender
from playcode.infrastructure.stores.onboarding_store import SqlAlchemyOnboardingStore


class FakeWhatsApp:
    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []

    async def send_welcome(self, phone, customer_name, service_type, onboarding_url):
        if self.fail:
            raise RuntimeError("whatsapp down")
        self.messages.append(("welcome", phone, onboarding_url))
        return True

    async def send_follow_up(self, phone, customer_name, service_type, onboarding_url, days_elapsed):
        self.messages.append(("follow_up", phone, days_elapsed))
        return True


@pytest.fixture
def whatsapp():
    return FakeWhatsApp()


@pytest.fixture
def store(db_url):
    return SqlAlchemyOnboardingStore(db_url)


@pytest.fixture
def service(store, email_sender, settings, whatsapp, event_log):
    return OnboardingService(
        store,
        email_service=EmailService(email_sender, settings),
        whatsapp=whatsapp,
        event_log=event_log,
        app_url="https://playcode.agency/",
    )


def _data(**overrides):
    data = {
        "customer_id": "cust_1",
        "customer_name": "Ana Souza",
        "customer_email": "ana@example.com",
        "customer_phone": "+55 11 99999-9999",
        "service_type": "website",
        "plan_type": "starter",
        "payment_id": "pay_1",
        "amount": 797.0,
        "status": "paid",
    }
    data.update(overrides)
    return data


def test_create_validates_fields(service):
    with pytest.raises(ValidationError) as exc_info:
        service.create_onboarding(_data(customer_email="nope", service_type="game", plan_type="gold", status="lost"))
    assert len(exc_info.value.context["details"]) == 4


def test_create_and_get(service):
    record = service.create_onboarding(_data())
    assert record.id.startswith("onboarding_")
    assert record.form_data == {}
    assert record.completed_steps == []
    assert record.created_at.tzinfo is not None
    assert service.onboarding_url(record.id) == f"https://playcode.agency/onboarding/{record.id}"

    fetched = service.get_onboarding(record.id)
    assert fetched.last_access_date is not None
    assert service.get_onboarding("missing") is None
    with pytest.raises(NotFoundError):
        service.require_onboarding("missing")


def test_find_by_subscription(service):
    record = service.create_onboarding(_data(subscription_id="sub_1"))
    assert service.find_by_subscription("sub_1").id == record.id
    assert service.find_by_subscription("sub_2") is None


@pytest.mark.asyncio
async def test_send_welcome_uses_email_and_whatsapp(service, email_sender, whatsapp):
    record = service.create_onboarding(_data())
    assert await service.send_welcome(record) is True
    assert email_sender.sent[0].to == "ana@example.com"
    assert whatsapp.messages == [("welcome", "+55 11 99999-9999", service.onboarding_url(record.id))]


@pytest.mark.asyncio
async def test_send_welcome_failures_are_not_fatal(store, settings):
    service = OnboardingService(
        store, email_service=EmailService(InMemoryEmailSender(fail=True), settings), whatsapp=FakeWhatsApp(fail=True)
    )
    record = service.create_onboarding(_data())
    assert await service.send_welcome(record) is False


def test_update_ignores_unknown_fields_and_stamps_completion(service):
    record = service.create_onboarding(_data())
    updated = service.update_onboarding(record.id, {"current_step": 2, "customer_email": "x@y.z", "form_data": None})
    assert updated.current_step == 2
    assert updated.customer_email == "ana@example.com"

    done = service.update_onboarding(record.id, {"is_completed": True})
    assert done.completed_at is not None

    with pytest.raises(NotFoundError):
        service.update_onboarding("missing", {"current_step": 1})


def test_updates_from_api():
    updates = updates_from_api({"formData": {"a": 1}, "currentStep": 3, "completedAt": "2024-05-01T10:00:00Z", "x": 1})
    assert updates["form_data"] == {"a": 1}
    assert updates["current_step"] == 3
    assert updates["completed_at"] == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert "x" not in updates
    with pytest.raises(ValidationError):
        updates_from_api({"completedAt": "ontem"})


def test_api_completion_needs_form_data_and_kicks_off_project(service, store, event_log):
    record = service.create_onboarding(_data())
    with pytest.raises(ValidationError) as exc_info:
        service.apply_api_update(record.id, {"isCompleted": True})
    assert exc_info.value.code == "MISSING_FORM_DATA"

    done = service.apply_api_update(record.id, {"isCompleted": True, "formData": {"domain": {"hasExisting": False}}})
    assert done.is_completed
    assert done.form_data == {"domain": {"hasExisting": False}}

    (project,) = store.list_projects(record.id)
    assert project["status"] == "pending_kickoff"
    assert project["onboarding_data"] == {"domain": {"hasExisting": False}}
    (event,) = event_log.of_type("project_kickoff")
    assert event["payload"]["project_id"] == project["id"]


def test_api_completion_accepts_empty_form_data(service, store):
    record = service.create_onboarding(_data())
    with pytest.raises(ValidationError):
        service.apply_api_update(record.id, {"isCompleted": True, "formData": None})

    done = service.apply_api_update(record.id, {"isCompleted": True, "formData": {}})
    assert done.is_completed
    assert done.form_data == {}
    assert len(store.list_projects(record.id)) == 1


def test_progress_and_steps(service):
    record = service.create_onboarding(_data())
    service.save_form_progress(record.id, {"design": {"hasLogo": True}}, 1)
    service.mark_step_completed(record.id, 0)
    updated = service.mark_step_completed(record.id, 0)

    assert updated.completed_steps == [0]
    assert updated.current_step == 1
    assert updated.form_data == {"design": {"hasLogo": True}}
    assert service.mark_step_completed("missing", 0) is None


def test_delete_removes_reminders(service, store):
    record = service.create_onboarding(_data())
    service.schedule_follow_up_reminders(record.id)
    service.delete_onboarding(record.id)

    assert store.list_reminders(record.id) == []
    with pytest.raises(NotFoundError):
        service.delete_onboarding(record.id)


def test_schedule_reminders(service):
    record = service.create_onboarding(_data())
    t0 = datetime(2024, 5, 1, 9, tzinfo=timezone.utc)
    reminders = service.schedule_follow_up_reminders(record.id, now=t0)

    assert [(r["scheduled_for"] - t0).days for r in reminders] == [1, 3, 5, 7]
    assert [r["reminder_type"] for r in reminders] == ["email", "both", "both", "both"]
    assert service.schedule_follow_up_reminders("missing") == []


@pytest.mark.asyncio
async def test_process_due_reminders(service, email_sender, whatsapp):
    record = service.create_onboarding(_data())
    t0 = record.created_at
    service.schedule_follow_up_reminders(record.id, now=t0)

    counts = await service.process_scheduled_reminders(now=t0 + timedelta(days=1, minutes=1))
    assert counts == {"processed": 1, "sent": 1, "skipped": 0, "failed": 0}
    assert email_sender.sent[-1].subject.startswith("🎮 Que tal continuarmos")

    counts = await service.process_scheduled_reminders(now=t0 + timedelta(days=3, minutes=1))
    assert counts["sent"] == 1
    assert whatsapp.messages[-1] == ("follow_up", "+55 11 99999-9999", 3)

    assert (await service.process_scheduled_reminders(now=t0 + timedelta(days=3, minutes=2)))["processed"] == 0


@pytest.mark.asyncio
async def test_reminders_for_completed_onboarding_are_skipped(service, email_sender):
    record = service.create_onboarding(_data())
    service.schedule_follow_up_reminders(record.id, now=record.created_at)
    service.complete_onboarding(record.id, {"briefing": {}})

    counts = await service.process_scheduled_reminders(now=record.created_at + timedelta(days=8))
    assert counts == {"processed": 4, "sent": 0, "skipped": 4, "failed": 0}
    assert email_sender.sent == []


@pytest.mark.asyncio
async def test_failed_reminder_is_recorded(store, settings):
    service = OnboardingService(store, email_service=EmailService(InMemoryEmailSender(fail=True), settings))
    record = service.create_onboarding(_data())
    service.schedule_follow_up_reminders(record.id, now=record.created_at)

    counts = await service.process_scheduled_reminders(now=record.created_at + timedelta(days=1, minutes=1))
    assert counts["failed"] == 1
    failed = [r for r in store.list_reminders(record.id) if r["status"] == "failed"]
    assert "Email transport unavailable" in failed[0]["error"]


def test_stats_and_incomplete(service):
    first = service.create_onboarding(_data())
    service.create_onboarding(_data(service_type="ecommerce", plan_type="pro"))
    service.complete_onboarding(first.id, {"a": 1})

    stats = service.get_onboarding_stats()
    assert stats["total"] == 2
    assert stats["completed"] == 1
    assert stats["byService"] == {"website": 1, "ecommerce": 1}
    assert stats["conversionRate"] == 0.5

    later = datetime.now(timezone.utc) + timedelta(days=8)
    incomplete = service.get_incomplete_onboardings(days_old=7, now=later)
    assert [r.service_type for r in incomplete] == ["ecommerce"]
    assert service.get_incomplete_onboardings(days_old=7) == []
