from __future__ import annotations

import hashlib
import hmac
import json

import pytest

from playcode.application.services.email_service import EmailService
from playcode.application.services.onboarding_service import OnboardingService
from playcode.application.services.payment_webhook_service import PaymentWebhookService, verify_signature
from playcode.core.errors import AuthenticationError, ValidationError
from playcode.infrastructure.stores.onboarding_store import SqlAlchemyOnboardingStore
from playcode.infrastructure.stores.subscription_store import SqlAlchemySubscriptionStore


def _webhook(event_type, sub_id="sub_1", **data):
    return json.dumps(
        {"event_type": event_type, "reference_id": "PLAYCODE_1", "data": {"subscription": {"id": sub_id}, **data}}
    ).encode("utf-8")


@pytest.fixture
def subscriptions(db_url):
    store = SqlAlchemySubscriptionStore(db_url)
    store.upsert(
        {
            "id": "sub_1",
            "plan_id": "pro-guild",
            "customer_email": "ana@example.com",
            "customer_name": "Ana Souza",
            "customer": {"phone": "11999999999"},
            "amount": 59700,
            "status": "PENDING",
        }
    )
    return store


@pytest.fixture
def onboarding(db_url, email_sender, settings):
    return OnboardingService(
        SqlAlchemyOnboardingStore(db_url), email_service=EmailService(email_sender, settings), app_url="http://x"
    )


@pytest.fixture
def webhooks(subscriptions, onboarding, settings, event_log):
    return PaymentWebhookService(subscriptions, onboarding, settings=settings, event_log=event_log)


def test_verify_signature():
    body = b'{"a": 1}'
    good = hmac.new(b"secret", body, hashlib.sha256).hexdigest()
    assert verify_signature(body, good, "secret")
    assert not verify_signature(body, good, "other")
    assert not verify_signature(body, "", "secret")


@pytest.mark.asyncio
async def test_activation_provisions_onboarding_once(webhooks, subscriptions, onboarding, email_sender, event_log):
    result = await webhooks.handle(_webhook("SUBSCRIPTION_ACTIVATED"))
    assert result == {"success": True, "message": "Webhook processed successfully"}

    record = onboarding.find_by_subscription("sub_1")
    assert record.service_type == "ecommerce"
    assert record.plan_type == "pro"
    assert record.customer_phone == "11999999999"
    assert record.status == "paid"
    assert subscriptions.get("sub_1")["status"] == "ACTIVE"
    assert subscriptions.get("sub_1")["onboarding_id"] == record.id
    assert len(email_sender.sent) == 1
    assert len(onboarding.store.list_reminders(record.id)) == 4

    await webhooks.handle(_webhook("SUBSCRIPTION_ACTIVATED"))
    assert onboarding.get_onboarding_stats()["total"] == 1
    assert len(email_sender.sent) == 1
    assert len(event_log.of_type("onboarding_provisioned")) == 1
    assert len(event_log.of_type("subscription_activated")) == 2


@pytest.mark.asyncio
async def test_unknown_subscription_activation_is_logged(webhooks, onboarding, caplog):
    await webhooks.handle(_webhook("SUBSCRIPTION_ACTIVATED", sub_id="sub_ghost"))
    assert onboarding.find_by_subscription("sub_ghost") is None
    assert "cannot provision onboarding" in caplog.text


@pytest.mark.asyncio
async def test_payment_events_update_the_subscription(webhooks, subscriptions):
    await webhooks.handle(_webhook("SUBSCRIPTION_PAYMENT_SUCCESS", payment={"id": "pay_1"}))
    await webhooks.handle(_webhook("SUBSCRIPTION_PAYMENT_FAILED", payment={"id": "pay_2"}))

    stored = subscriptions.get("sub_1")
    assert stored["payments"] == [{"id": "pay_1", "status": "PAID"}, {"id": "pay_2", "status": "FAILED"}]
    assert stored["status"] == "PAYMENT_FAILED"

    await webhooks.handle(_webhook("SUBSCRIPTION_CANCELED"))
    assert subscriptions.get("sub_1")["status"] == "CANCELED"


@pytest.mark.asyncio
async def test_created_event_keeps_existing_subscription(webhooks, subscriptions):
    await webhooks.handle(_webhook("SUBSCRIPTION_CREATED"))
    assert subscriptions.get("sub_1")["amount"] == 59700

    created = json.dumps(
        {
            "event_type": "SUBSCRIPTION_CREATED",
            "reference_id": "PLAYCODE_2",
            "data": {"subscription": {"id": "sub_2", "plan_id": "starter-pack", "amount": 29700}},
        }
    ).encode("utf-8")
    await webhooks.handle(created)
    assert subscriptions.get("sub_2")["status"] == "PENDING"
    assert subscriptions.get("sub_2")["reference_id"] == "PLAYCODE_2"


@pytest.mark.asyncio
async def test_unhandled_event_is_acknowledged(webhooks, event_log):
    result = await webhooks.handle(_webhook("SOMETHING_ELSE"))
    assert result["success"] is True
    assert event_log.of_type("something_else")


@pytest.mark.asyncio
async def test_payload_must_be_an_object(webhooks):
    with pytest.raises(ValidationError):
        await webhooks.handle(b"[1, 2]")


@pytest.mark.asyncio
async def test_signature_checked_in_production(webhooks, settings, event_log):
    settings.app.environment = "production"
    settings.payments.pagseguro_webhook_secret = "whsec"
    body = _webhook("SUBSCRIPTION_CANCELED")

    with pytest.raises(AuthenticationError) as exc_info:
        await webhooks.handle(body, signature="forged")
    assert exc_info.value.code == "INVALID_SIGNATURE"
    assert event_log.of_type("webhook_signature_invalid")

    signature = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()
    assert (await webhooks.handle(body, signature=signature))["success"] is True


@pytest.mark.asyncio
async def test_mock_activation(webhooks, subscriptions, onboarding):
    ignored = await webhooks.handle_mock({"event": "subscription.created", "data": {"status": "PENDING"}})
    assert ignored == {"success": True, "message": "Event not processed"}

    result = await webhooks.handle_mock(
        {
            "event": "subscription.activated",
            "data": {
                "id": "sub_1",
                "customer": {"name": "Ana Souza", "email": " Ana@Example.com "},
                "plan": {"id": "enterprise-legend"},
            },
        }
    )
    assert result["onboardingUrl"] == f"http://x/onboarding/{result['onboardingId']}"
    record = onboarding.require_onboarding(result["onboardingId"])
    assert record.customer_email == "ana@example.com"
    assert (record.service_type, record.plan_type) == ("automation", "enterprise")
    assert subscriptions.get("sub_1")["status"] == "ACTIVE"

    again = await webhooks.handle_mock({"status": "ACTIVE", "data": {"id": "sub_1"}})
    assert again["onboardingId"] == result["onboardingId"]


@pytest.mark.asyncio
async def test_handlers_require_a_subscription(webhooks, event_log):
    for body in (
        {"event_type": "SUBSCRIPTION_CREATED"},
        {"event_type": "SUBSCRIPTION_CANCELED", "data": "sub_1"},
        {"event_type": "SUBSCRIPTION_PAYMENT_SUCCESS", "data": {"subscription": {}}},
    ):
        with pytest.raises(ValidationError) as exc_info:
            await webhooks.handle(json.dumps(body).encode("utf-8"))
        assert exc_info.value.code == "INVALID_WEBHOOK_PAYLOAD"
    assert event_log.of_type("subscription_created")


@pytest.mark.asyncio
async def test_mock_activation_maps_unmatched_plans_to_enterprise(webhooks, onboarding):
    result = await webhooks.handle_mock(
        {
            "event": "subscription.activated",
            "data": {"id": "sub_biz", "customer": {"name": "Bia Lima", "email": "bia@example.com"}, "plan": {"id": "business-one"}},
        }
    )
    record = onboarding.require_onboarding(result["onboardingId"])
    assert (record.service_type, record.plan_type) == ("automation", "enterprise")

    odd = await webhooks.handle_mock(
        {"event": "subscription.activated", "data": {"id": "sub_odd", "customer": {"name": "Bia", "email": "b@x.com"}, "plan": "pro"}}
    )
    assert onboarding.require_onboarding(odd["onboardingId"]).plan_type == "enterprise"
