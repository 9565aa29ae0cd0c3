"""
PagSeguro webhook intake and onboarding provisioning.

An activated subscription provisions exactly one onboarding record; replays
of the activation reuse it.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from playcode.application.events import PAYMENT, make_event
from playcode.application.ports.event_log_port import EventLogPort
from playcode.application.services.onboarding_service import OnboardingService
from playcode.config.settings import Settings
from playcode.core.errors import AuthenticationError, ValidationError
from playcode.domain.onboarding import OnboardingRecord, plan_mapping_for_subscription
from playcode.infrastructure.security.tokens import generate_customer_id
from playcode.infrastructure.stores.subscription_store import SqlAlchemySubscriptionStore

logger = logging.getLogger(__name__)

SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
SUBSCRIPTION_ACTIVATED = "SUBSCRIPTION_ACTIVATED"
SUBSCRIPTION_PAYMENT_SUCCESS = "SUBSCRIPTION_PAYMENT_SUCCESS"
SUBSCRIPTION_PAYMENT_FAILED = "SUBSCRIPTION_PAYMENT_FAILED"
SUBSCRIPTION_CANCELED = "SUBSCRIPTION_CANCELED"


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    expected = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8"))


class PaymentWebhookService:
    def __init__(
        self,
        subscriptions: SqlAlchemySubscriptionStore,
        onboarding: OnboardingService,
        *,
        settings: Optional[Settings] = None,
        event_log: Optional[EventLogPort] = None,
    ):
        self.subscriptions = subscriptions
        self.onboarding = onboarding
        self.settings = settings or Settings()
        self.event_log = event_log
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            SUBSCRIPTION_CREATED: self._subscription_created,
            SUBSCRIPTION_ACTIVATED: self._subscription_activated,
            SUBSCRIPTION_PAYMENT_SUCCESS: self._payment_success,
            SUBSCRIPTION_PAYMENT_FAILED: self._payment_failed,
            SUBSCRIPTION_CANCELED: self._subscription_canceled,
        }

    def _record(self, type: str, payload: Dict[str, Any]) -> None:
        if self.event_log is not None:
            self.event_log.append(make_event(category=PAYMENT, type=type, source="pagseguro", payload=payload))

    async def handle(self, raw_body: bytes, signature: str = "") -> Dict[str, Any]:
        if self.settings.is_production:
            secret = self.settings.payments.pagseguro_webhook_secret
            if not secret or not verify_signature(raw_body, signature, secret):
                logger.error("Invalid PagSeguro webhook signature")
                self._record("webhook_signature_invalid", {})
                raise AuthenticationError("Invalid signature", code="INVALID_SIGNATURE")

        webhook = json.loads(raw_body)
        if not isinstance(webhook, dict):
            raise ValidationError("Webhook payload must be an object")

        event_type = str(webhook.get("event_type") or "")
        data = webhook.get("data")
        subscription = data.get("subscription") if isinstance(data, dict) else None
        if not isinstance(subscription, dict):
            subscription = {}
        logger.info(
            f"PagSeguro webhook {event_type} (reference {webhook.get('reference_id')}, subscription {subscription.get('id')})"
        )
        self._record(
            event_type.lower() or "unknown",
            {"reference_id": webhook.get("reference_id"), "subscription_id": subscription.get("id")},
        )

        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled webhook event type: {event_type}")
        else:
            await handler(webhook)
        return {"success": True, "message": "Webhook processed successfully"}

    # event handlers

    @staticmethod
    def _subscription(webhook: Dict[str, Any]) -> Dict[str, Any]:
        data = webhook.get("data")
        sub = data.get("subscription") if isinstance(data, dict) else None
        if not isinstance(sub, dict) or not sub.get("id"):
            raise ValidationError("Webhook data.subscription.id is required", code="INVALID_WEBHOOK_PAYLOAD")
        return sub

    @staticmethod
    def _payment(webhook: Dict[str, Any]) -> Dict[str, Any]:
        payment = webhook["data"].get("payment")
        return payment if isinstance(payment, dict) else {}

    async def _subscription_created(self, webhook: Dict[str, Any]) -> None:
        sub = self._subscription(webhook)
        if self.subscriptions.get(sub["id"]) is None:
            self.subscriptions.upsert(
                {
                    "id": sub["id"],
                    "reference_id": webhook.get("reference_id") or "",
                    "plan_id": sub.get("plan_id") or "",
                    "amount": int(sub.get("amount") or 0),
                    "status": sub.get("status") or "PENDING",
                }
            )

    async def _subscription_activated(self, webhook: Dict[str, Any]) -> None:
        sub = self._subscription(webhook)
        stored = self.subscriptions.set_status(sub["id"], "ACTIVE")
        if stored is None:
            logger.warning(f"Activated subscription {sub['id']} is unknown; cannot provision onboarding")
            return
        customer = {"name": stored["customer_name"], "email": stored["customer_email"], **stored.get("customer", {})}
        await self.provision_onboarding(sub["id"], customer, stored["plan_id"], amount=stored.get("amount") or 0)

    async def _payment_success(self, webhook: Dict[str, Any]) -> None:
        sub = self._subscription(webhook)
        payment = self._payment(webhook)
        self.subscriptions.add_payment(sub["id"], {**payment, "status": payment.get("status") or "PAID"})

    async def _payment_failed(self, webhook: Dict[str, Any]) -> None:
        sub = self._subscription(webhook)
        payment = self._payment(webhook)
        self.subscriptions.add_payment(sub["id"], {**payment, "status": payment.get("status") or "FAILED"})
        self.subscriptions.set_status(sub["id"], "PAYMENT_FAILED")

    async def _subscription_canceled(self, webhook: Dict[str, Any]) -> None:
        sub = self._subscription(webhook)
        self.subscriptions.set_status(sub["id"], "CANCELED")

    # provisioning

    async def provision_onboarding(
        self,
        subscription_id: str,
        customer: Dict[str, Any],
        plan_id: str,
        *,
        amount: float = 0,
    ) -> Tuple[OnboardingRecord, bool]:
        """Returns the onboarding for the subscription and whether it was created now."""
        existing = self.onboarding.find_by_subscription(subscription_id)
        if existing is not None:
            logger.info(f"Subscription {subscription_id} already provisioned as {existing.id}")
            return existing, False

        service_type, plan_type = plan_mapping_for_subscription(plan_id)
        email = str(customer.get("email") or "").strip().lower()
        record = self.onboarding.create_onboarding(
            {
                "customer_id": generate_customer_id(email),
                "customer_name": customer.get("name") or "",
                "customer_email": email,
                "customer_phone": customer.get("phone") or None,
                "service_type": service_type,
                "plan_type": plan_type,
                "payment_id": subscription_id,
                "subscription_id": subscription_id,
                "amount": amount,
                "status": "paid",
            }
        )
        self.subscriptions.upsert({"id": subscription_id, "onboarding_id": record.id})

        await self.onboarding.send_welcome(record)
        self.onboarding.schedule_follow_up_reminders(record.id)
        self._record("onboarding_provisioned", {"subscription_id": subscription_id, "onboarding_id": record.id})
        return record, True

    async def handle_mock(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Local stand-in for the activation webhook, used by the sandbox checkout."""
        event = body.get("event") or body.get("event_type")
        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        if event != "subscription.activated" and data.get("status", body.get("status")) != "ACTIVE":
            logger.info(f"Mock webhook ignored: {event}")
            return {"success": True, "message": "Event not processed"}

        customer = data.get("customer") if isinstance(data.get("customer"), dict) else {}
        plan = data.get("plan") if isinstance(data.get("plan"), dict) else {}
        subscription_id = str(data.get("id") or f"sub_mock_{int(datetime.now(timezone.utc).timestamp() * 1000)}")
        if self.subscriptions.get(subscription_id) is not None:
            self.subscriptions.set_status(subscription_id, "ACTIVE")

        record, _ = await self.provision_onboarding(subscription_id, customer, str(plan.get("id") or ""))
        return {
            "success": True,
            "onboardingId": record.id,
            "onboardingUrl": self.onboarding.onboarding_url(record.id),
        }
