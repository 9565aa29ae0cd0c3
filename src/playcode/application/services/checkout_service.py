"""
Plans, power-ups and subscription checkout.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from playcode.application.events import PAYMENT, make_event
from playcode.application.ports.event_log_port import EventLogPort
from playcode.application.ports.payment_gateway_port import PaymentGatewayPort
from playcode.config.settings import Settings
from playcode.core.errors import NotFoundError, PaymentError, ValidationError
from playcode.domain.plans import (
    GAME_PLANS,
    POWER_UPS,
    apply_promo,
    calculate_plan_price,
    format_price,
    get_plan,
    get_power_up,
    plan_with_pricing,
    to_gateway_plan,
)
from playcode.infrastructure.stores.subscription_store import SqlAlchemySubscriptionStore

logger = logging.getLogger(__name__)

REQUIRED_CUSTOMER_FIELDS = ("name", "email", "document", "phone")
DEMO_PAYMENT_LINK = "https://sandbox.pagseguro.uol.com.br/checkout/payment/direct-payment.jhtml?code=DEMO_{pagseguro_id}"
DEFAULT_ADDRESS = {
    "street": "Rua Principal",
    "number": "123",
    "district": "Centro",
    "city": "São Paulo",
    "state": "SP",
    "postal_code": "01000000",
    "country": "BRA",
}


def _ms() -> int:
    return int(time.time() * 1000)


def _digits(value: Any) -> str:
    return re.sub(r"\D", "", str(value or ""))


class CheckoutService:
    def __init__(
        self,
        store: SqlAlchemySubscriptionStore,
        gateway: PaymentGatewayPort,
        mock_gateway: PaymentGatewayPort,
        *,
        settings: Optional[Settings] = None,
        event_log: Optional[EventLogPort] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.mock_gateway = mock_gateway
        self.settings = settings or Settings()
        self.event_log = event_log

    @property
    def app_url(self) -> str:
        return self.settings.app.app_url.rstrip("/")

    # catalog

    def list_plans(self, plan_id: Optional[str] = None) -> Any:
        if plan_id:
            plan = get_plan(plan_id)
            if plan is None:
                raise NotFoundError("Plano não encontrado", code="PLAN_NOT_FOUND")
            return plan_with_pricing(plan)
        return [plan_with_pricing(plan) for plan in GAME_PLANS]

    def _power_up_view(self, power_up: Dict[str, Any]) -> Dict[str, Any]:
        if self.settings.is_development:
            link = DEMO_PAYMENT_LINK.format(pagseguro_id=power_up["pagseguro_id"])
        else:
            link = f"{self.app_url}/checkout/addon/{power_up['id']}"
        return {**power_up, "price_formatted": format_price(power_up["price"]), "payment_link": link}

    def list_power_ups(self, power_up_id: Optional[str] = None) -> Any:
        if power_up_id:
            power_up = get_power_up(power_up_id)
            if power_up is None:
                raise NotFoundError("Power-up não encontrado", code="ADDON_NOT_FOUND")
            return self._power_up_view(power_up)
        return [self._power_up_view(p) for p in POWER_UPS]

    def create_addon_order(self, addon_id: str, customer_info: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        power_up = get_power_up(addon_id)
        if power_up is None:
            raise NotFoundError("Power-up não encontrado", code="ADDON_NOT_FOUND")

        now = datetime.now(timezone.utc)
        checkout_url = f"{self.app_url}/checkout/addon/{power_up['id']}"
        order = {
            "id": f"addon_order_{_ms()}",
            "status": "PENDING",
            "reference_id": f"POWERUP_{power_up['id'].upper()}_{_ms()}",
            "description": f"{power_up['name']} - {power_up['description']}",
            "amount": {"value": power_up["price"], "currency": "BRL"},
            "checkout_url": checkout_url,
            "links": [{"rel": "APPROVE", "href": checkout_url}],
            "expiration_date": (now + timedelta(days=7)).isoformat(),
            "created_at": now.isoformat(),
        }
        if customer_info:
            order["customer"] = customer_info
        logger.info(f"Power-up order created: {order['id']} ({power_up['id']})")
        return order

    # checkout

    async def checkout(self, body: Dict[str, Any], *, mock: bool = False) -> Dict[str, Any]:
        plan_id = body.get("plan_id")
        customer = body.get("customer")
        payment_method = body.get("payment_method")
        if not plan_id or not customer or (not payment_method and not mock):
            raise ValidationError(
                "Dados obrigatórios não fornecidos",
                code="MISSING_REQUIRED_FIELDS",
                context={"required": ["plan_id", "customer", "payment_method"]},
            )

        plan = get_plan(plan_id)
        if plan is None:
            raise NotFoundError("Plano não encontrado", code="PLAN_NOT_FOUND")

        if not isinstance(customer, dict):
            raise ValidationError(
                "Dados do cliente incompletos",
                code="INVALID_CUSTOMER_DATA",
                context={"missing_fields": list(REQUIRED_CUSTOMER_FIELDS)},
            )
        missing = [f for f in REQUIRED_CUSTOMER_FIELDS if not customer.get(f)]
        if missing:
            raise ValidationError(
                "Dados do cliente incompletos", code="INVALID_CUSTOMER_DATA", context={"missing_fields": missing}
            )

        billing_cycle = "ANNUAL" if str(body.get("billing_cycle") or "").upper() == "ANNUAL" else "MONTHLY"
        annual = billing_cycle == "ANNUAL"
        pricing = calculate_plan_price(plan_id, annual=annual)
        setup_fee = apply_promo(pricing["setup_fee"], body.get("promo_code"))

        gateway_plan = to_gateway_plan(plan)
        gateway_plan.update(
            {
                "id": f"pagseguro_{plan_id}_{billing_cycle}",
                "name": f"{plan['name']} - {'Anual' if annual else 'Mensal'}",
                "setup_fee": setup_fee,
                "monthly_amount": pricing["annual_price"] / 12 if annual else pricing["monthly_price"],
            }
        )

        email = str(customer["email"]).strip().lower()
        gateway_customer = {
            "id": f"customer_{_ms()}_{uuid.uuid4().hex[:6]}",
            "name": customer["name"],
            "email": email,
            "phone": customer["phone"],
            "document": _digits(customer["document"]),
            "birth_date": customer.get("birth_date"),
            "address": customer.get("address") or dict(DEFAULT_ADDRESS),
        }
        request = {
            "reference_id": f"subscription_{_ms()}_{email.split('@')[0]}",
            "plan": gateway_plan,
            "customer": gateway_customer,
            "payment_method": payment_method or {"type": "CREDIT_CARD"},
            "pro_rata": False,
            "webhook_urls": [f"{self.app_url}/api/webhooks/pagseguro"],
        }

        gateway = self.mock_gateway if mock else self.gateway
        result = await gateway.create_subscription(request)
        if not result.get("success"):
            error = result.get("error") or {}
            raise PaymentError(
                error.get("message") or "Erro ao criar assinatura",
                code=error.get("code") or "SUBSCRIPTION_CREATION_FAILED",
                context={"details": error["details"]} if error.get("details") else None,
            )

        data = result["data"]
        is_mock = bool(data.get("mock"))
        self.store.upsert(
            {
                "id": data["id"],
                "reference_id": data.get("reference_id") or request["reference_id"],
                "plan_id": plan_id,
                "billing_cycle": billing_cycle,
                "customer_email": email,
                "customer_name": customer["name"],
                "customer": {k: v for k, v in gateway_customer.items() if k != "address"},
                "amount": int(round(gateway_plan["monthly_amount"])),
                "setup_fee": setup_fee,
                "status": "PENDING",
                "checkout_url": data.get("checkout_url"),
                "mock": is_mock,
            }
        )
        if self.event_log is not None:
            self.event_log.append(
                make_event(
                    category=PAYMENT,
                    type="checkout_created",
                    source="checkout_service",
                    payload={"subscription_id": data["id"], "plan_id": plan_id, "billing_cycle": billing_cycle, "mock": is_mock},
                )
            )
        logger.info(f"Checkout created: {data['id']} ({plan_id}/{billing_cycle}) for {email}")

        response = {
            "subscription_id": data["id"],
            "checkout_url": data.get("checkout_url"),
            "reference_id": data.get("reference_id") or request["reference_id"],
            "status": data.get("status") or "PENDING",
            "plan": {
                "id": plan_id,
                "name": gateway_plan["name"],
                "billing_cycle": billing_cycle,
                "setup_fee": setup_fee,
                "monthly_amount": gateway_plan["monthly_amount"],
                "trial_period_days": gateway_plan.get("trial_period_days"),
            },
            "customer": {"id": gateway_customer["id"], "name": customer["name"], "email": email},
        }
        if is_mock:
            response["mock"] = True
        return response

    def list_subscriptions(self, customer_email: Optional[str]) -> List[Dict[str, Any]]:
        if not customer_email:
            raise ValidationError("Email do cliente é obrigatório", code="MISSING_EMAIL")
        return self.store.list_by_email(customer_email)
