"""
PagSeguro recurring-payments client.

Every method returns a response dict instead of raising, mirroring the
gateway's own error envelope:
`{"success": False, "error": {"code", "message", "details"}}`.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from playcode.application.ports.payment_gateway_port import PaymentGatewayPort
from playcode.infrastructure.request_layer import JsonApiClient, RequestPolicy

logger = logging.getLogger(__name__)

PRODUCTION_URL = "https://api.pagseguro.com"
SANDBOX_URL = "https://sandbox.api.pagseguro.com"

PAYMENT_METHODS = [
    {"type": "CREDIT_CARD", "brands": ["VISA", "MASTERCARD", "AMEX", "ELO", "HIPERCARD"]},
    {"type": "BOLETO"},
    {"type": "PIX"},
]


def _ms() -> int:
    return int(time.time() * 1000)


def _network_error(error: Exception) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": "NETWORK_ERROR",
            "message": "Erro de conexão com PagSeguro",
            "details": [str(error)],
        },
    }


def _api_error(resp: httpx.Response, default_code: str, default_message: str) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    messages: List[Dict[str, Any]] = data.get("error_messages") or []
    first = messages[0] if messages else {}
    return {
        "success": False,
        "error": {
            "code": first.get("code") or default_code,
            "message": first.get("description") or default_message,
            "details": [m.get("description") for m in messages] or None,
        },
    }


def _link(data: Dict[str, Any], rel: str) -> Optional[str]:
    for link in data.get("links") or []:
        if link.get("rel") == rel:
            return link.get("href")
    return None


class PagSeguroClient(PaymentGatewayPort):
    def __init__(
        self,
        application_key: str,
        *,
        sandbox: bool = True,
        webhook_url: str = "",
        redirect_url: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sandbox = sandbox
        self.webhook_url = webhook_url
        self.redirect_url = redirect_url
        self.base_url = SANDBOX_URL if sandbox else PRODUCTION_URL
        self._api = JsonApiClient(
            self.base_url,
            headers={"Authorization": f"Bearer {application_key}", "Accept": "application/json"},
            policy=RequestPolicy(timeout_s=timeout, max_retries=1),
            transport=transport,
        )

    async def create_plan(self, plan: Dict[str, Any]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "reference_id": plan["id"],
            "name": plan["name"],
            "description": plan.get("description", ""),
            "amount": {"value": plan["monthly_amount"], "currency": plan.get("currency", "BRL")},
            "interval": {"length": 1, "unit": plan.get("interval", "MONTHLY")},
            "payment_methods": PAYMENT_METHODS,
        }
        if plan.get("setup_fee"):
            body["setup_fee"] = {"value": plan["setup_fee"], "currency": plan.get("currency", "BRL")}
        if plan.get("trial_period_days"):
            body["trial"] = {"enabled": True, "hold_setup_fee": False, "days": plan["trial_period_days"]}
        try:
            resp = await self._api.post("/recurring-payments/plans", json=body)
        except httpx.HTTPError as e:
            return _network_error(e)
        if resp.is_error:
            return _api_error(resp, "PLAN_CREATION_FAILED", "Erro ao criar plano")
        return {"success": True, "data": {**plan, "id": resp.json().get("id")}}

    async def create_subscription(self, subscription: Dict[str, Any]) -> Dict[str, Any]:
        customer = subscription["customer"]
        payment_method = subscription.get("payment_method") or {}
        method_body: Dict[str, Any] = {"type": payment_method.get("type", "CREDIT_CARD")}
        card = payment_method.get("credit_card")
        if card:
            method_body["card"] = {"token": card.get("token"), "holder_name": card.get("holder_name")}
        body = {
            "reference_id": subscription["reference_id"],
            "plan_id": subscription["plan"]["id"],
            "customer": {
                "name": customer["name"],
                "email": customer["email"],
                "tax_id": customer["document"],
                "phone": customer.get("phone"),
                "address": customer.get("address"),
            },
            "payment_method": method_body,
            "pro_rata": bool(subscription.get("pro_rata", False)),
            "webhook_urls": subscription.get("webhook_urls") or [self.webhook_url],
        }
        try:
            resp = await self._api.post("/recurring-payments/subscriptions", json=body)
        except httpx.HTTPError as e:
            return _network_error(e)
        if resp.is_error:
            return _api_error(resp, "SUBSCRIPTION_CREATION_FAILED", "Erro ao criar assinatura")
        data = resp.json()
        return {
            "success": True,
            "data": {
                "id": data.get("id"),
                "reference_id": data.get("reference_id"),
                "status": data.get("status"),
                "plan": subscription["plan"],
                "customer": customer,
                "payment_method": payment_method,
                "links": data.get("links") or [],
                "checkout_url": _link(data, "CHECKOUT"),
            },
        }

    async def create_checkout_session(self, plan: Dict[str, Any], customer_email: str) -> Dict[str, Any]:
        session_id = f"checkout_{_ms()}_{uuid.uuid4().hex[:6]}"
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=30)
        body = {
            "reference_id": session_id,
            "customer": {"email": customer_email},
            "items": [
                {
                    "reference_id": plan["id"],
                    "name": plan["name"],
                    "quantity": 1,
                    "unit_amount": plan["monthly_amount"],
                }
            ],
            "payment_methods": [{"type": "CREDIT_CARD"}, {"type": "BOLETO"}, {"type": "PIX"}],
            "expiration_date": expires_at.isoformat(),
            "redirect_url": self.redirect_url,
            "notification_urls": [self.webhook_url],
        }
        try:
            resp = await self._api.post("/checkouts", json=body)
        except httpx.HTTPError as e:
            return _network_error(e)
        if resp.is_error:
            return _api_error(resp, "CHECKOUT_CREATION_FAILED", "Erro ao criar checkout")
        data = resp.json()
        return {
            "success": True,
            "data": {
                "id": data.get("id") or session_id,
                "plan_id": plan["id"],
                "customer_email": customer_email,
                "amount": plan["monthly_amount"],
                "payment_method": "CREDIT_CARD",
                "checkout_url": _link(data, "PAY"),
                "expires_at": expires_at.isoformat(),
            },
        }

    async def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        try:
            resp = await self._api.post(
                f"/recurring-payments/subscriptions/{subscription_id}/cancel",
                json={"cancel_reason": "CUSTOMER_REQUEST"},
            )
        except httpx.HTTPError as e:
            return _network_error(e)
        if resp.is_error:
            return _api_error(resp, "CANCELLATION_FAILED", "Erro ao cancelar assinatura")
        return {"success": True, "data": True}

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        try:
            resp = await self._api.get(f"/recurring-payments/subscriptions/{subscription_id}")
        except httpx.HTTPError as e:
            return _network_error(e)
        if resp.is_error:
            return _api_error(resp, "SUBSCRIPTION_NOT_FOUND", "Assinatura não encontrada")
        return {"success": True, "data": resp.json()}


class MockPaymentGateway(PaymentGatewayPort):
    """Sandbox stand-in used when no application key is configured."""

    CHECKOUT_URL = "https://sandbox.pagseguro.uol.com.br/application/checkout.jhtml?code={id}"

    def __init__(self) -> None:
        self.subscriptions: Dict[str, Dict[str, Any]] = {}

    async def create_plan(self, plan: Dict[str, Any]) -> Dict[str, Any]:
        return {"success": True, "data": {**plan, "id": plan.get("id") or f"plan_mock_{_ms()}"}}

    async def create_subscription(self, subscription: Dict[str, Any]) -> Dict[str, Any]:
        sub_id = f"sub_mock_{_ms()}_{uuid.uuid4().hex[:6]}"
        data = {
            "id": sub_id,
            "reference_id": subscription["reference_id"],
            "status": "PENDING",
            "plan": subscription["plan"],
            "customer": subscription["customer"],
            "payment_method": subscription.get("payment_method") or {},
            "links": [{"rel": "CHECKOUT", "href": self.CHECKOUT_URL.format(id=sub_id)}],
            "checkout_url": self.CHECKOUT_URL.format(id=sub_id),
            "mock": True,
        }
        self.subscriptions[sub_id] = data
        logger.info(f"Mock subscription created: {sub_id}")
        return {"success": True, "data": data}

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        data = self.subscriptions.get(subscription_id)
        if data is None:
            return {
                "success": False,
                "error": {"code": "SUBSCRIPTION_NOT_FOUND", "message": "Assinatura não encontrada", "details": None},
            }
        return {"success": True, "data": data}

    async def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        if subscription_id in self.subscriptions:
            self.subscriptions[subscription_id]["status"] = "CANCELED"
        return {"success": True, "data": True}

    @staticmethod
    def card_token() -> str:
        return f"mock_token_{_ms()}"
