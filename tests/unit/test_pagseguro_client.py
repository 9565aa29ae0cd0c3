from __future__ import annotations

import json

import httpx
import pytest

from playcode.domain.plans import get_plan, to_gateway_plan
from playcode.infrastructure.payments.pagseguro_client import (
    SANDBOX_URL,
    MockPaymentGateway,
    PagSeguroClient,
)

CUSTOMER = {"name": "Ana Souza", "email": "ana@example.com", "document": "12345678909", "phone": "11999999999"}


def _client(handler, **kwargs):
    kwargs.setdefault("webhook_url", "https://playcode.agency/api/webhooks/pagseguro")
    return PagSeguroClient("app-key", transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_create_plan_sends_trial_for_starter():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "PLAN_1"})

    client = _client(handler)
    result = await client.create_plan(to_gateway_plan(get_plan("starter-pack")))

    assert client.base_url == SANDBOX_URL
    assert result["success"] is True
    assert result["data"]["id"] == "PLAN_1"
    assert seen["auth"] == "Bearer app-key"
    assert seen["body"]["trial"]["days"] == 7
    assert seen["body"]["interval"] == {"length": 1, "unit": "MONTHLY"}


@pytest.mark.asyncio
async def test_create_subscription_extracts_checkout_link():
    def handler(request):
        body = json.loads(request.content)
        assert body["customer"]["tax_id"] == "12345678909"
        assert body["webhook_urls"] == ["https://playcode.agency/api/webhooks/pagseguro"]
        return httpx.Response(
            201,
            json={
                "id": "SUBS_1",
                "reference_id": body["reference_id"],
                "status": "PENDING",
                "links": [{"rel": "SELF", "href": "x"}, {"rel": "CHECKOUT", "href": "https://pay/1"}],
            },
        )

    result = await _client(handler).create_subscription(
        {
            "reference_id": "ref-1",
            "plan": {"id": "PLAN_1"},
            "customer": CUSTOMER,
            "payment_method": {"type": "CREDIT_CARD", "credit_card": {"token": "tok", "holder_name": "ANA"}},
        }
    )
    assert result["success"] is True
    assert result["data"]["id"] == "SUBS_1"
    assert result["data"]["checkout_url"] == "https://pay/1"


@pytest.mark.asyncio
async def test_api_error_envelope():
    def handler(request):
        return httpx.Response(
            400,
            json={"error_messages": [{"code": "40002", "description": "invalid_parameter"}, {"description": "tax_id"}]},
        )

    result = await _client(handler).cancel_subscription("SUBS_1")
    assert result == {
        "success": False,
        "error": {"code": "40002", "message": "invalid_parameter", "details": ["invalid_parameter", "tax_id"]},
    }


@pytest.mark.asyncio
async def test_error_without_body_uses_defaults():
    result = await _client(lambda request: httpx.Response(404, text="not json")).get_subscription("nope")
    assert result["error"] == {"code": "SUBSCRIPTION_NOT_FOUND", "message": "Assinatura não encontrada", "details": None}


@pytest.mark.asyncio
async def test_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    client._api.policy.max_retries = 0
    result = await client.create_checkout_session(to_gateway_plan(get_plan("pro-guild")), "ana@example.com")
    assert result["error"]["code"] == "NETWORK_ERROR"
    assert result["error"]["details"] == ["refused"]


@pytest.mark.asyncio
async def test_mock_gateway_lifecycle():
    gateway = MockPaymentGateway()
    created = await gateway.create_subscription(
        {"reference_id": "ref-1", "plan": {"id": "business-one"}, "customer": CUSTOMER}
    )
    sub_id = created["data"]["id"]

    assert sub_id.startswith("sub_mock_")
    assert created["data"]["checkout_url"].endswith(f"code={sub_id}")
    assert (await gateway.get_subscription(sub_id))["data"]["status"] == "PENDING"

    await gateway.cancel_subscription(sub_id)
    assert gateway.subscriptions[sub_id]["status"] == "CANCELED"
    assert (await gateway.get_subscription("missing"))["success"] is False
    assert MockPaymentGateway.card_token().startswith("mock_token_")
