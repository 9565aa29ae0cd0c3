from __future__ import annotations

import re

from fastapi.testclient import TestClient

from playcode.api.main import create_app
from playcode.application.bootstrap import build_container
from playcode.application.services.admin_service import ADMIN_COOKIE
from playcode.application.services.chatbot_service import ChatbotService
from playcode.infrastructure.notifications.email_senders import InMemoryEmailSender
from playcode.infrastructure.payments.pagseguro_client import MockPaymentGateway

ADMIN_TOKEN = "admin-approval-token"
CUSTOMER = {"name": "Ana Souza", "email": "ana@example.com", "document": "12345678909", "phone": "11999999999"}


def _contact(**overrides):
    body = {
        "name": "Ana Souza",
        "email": "ana@example.com",
        "message": "Queremos um e-commerce com integração de pagamentos.",
        "project_type": "ecommerce",
        "budget_range": "medium",
        "urgency": "normal",
    }
    body.update(overrides)
    return body


def test_health_and_security_headers(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert "ws://localhost:*" in resp.headers["Content-Security-Policy"]
    assert "Strict-Transport-Security" not in resp.headers


def test_contact_submission(client, email_sender):
    resp = client.post("/api/contact", json=_contact(), headers={"x-forwarded-for": "203.0.113.7"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["status"] == "received"
    assert len(email_sender.sent) == 1

    bad = client.post("/api/contact", json=_contact(email="nope"))
    assert bad.status_code == 400
    assert bad.json()["error"]["code"] == "VALIDATION_ERROR"

    assert client.get("/api/contact").json()["status"] == "online"


def test_blocked_ips_only_enforced_outside_development(settings):
    settings.security.blocked_ips = ["6.6.6.6"]
    headers = {"x-real-ip": "6.6.6.6"}

    for environment, expected in (("development", 200), ("production", 403)):
        settings.app.environment = environment
        container = build_container(settings, email_sender=InMemoryEmailSender(), payment_gateway=MockPaymentGateway())
        with TestClient(create_app(settings, container)) as test_client:
            resp = test_client.post("/api/contact", json=_contact(), headers=headers)
        assert resp.status_code == expected

    assert resp.json()["error"]["code"] == "ACCESS_DENIED"


def test_contact_malformed_json(client):
    resp = client.post("/api/contact", content=b"{nope", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_plans_and_addons(client):
    plans = client.get("/api/payment/plans").json()["data"]
    assert len(plans) == 4
    assert client.get("/api/payment/plans", params={"plan_id": "nope"}).status_code == 404

    seo = client.get("/api/payment/addons", params={"id": "seo-boost"}).json()["data"]
    assert seo["price"] == 200000

    for path in ("/api/payment/checkout", "/api/payment/checkout-mock"):
        bad = client.post(path, json={"plan_id": "starter-pack", "customer": "ana", "payment_method": {"type": "PIX"}})
        assert bad.status_code == 400
        assert bad.json()["error"]["code"] == "INVALID_CUSTOMER_DATA"

    order = client.post("/api/payment/addons", json={"addon_id": "seo-boost"})
    assert order.status_code == 200
    assert order.json()["data"]["status"] == "PENDING"
    assert client.post("/api/payment/addons", json={}).status_code == 400


def test_checkout_to_onboarding_flow(client, email_sender):
    checkout = client.post(
        "/api/payment/checkout-mock",
        json={"plan_id": "pro-guild", "customer": CUSTOMER, "billing_cycle": "monthly"},
    )
    assert checkout.status_code == 200
    subscription_id = checkout.json()["data"]["subscription_id"]

    listed = client.get("/api/payment/checkout", params={"customer_email": "ana@example.com"}).json()["data"]
    assert [s["id"] for s in listed] == [subscription_id]

    activated = client.post(
        "/api/webhooks/pagseguro-mock",
        json={
            "event": "subscription.activated",
            "data": {"id": subscription_id, "customer": CUSTOMER, "plan": {"id": "pro-guild"}},
        },
    ).json()
    onboarding_id = activated["onboardingId"]
    assert activated["onboardingUrl"].endswith(f"/onboarding/{onboarding_id}")
    assert email_sender.sent[-1].tags == ["welcome"]

    record = client.get(f"/api/onboarding/{onboarding_id}").json()["data"]
    assert record["serviceType"] == "ecommerce"
    assert record["planType"] == "pro"

    steps = client.get(f"/api/onboarding/{onboarding_id}/steps").json()["data"]
    assert steps["steps"]

    saved = client.put(f"/api/onboarding/{onboarding_id}", json={"currentStep": 2, "formData": {"a": 1}})
    assert saved.json()["message"] == "Progresso salvo com sucesso"

    missing = client.put(f"/api/onboarding/{onboarding_id}", json={"isCompleted": True})
    assert missing.status_code == 400
    assert missing.json()["error"]["code"] == "MISSING_FORM_DATA"

    done = client.put(
        f"/api/onboarding/{onboarding_id}", json={"isCompleted": True, "formData": {"domain": {"hasExisting": True}}}
    )
    assert done.json()["message"] == "Onboarding concluído com sucesso!"
    assert done.json()["data"]["isCompleted"] is True

    exported = client.post("/api/export/onboarding", params={"format": "html"}, json={"onboardingId": onboarding_id})
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("text/html")
    assert "attachment" in exported.headers["content-disposition"]

    assert client.delete(f"/api/onboarding/{onboarding_id}").status_code == 200
    assert client.get(f"/api/onboarding/{onboarding_id}").status_code == 404


def test_pagseguro_webhook_endpoints(client):
    assert client.get("/api/webhooks/pagseguro").json()["status"] == "active"
    resp = client.post("/api/webhooks/pagseguro", json={"event_type": "SUBSCRIPTION_CANCELED", "data": {"subscription": {"id": "x"}}})
    assert resp.json() == {"success": True, "message": "Webhook processed successfully"}

    broken = client.post("/api/webhooks/pagseguro", content=b"<xml/>")
    assert broken.status_code == 500

    shapeless = client.post("/api/webhooks/pagseguro", json={"event_type": "SUBSCRIPTION_CREATED"})
    assert shapeless.status_code == 500
    assert shapeless.json() == {"success": False, "error": "Webhook processing failed"}


def test_admin_requires_session_in_production(client, settings):
    assert client.get("/api/admin/onboarding").status_code == 200

    settings.app.environment = "production"
    denied = client.get("/api/admin/onboarding")
    assert denied.status_code == 401
    assert denied.json()["error"]["code"] == "ADMIN_REQUIRED"

    assert client.post("/api/admin/login", json={"username": "admin", "password": "nope"}).status_code == 401

    login = client.post("/api/admin/login", json={"username": "admin", "password": "s3cret-pass"})
    assert login.status_code == 200
    session = login.cookies[ADMIN_COOKIE]
    assert "httponly" in login.headers["set-cookie"].lower()

    board = client.get("/api/admin/onboarding", headers={"cookie": f"{ADMIN_COOKIE}={session}"})
    assert board.status_code == 200
    assert board.json()["stats"]["total"] == 0

    analytics = client.get("/api/crm/analytics", headers={"cookie": f"{ADMIN_COOKIE}={session}"})
    assert analytics.json()["enabled"] is False


def test_approval_flow(client, email_sender):
    sent = client.post(
        "/api/approval/send",
        json={
            "adminToken": ADMIN_TOKEN,
            "customerName": "Ana Souza",
            "customerEmail": "ana@example.com",
            "projectType": "E-commerce",
            "projectDescription": "Loja virtual completa com integrações",
            "budgetRange": "R$ 10k - 20k",
            "estimatedValue": 15000,
            "timeline": "60 dias",
            "services": ["Design"],
        },
    )
    assert sent.status_code == 200
    token = re.search(r"/aprovacao/([A-Za-z0-9_\-.]+)", email_sender.sent[0].html).group(1)

    assert client.get(f"/api/approval/{token}").json()["data"]["status"] == "pending"
    assert client.post(f"/api/approval/{token}", json={"action": "maybe"}).status_code == 400

    decided = client.post(f"/api/approval/{token}", json={"action": "approve"})
    assert decided.status_code == 200
    assert decided.json()["data"]["action"] == "approve"
    assert client.post(f"/api/approval/{token}", json={"action": "reject"}).status_code == 409

    assert client.post("/api/approval/send", json={"adminToken": "guess"}).status_code == 401
    assert client.get("/api/approval/not-a-token").status_code == 400


def test_upload_and_delete(client):
    resp = client.post("/api/upload", files={"file": ("briefing.pdf", b"%PDF-1.4 briefing", "application/pdf")})
    assert resp.status_code == 200
    stored = resp.json()["data"]
    assert stored["category"] == "document"

    assert client.post("/api/upload", files={"file": ("x.exe", b"MZ", "application/x-msdownload")}).status_code == 400
    assert client.delete("/api/upload", params={"fileName": stored["fileName"]}).status_code == 200
    assert client.delete("/api/upload", params={"fileName": stored["fileName"]}).status_code == 404
    assert client.delete("/api/upload", params={"fileName": "../x"}).status_code == 400


def test_chatbot_offline(client):
    assert client.get("/api/chatbot").json()["status"] == "offline"
    resp = client.post("/api/chatbot", json={"message": "oi"})
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "CHATBOT_OFFLINE"


def test_chatbot_online(client, container, fake_llm):
    container.resolve(ChatbotService).provider = fake_llm
    resp = client.post("/api/chatbot", json={"message": "Quero um game"})
    assert resp.status_code == 200
    assert resp.json()["response"] == fake_llm.reply


def test_analytics(client):
    tracked = client.post("/api/analytics", json={"event": "konami_code_entered", "category": "gaming", "action": "entered"})
    assert tracked.json()["achievements"] == ["secret_discoverer"]
    dashboard = client.get("/api/analytics", params={"timeframe": "1h"}).json()
    assert dashboard["metadata"]["totalEvents"] == 1


def test_crm_webhook_endpoints(client):
    assert client.get("/api/crm/webhook", params={"provider": "hubspot", "challenge": "abc"}).text == "abc"
    assert client.post("/api/crm/webhook", json={}).status_code == 401
    assert client.post("/api/crm/webhook", params={"provider": "zoho"}, json={}).status_code == 400
    unconfigured = client.post("/api/crm/webhook", json={}, headers={"x-hubspot-signature": "s"})
    assert unconfigured.status_code == 401
    assert unconfigured.json()["error"]["code"] == "INVALID_WEBHOOK"
