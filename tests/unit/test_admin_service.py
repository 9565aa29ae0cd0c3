from __future__ import annotations

import pytest

from playcode.application.services.admin_service import AdminAuth, AdminOnboardingService
from playcode.application.services.onboarding_service import OnboardingService
from playcode.core.errors import AuthenticationError, ConfigurationError, NotFoundError, ValidationError
from playcode.infrastructure.security.monitor import SecurityMonitor
from playcode.infrastructure.security.tokens import TokenManager
from playcode.infrastructure.stores.onboarding_store import SqlAlchemyOnboardingStore


@pytest.fixture
def auth(settings, event_log):
    return AdminAuth(TokenManager("test-secret"), settings, SecurityMonitor(event_log))


@pytest.fixture
def onboarding(db_url):
    return OnboardingService(SqlAlchemyOnboardingStore(db_url))


@pytest.fixture
def admin(onboarding):
    return AdminOnboardingService(onboarding)


def _record(onboarding, **overrides):
    data = {
        "customer_id": "cust_1",
        "customer_name": "Ana Souza",
        "customer_email": "ana@example.com",
        "service_type": "website",
        "plan_type": "starter",
        "payment_id": "pay_1",
        "amount": 797.0,
        "status": "paid",
    }
    data.update(overrides)
    return onboarding.create_onboarding(data)


def test_login_issues_a_session(auth, settings):
    cookie = auth.login("admin", "s3cret-pass", ip="10.0.0.1")
    assert auth.verify_session(cookie)
    assert not auth.verify_session(cookie + "x")
    assert not auth.verify_session(None)
    assert auth.session_seconds == 24 * 3600
    assert not auth.required

    settings.app.environment = "production"
    assert auth.required


def test_approval_tokens_are_not_sessions(auth):
    token = auth.tokens.generate_token("cust_1", "ana@example.com", "Site")
    assert not auth.verify_session(token)


def test_login_failures(auth, settings, event_log):
    with pytest.raises(AuthenticationError) as exc_info:
        auth.login("admin", "wrong", ip="6.6.6.6", user_agent="curl/8")
    assert exc_info.value.code == "INVALID_CREDENTIALS"
    (event,) = event_log.of_type("unauthorized_admin")
    assert event["payload"] == {"user_agent": "curl/8", "reason": "invalid_credentials"}

    settings.security.admin_password = ""
    with pytest.raises(ConfigurationError) as exc_info:
        auth.login("admin", "")
    assert exc_info.value.code == "ADMIN_NOT_CONFIGURED"


def test_board_filters_and_stats(admin, onboarding):
    first = _record(onboarding)
    _record(onboarding, service_type="ecommerce", plan_type="pro")
    _record(onboarding, service_type="ecommerce", plan_type="enterprise")
    onboarding.complete_onboarding(first.id, {"a": 1})

    board = admin.board()
    assert len(board["onboardings"]) == 3
    stats = board["stats"]
    assert (stats["total"], stats["completed"], stats["pending"]) == (3, 1, 2)
    assert stats["conversionRate"] == 33
    assert stats["byService"]["ecommerce"] == 2
    assert stats["byService"]["mobile"] == 0
    assert stats["byPlan"] == {"starter": 1, "pro": 1, "enterprise": 1}

    assert [o["id"] for o in admin.board(filter="completed")["onboardings"]] == [first.id]
    pending_pro = admin.board(filter="pending", service_type="ecommerce", plan_type="pro")["onboardings"]
    assert [o["planType"] for o in pending_pro] == ["pro"]
    assert len(admin.board(service_type="all", plan_type="all")["onboardings"]) == 3
    assert admin.board(filter="completed", service_type="mobile")["stats"]["total"] == 3


def test_empty_board(admin):
    assert admin.board()["stats"]["conversionRate"] == 0


def test_detail_and_actions(admin, onboarding):
    record = _record(onboarding)
    assert admin.detail(record.id)["customerEmail"] == "ana@example.com"
    with pytest.raises(NotFoundError):
        admin.detail("missing")

    exported = admin.perform("export", record.id)
    assert exported["message"] == "Dados exportados com sucesso"

    updated = admin.perform("update_status", record.id, {"isCompleted": True, "currentStep": 5})
    assert updated["data"]["isCompleted"] is True
    assert updated["data"]["currentStep"] == 5
    assert updated["data"]["completedAt"] is not None


def test_action_validation(admin):
    with pytest.raises(ValidationError) as exc_info:
        admin.perform("delete", "x")
    assert exc_info.value.code == "UNKNOWN_ACTION"
    with pytest.raises(ValidationError) as exc_info:
        admin.perform("export", None)
    assert exc_info.value.code == "MISSING_ONBOARDING_ID"
