"""
Admin back-office: session cookies and the onboarding review board.
"""

from __future__ import annotations

import hmac
import logging
import time
from typing import Any, Dict, List, Optional

from playcode.application.services.onboarding_service import OnboardingService, updates_from_api
from playcode.config.settings import Settings
from playcode.core.errors import AuthenticationError, ConfigurationError, ValidationError
from playcode.domain.onboarding import PLAN_TYPES, SERVICE_TYPES, OnboardingRecord
from playcode.infrastructure.security.monitor import SecurityMonitor
from playcode.infrastructure.security.tokens import TokenManager

logger = logging.getLogger(__name__)

ADMIN_COOKIE = "playcode_admin"
ADMIN_ROLE = "admin"
ADMIN_ACTIONS = ("export", "update_status")


class AdminAuth:
    """Username/password login issuing a signed, expiring session value."""

    def __init__(self, tokens: TokenManager, settings: Settings, monitor: Optional[SecurityMonitor] = None):
        self.tokens = tokens
        self.settings = settings
        self.monitor = monitor

    @property
    def session_seconds(self) -> int:
        return self.settings.security.admin_session_hours * 3600

    @property
    def required(self) -> bool:
        return not self.settings.is_development

    def login(self, username: str, password: str, *, ip: str = "unknown", user_agent: str = "") -> str:
        security = self.settings.security
        if not security.admin_password:
            raise ConfigurationError("Admin credentials not configured", code="ADMIN_NOT_CONFIGURED")

        user_ok = hmac.compare_digest((username or "").encode("utf-8"), security.admin_username.encode("utf-8"))
        pass_ok = hmac.compare_digest((password or "").encode("utf-8"), security.admin_password.encode("utf-8"))
        if not (user_ok and pass_ok):
            if self.monitor is not None:
                self.monitor.log_security_event(
                    "unauthorized_admin", ip, user_agent=user_agent, details={"reason": "invalid_credentials"}
                )
            raise AuthenticationError("Credenciais inválidas", code="INVALID_CREDENTIALS")

        now = int(time.time() * 1000)
        logger.info(f"Admin login for {username} from {ip}")
        return self.tokens.sign_payload(
            {"sub": username, "role": ADMIN_ROLE, "createdAt": now, "expiresAt": now + self.session_seconds * 1000}
        )

    def verify_session(self, cookie: Optional[str]) -> bool:
        if not cookie:
            return False
        result = self.tokens.validate_token(cookie)
        return result.valid and (result.data or {}).get("role") == ADMIN_ROLE


def onboarding_board_stats(records: List[OnboardingRecord]) -> Dict[str, Any]:
    total = len(records)
    completed = sum(1 for r in records if r.is_completed)
    return {
        "total": total,
        "completed": completed,
        "pending": total - completed,
        "conversionRate": round(completed / total * 100) if total else 0,
        "byService": {s: sum(1 for r in records if r.service_type == s) for s in SERVICE_TYPES},
        "byPlan": {p: sum(1 for r in records if r.plan_type == p) for p in PLAN_TYPES},
    }


class AdminOnboardingService:
    def __init__(self, onboarding: OnboardingService):
        self.onboarding = onboarding

    def board(
        self,
        filter: Optional[str] = None,
        service_type: Optional[str] = None,
        plan_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        everything = self.onboarding.list_onboardings()
        filtered = everything
        if filter == "completed":
            filtered = [r for r in filtered if r.is_completed]
        elif filter == "pending":
            filtered = [r for r in filtered if not r.is_completed]
        if service_type and service_type != "all":
            filtered = [r for r in filtered if r.service_type == service_type]
        if plan_type and plan_type != "all":
            filtered = [r for r in filtered if r.plan_type == plan_type]

        return {
            "onboardings": [r.to_api() for r in filtered],
            "stats": onboarding_board_stats(everything),
        }

    def detail(self, onboarding_id: str) -> Dict[str, Any]:
        return self.onboarding.require_onboarding(onboarding_id).to_api()

    def perform(self, action: Optional[str], onboarding_id: Optional[str], data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if action not in ADMIN_ACTIONS:
            raise ValidationError("Ação não reconhecida", code="UNKNOWN_ACTION", context={"action": action})
        if not onboarding_id:
            raise ValidationError("ID do onboarding é obrigatório", code="MISSING_ONBOARDING_ID")

        if action == "export":
            record = self.onboarding.require_onboarding(onboarding_id)
            return {"success": True, "data": record.to_api(), "message": "Dados exportados com sucesso"}

        record = self.onboarding.update_onboarding(onboarding_id, updates_from_api(data or {}))
        logger.info(f"Admin updated onboarding {onboarding_id}")
        return {"success": True, "data": record.to_api(), "message": "Status atualizado com sucesso"}
