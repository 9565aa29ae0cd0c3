"""
Approval-gated proposals.

The team sends a proposal, the customer receives a signed link, opens it and
approves or rejects it once. Proposals are persisted keyed by the token so a
link survives restarts until it expires or is decided.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from playcode.application.events import APPROVAL, make_event
from playcode.application.ports.event_log_port import EventLogPort
from playcode.config.settings import Settings
from playcode.core.errors import (
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PlayCodeError,
    TokenError,
    ValidationError,
)
from playcode.infrastructure.security.input_validation import ProposalIn, parse_model
from playcode.infrastructure.security.monitor import SecurityMonitor
from playcode.infrastructure.security.tokens import TokenManager, generate_customer_id
from playcode.infrastructure.stores.approval_store import SqlAlchemyApprovalStore

logger = logging.getLogger(__name__)

DECISION_MESSAGES = {
    "approve": "Proposta aprovada com sucesso! Nossa equipe entrará em contato em breve.",
    "reject": "Decisão registrada. Obrigado pelo seu tempo.",
}
DECISION_STATUSES = {"approve": "approved", "reject": "rejected"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class ApprovalService:
    def __init__(
        self,
        store: SqlAlchemyApprovalStore,
        tokens: TokenManager,
        email_service,
        *,
        settings: Optional[Settings] = None,
        event_log: Optional[EventLogPort] = None,
        monitor: Optional[SecurityMonitor] = None,
    ):
        self.store = store
        self.tokens = tokens
        self.email_service = email_service
        self.settings = settings or Settings()
        self.event_log = event_log
        self.monitor = monitor

    def approval_url(self, token: str) -> str:
        return f"{self.settings.app.app_url.rstrip('/')}/aprovacao/{token}"

    def _record(self, type: str, source: str, payload: Dict[str, Any]) -> None:
        if self.event_log is not None:
            self.event_log.append(make_event(category=APPROVAL, type=type, source=source, payload=payload))

    def verify_admin_token(self, provided: str, ip: str = "unknown", user_agent: str = "") -> None:
        expected = self.settings.security.admin_approval_token
        if not expected:
            raise ConfigurationError(
                "Token de administrador não configurado no servidor", code="ADMIN_TOKEN_NOT_CONFIGURED"
            )
        if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
            if self.monitor is not None:
                self.monitor.log_security_event(
                    "unauthorized_admin",
                    ip,
                    user_agent=user_agent,
                    details={"endpoint": "approval/send", "provided_token": provided[:5] + "..."},
                )
            raise AuthenticationError("Token de administrador inválido")

    async def send_proposal(self, proposal: Dict[str, Any], *, ip: str = "unknown", user_agent: str = "") -> Dict[str, Any]:
        """
        Issue a token for the proposal, persist it and email the customer.

        `proposal` carries the camelCase fields of the send form; `adminToken`
        is checked first.
        """
        self.verify_admin_token(str(proposal.get("adminToken") or ""), ip, user_agent)
        proposal = parse_model(ProposalIn, proposal, "Dados da proposta inválidos").model_dump()

        email = proposal["customerEmail"]
        customer_id = generate_customer_id(email)
        token = self.tokens.generate_token(customer_id, email, proposal["projectType"])
        expires_at = _from_ms(self.tokens.validate_token(token).data["expiresAt"])

        self.store.save(token, proposal, customer_id=customer_id, expires_at=expires_at)

        approval_url = self.approval_url(token)
        try:
            await self.email_service.send_approval_email(
                proposal, token, approval_url, f"{approval_url}?action=reject"
            )
        except Exception as e:
            logger.error(f"Approval email to {email} failed: {e}")
            self.store.delete(token)
            self._record("approval_email_failed", ip, {"customer": email, "error": str(e)})
            raise PlayCodeError("Erro ao enviar email de aprovação", code="EMAIL_SEND_FAILED") from e

        self._record(
            "approval_sent",
            ip,
            {
                "customer": email,
                "project": proposal["projectType"],
                "value": proposal.get("estimatedValue"),
                "token_id": token[:8],
            },
        )
        logger.info(f"Approval proposal sent to {email} ({proposal['projectType']})")
        return {
            "customerId": customer_id,
            "customerEmail": email,
            "projectType": proposal["projectType"],
            "estimatedValue": proposal.get("estimatedValue"),
            "tokenId": token[:8],
            "sentAt": _utcnow().isoformat(),
        }

    def _validate(self, token: str) -> Dict[str, Any]:
        validation = self.tokens.validate_token(token)
        if not validation.valid:
            raise TokenError(validation.error or "Token de aprovação inválido ou expirado")
        return validation.data or {}

    def _load(self, token: str) -> Dict[str, Any]:
        entry = self.store.get(token)
        if entry is None:
            raise NotFoundError("Dados da proposta não encontrados")
        return entry

    def get_proposal(self, token: str, *, ip: str = "unknown") -> Dict[str, Any]:
        token_data = self._validate(token)
        entry = self._load(token)
        self._record("approval_page_loaded", ip, {"customer": token_data.get("email"), "token_id": token[:8]})
        return {
            "tokenData": token_data,
            "approvalData": entry["approval"],
            "status": entry["status"],
            "expiresAt": _from_ms(int(token_data["expiresAt"])).isoformat(),
        }

    async def decide(
        self,
        token: str,
        action: str,
        feedback: Optional[str] = None,
        *,
        ip: str = "unknown",
    ) -> Dict[str, Any]:
        if action not in DECISION_STATUSES:
            raise ValidationError("Ação inválida", code="INVALID_ACTION", context={"action": action})
        token_data = self._validate(token)
        entry = self._load(token)
        if entry["status"] != "pending":
            raise ConflictError("Esta proposta já foi respondida", code="ALREADY_DECIDED", context={"status": entry["status"]})

        if self.store.mark_decided(token, status=DECISION_STATUSES[action], feedback=feedback) is None:
            raise ConflictError("Esta proposta já foi respondida", code="ALREADY_DECIDED")
        project_data = entry["approval"]

        try:
            await self.email_service.send_team_notification(token_data, project_data, action, feedback)
        except Exception as e:
            logger.error(f"Team notification for {token_data.get('email')} failed: {e}")
        try:
            await self.email_service.send_client_confirmation(project_data, action)
        except Exception as e:
            logger.error(f"Client confirmation for {token_data.get('email')} failed: {e}")

        self._record(
            "approval_decision_made",
            ip,
            {
                "customer": token_data.get("email"),
                "project": token_data.get("projectType"),
                "action": action,
                "token_id": token[:8],
                "feedback": "provided" if feedback else "none",
            },
        )
        logger.info(f"Approval decision {action} for {token_data.get('email')}")
        return {
            "message": DECISION_MESSAGES[action],
            "data": {
                "action": action,
                "customerEmail": token_data.get("email"),
                "projectType": token_data.get("projectType"),
                "processedAt": _utcnow().isoformat(),
            },
        }

    def purge_expired(self) -> int:
        removed = self.store.delete_expired()
        if removed:
            logger.info(f"Removed {removed} expired approval proposals")
        return removed
