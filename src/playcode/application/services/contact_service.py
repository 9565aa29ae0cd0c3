"""
Contact intake: the public "start a mission" form.

Checks run in a fixed order (block list, rate limit, suspicious content,
honeypot, schema) before the lead is scored, synced to the CRM and the team
is notified.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from playcode.application.crm.manager import CRMManager
from playcode.core.errors import ForbiddenError, RateLimitError, ValidationError
from playcode.domain.leads import GamingLead, calculate_lead_score
from playcode.infrastructure.security.input_validation import (
    ContactForm,
    IPSecurity,
    detect_suspicious_content,
    parse_model,
)
from playcode.infrastructure.security.monitor import SecurityMonitor
from playcode.infrastructure.security.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "🚀 Missão recebida com sucesso! Nossa equipe entrará em contato em breve."
HONEYPOT_MESSAGE = "🚀 Mensagem enviada com sucesso!"
CONTACT_XP = 100


@dataclass
class ContactResult:
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    achievements: List[str] = field(default_factory=list)
    honeypot: bool = False

    def to_dict(self) -> Dict[str, Any]:
        if self.honeypot:
            return {"success": True, "message": self.message}
        return {"success": True, "message": self.message, "data": self.data, "achievements": self.achievements}


def contact_achievements(form: ContactForm) -> List[str]:
    achievements: List[str] = []
    if form.powerUps:
        achievements.append("power_up_selector")
    if form.gameMode:
        achievements.append("game_mode_chosen")
    achievements.append("first_contact")
    return achievements


class ContactService:
    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        ip_security: IPSecurity,
        monitor: SecurityMonitor,
        crm: Optional[CRMManager] = None,
        email_service=None,
        rate_limit_label: str = "3/15min",
    ):
        self.rate_limiter = rate_limiter
        self.ip_security = ip_security
        self.monitor = monitor
        self.crm = crm
        self.email_service = email_service
        self.rate_limit_label = rate_limit_label

    async def submit(self, body: Any, *, ip: str = "unknown", user_agent: str = "") -> ContactResult:
        if self.ip_security.is_blocked(ip):
            self.monitor.log_security_event("blocked_ip", ip, user_agent=user_agent, details={"action": "contact_form"})
            raise ForbiddenError("Acesso negado para este IP", code="ACCESS_DENIED")

        if self.rate_limiter.is_rate_limited(ip):
            self.monitor.log_security_event(
                "rate_limit", ip, user_agent=user_agent, details={"endpoint": "contact", "limit": self.rate_limit_label}
            )
            raise RateLimitError(
                "Muitas tentativas. Tente novamente em 15 minutos.",
                context={"achievement": "rate_limit_reached"},
            )

        raw = json.dumps(body, ensure_ascii=False, default=str)
        threats = detect_suspicious_content(raw)
        if threats:
            self.monitor.log_security_event(
                "suspicious_input", ip, user_agent=user_agent, details={"threats": threats, "endpoint": "contact"}
            )
            raise ValidationError("Conteúdo suspeito detectado", code="INVALID_CONTENT")

        if isinstance(body, dict) and (body.get("website") or body.get("confirm_email")):
            self.monitor.log_security_event(
                "bot_detected", ip, user_agent=user_agent, details={"honeypot_triggered": True}
            )
            return ContactResult(message=HONEYPOT_MESSAGE, honeypot=True)

        form: ContactForm = parse_model(ContactForm, body)
        lead = self.build_lead(form)

        await self._sync_crm(lead)
        await self._notify_team(lead, form.gameMode)

        logger.info(f"Contact received from {lead.email} (score {lead.lead_score})")
        return ContactResult(
            message=SUCCESS_MESSAGE,
            data={
                "id": f"mission_{int(time.time() * 1000)}",
                "status": "received",
                "estimatedResponse": "24 horas",
                "xpGained": CONTACT_XP,
                "leadScore": lead.lead_score,
            },
            achievements=contact_achievements(form),
        )

    @staticmethod
    def build_lead(form: ContactForm) -> GamingLead:
        score = calculate_lead_score(
            form.project_type, form.budget_range, form.company, form.phone, form.message, form.urgency
        )
        return GamingLead(
            email=form.email,
            name=form.name,
            phone=form.phone or None,
            company=form.company or None,
            lead_score=score,
            achievements=["first_contact"],
            power_ups=list(form.powerUps or []),
            project_type=form.project_type,
            budget_range=form.budget_range,
            urgency=form.urgency,
            message=form.message,
            source=form.source or "website",
        )

    async def _sync_crm(self, lead: GamingLead) -> None:
        if self.crm is None or not self.crm.enabled:
            return
        try:
            response = await self.crm.sync_lead(lead)
        except Exception as e:
            logger.error(f"CRM sync failed for {lead.email}: {e}")
            return
        if not response.success:
            logger.warning(f"CRM sync failed for {lead.email}: {response.error}")

    async def _notify_team(self, lead: GamingLead, game_mode: Optional[str]) -> None:
        if self.email_service is None:
            return
        try:
            await self.email_service.send_contact_notification(lead, game_mode)
        except Exception as e:
            logger.error(f"Contact notification email failed for {lead.email}: {e}")
