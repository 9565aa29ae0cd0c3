from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from email.utils import formataddr
from typing import Any, Dict, Optional

from playcode.application.ports.email_port import EmailMessage, EmailSenderPort
from playcode.config.settings import Settings
from playcode.domain.onboarding import PLAN_NAMES, SERVICE_NAMES, follow_up_urgency
from playcode.presentation.renderer import TemplateRenderer

logger = logging.getLogger(__name__)

FOLLOW_UP_COPY = {
    "low": {
        "subject": "🎮 Que tal continuarmos seu projeto?",
        "message": "Notamos que você ainda não finalizou o onboarding. Que tal continuarmos?",
    },
    "medium": {
        "subject": "⚡ Seu projeto está esperando!",
        "message": "Seu projeto está esperando para decolar! Complete o onboarding e vamos começar.",
    },
    "high": {
        "subject": "🚨 Últimos dias para completar seu onboarding",
        "message": "Restam poucos dias para completar seu onboarding. Não perca a oportunidade!",
    },
}


def proposal_code(token: str) -> str:
    return token[:8].upper()


class EmailService:
    """
    Renders the transactional emails and hands them to an `EmailSenderPort`.

    Sending runs in a worker thread so SMTP never blocks the event loop.
    Failures propagate; callers decide whether a failed email is fatal.
    """

    def __init__(
        self,
        sender: EmailSenderPort,
        settings: Optional[Settings] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.sender = sender
        self.settings = settings or Settings()
        self.renderer = renderer or TemplateRenderer()
        email = self.settings.email
        self.from_addr = formataddr((email.sender_name, email.smtp_from))

    async def _send(self, to: str, subject: str, template: str, *, tags=None, **context: Any) -> str:
        html = self.renderer.render(template, **context)
        message = EmailMessage(to=to, subject=subject, html=html, from_addr=self.from_addr, tags=list(tags or []))
        message_id = await asyncio.to_thread(self.sender.send, message)
        logger.info(f"Email sent to {to}: {subject} ({message_id})")
        return message_id

    async def send_welcome_email(
        self,
        to: str,
        customer_name: str,
        service_type: str,
        plan_type: str,
        onboarding_url: str,
    ) -> str:
        service_name = SERVICE_NAMES.get(service_type, service_type)
        return await self._send(
            to,
            f"🎮 Bem-vindo à PlayCode! Vamos começar seu {service_name}",
            "emails/welcome.html",
            tags=["welcome"],
            customer_name=customer_name,
            service_name=service_name,
            plan_name=PLAN_NAMES.get(plan_type, plan_type),
            onboarding_url=onboarding_url,
        )

    async def send_follow_up_email(
        self,
        to: str,
        customer_name: str,
        service_type: str,
        onboarding_url: str,
        days_elapsed: int,
    ) -> str:
        copy = FOLLOW_UP_COPY[follow_up_urgency(days_elapsed)]
        service_name = SERVICE_NAMES.get(service_type, service_type)
        return await self._send(
            to,
            f"{copy['subject']} - PlayCode Agency",
            "emails/follow_up.html",
            tags=["follow_up"],
            customer_name=customer_name,
            service_name=service_name,
            onboarding_url=onboarding_url,
            headline=copy["subject"],
            message=copy["message"],
        )

    async def send_approval_email(self, data: Dict[str, Any], token: str, approval_url: str, reject_url: str) -> str:
        return await self._send(
            data["customerEmail"],
            f"🎮 Proposta de Orçamento - {data['projectType']} - PlayCode Agency",
            "emails/approval.html",
            tags=["approval"],
            data={"powerUps": [], **data},
            approval_url=approval_url,
            reject_url=reject_url,
            proposal_code=proposal_code(token),
            generated_on=datetime.now().strftime("%d/%m/%Y"),
        )

    async def send_team_notification(
        self,
        token_data: Dict[str, Any],
        project_data: Dict[str, Any],
        action: str,
        feedback: Optional[str] = None,
    ) -> str:
        approved = action == "approve"
        status = "✅ APROVADA" if approved else "❌ REJEITADA"
        return await self._send(
            self.settings.app.team_email,
            f"🎮 Proposta {status} - {project_data.get('customerName', '')}",
            "emails/team_notification.html",
            tags=["approval", "team"],
            data=project_data,
            token_data=token_data,
            status=status,
            approved=approved,
            feedback=feedback,
        )

    async def send_contact_notification(self, lead, game_mode: Optional[str] = None) -> str:
        return await self._send(
            self.settings.app.team_email,
            f"🎮 Nova missão recebida: {lead.name}",
            "emails/new_mission.html",
            tags=["contact", "team"],
            lead=lead,
            game_mode=game_mode,
        )

    async def send_client_confirmation(self, project_data: Dict[str, Any], action: str) -> str:
        approved = action == "approve"
        subject = "🎉 Proposta Aprovada - Próximos Passos" if approved else "📝 Confirmação - Proposta Arquivada"
        return await self._send(
            project_data["customerEmail"],
            subject,
            "emails/client_confirmation.html",
            tags=["approval", "client"],
            data=project_data,
            approved=approved,
        )
