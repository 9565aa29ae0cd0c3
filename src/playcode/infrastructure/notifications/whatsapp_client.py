from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from playcode.core.errors import IntegrationError
from playcode.domain.onboarding import SERVICE_EMOJIS, SHORT_SERVICE_NAMES, follow_up_urgency
from playcode.infrastructure.request_layer import JsonApiClient, RequestPolicy

logger = logging.getLogger(__name__)

FOLLOW_UP_OPENERS = {
    "low": "🎮 Que tal continuarmos seu projeto?",
    "medium": "⚡ Seu projeto está esperando!",
    "high": "🚨 Últimos dias para completar seu onboarding!",
}


def digits_only(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


class WhatsAppService:
    """WhatsApp Business text messages."""

    def __init__(
        self,
        api_url: str = "",
        api_key: str = "",
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        policy: Optional[RequestPolicy] = None,
    ):
        self.configured = bool(api_url and api_key)
        self._client = (
            JsonApiClient(
                api_url,
                headers={"Authorization": f"Bearer {api_key}"},
                policy=policy or RequestPolicy(max_retries=1),
                transport=transport,
            )
            if self.configured
            else None
        )

    async def send_message(self, phone: str, body: str) -> bool:
        """Returns False when the service is not configured; raises on API errors."""
        if self._client is None:
            logger.info("WhatsApp API not configured, skipping message")
            return False
        to = digits_only(phone)
        if not to:
            raise IntegrationError("Invalid WhatsApp phone number", code="WHATSAPP_INVALID_PHONE")
        try:
            resp = await self._client.post(
                "/messages",
                json={
                    "messaging_product": "whatsapp",
                    "to": to,
                    "type": "text",
                    "text": {"body": body},
                },
            )
        except httpx.HTTPError as e:
            raise IntegrationError(f"WhatsApp request failed: {e}", code="WHATSAPP_ERROR") from e
        if resp.status_code >= 300:
            raise IntegrationError(
                f"WhatsApp API error: {resp.status_code}",
                code="WHATSAPP_ERROR",
                context={"status": resp.status_code, "body": resp.text[:500]},
            )
        return True

    async def send_welcome(self, phone: str, customer_name: str, service_type: str, onboarding_url: str) -> bool:
        service = SHORT_SERVICE_NAMES.get(service_type, service_type)
        emoji = SERVICE_EMOJIS.get(service_type, "🎮")
        body = (
            f"🎮 Olá {customer_name}! Bem-vindo à PlayCode Agency!\n\n"
            f"{emoji} Seu pagamento do {service} foi confirmado.\n\n"
            f"Para começarmos, complete seu onboarding:\n{onboarding_url}\n\n"
            "Leva só 15-20 minutos. Qualquer dúvida, é só responder aqui!"
        )
        return await self.send_message(phone, body)

    async def send_follow_up(
        self, phone: str, customer_name: str, service_type: str, onboarding_url: str, days_elapsed: int
    ) -> bool:
        service = SHORT_SERVICE_NAMES.get(service_type, service_type)
        emoji = SERVICE_EMOJIS.get(service_type, "🎮")
        opener = FOLLOW_UP_OPENERS[follow_up_urgency(days_elapsed)]
        body = (
            f"{opener}\n\n"
            f"Oi {customer_name}! {emoji} Seu projeto de {service} está aguardando as informações do onboarding "
            f"há {days_elapsed} dia(s).\n\n"
            f"Continue de onde parou:\n{onboarding_url}"
        )
        return await self.send_message(phone, body)
