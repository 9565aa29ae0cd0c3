"""
Inbound CRM webhooks: rate limiting, signature lookup, validation through the
CRM manager, and the gaming achievements each event unlocks.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from playcode.application.crm.manager import CRMManager
from playcode.application.crm.types import SUPPORTED_PROVIDERS, CRMWebhookEvent
from playcode.core.errors import AuthenticationError, RateLimitError, ValidationError
from playcode.infrastructure.security.monitor import SecurityMonitor
from playcode.infrastructure.security.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "hubspot"

SIGNATURE_HEADERS = {
    "hubspot": ("x-hubspot-signature-v3", "x-hubspot-signature"),
    "salesforce": ("x-sfdc-signature",),
    "pipedrive": ("x-pipedrive-signature",),
    "rd_station": ("x-rd-signature",),
}
FALLBACK_SIGNATURE_HEADER = "x-webhook-signature"

EVENT_ACHIEVEMENTS = {
    "lead.created": ["new_player_joined"],
    "lead.updated": ["quest_initiated"],
    "deal.won": ["boss_defeated", "mission_complete"],
    "lead.converted": ["player_converted", "legendary_status"],
}


def webhook_signature(provider: str, headers: Mapping[str, str]) -> Optional[str]:
    for name in SIGNATURE_HEADERS.get(provider, (FALLBACK_SIGNATURE_HEADER,)):
        value = headers.get(name)
        if value:
            return value
    return None


def refine_event_type(event: CRMWebhookEvent) -> str:
    """Promote property changes that mean a won deal or a converted lead."""
    data = event.data or {}
    prop, value = data.get("propertyName"), data.get("propertyValue")
    if prop == "dealstage" and value == "closedwon":
        return "deal.won"
    if prop == "lifecyclestage" and value == "customer":
        return "lead.converted"
    return event.type


def webhook_achievements(provider: str, event_type: str) -> List[str]:
    achievements = list(EVENT_ACHIEVEMENTS.get(event_type, []))
    if provider == "hubspot" and achievements:
        achievements.append("hubspot_sync_master")
    return achievements


class CRMWebhookService:
    def __init__(self, crm: CRMManager, rate_limiter: RateLimiter, monitor: SecurityMonitor):
        self.crm = crm
        self.rate_limiter = rate_limiter
        self.monitor = monitor

    async def receive(
        self,
        raw_body: bytes,
        headers: Mapping[str, str],
        *,
        provider: Optional[str] = None,
        ip: str = "unknown",
    ) -> Dict[str, Any]:
        provider = (provider or DEFAULT_PROVIDER).strip().lower()
        user_agent = headers.get("user-agent", "unknown")

        if self.rate_limiter.is_rate_limited(ip):
            self.monitor.log_security_event("webhook_rate_limit", ip, user_agent=user_agent, details={"provider": provider})
            raise RateLimitError("Too many webhook requests", code="WEBHOOK_RATE_LIMITED")

        if provider not in SUPPORTED_PROVIDERS:
            raise ValidationError(f"Unknown CRM provider: {provider}", code="UNKNOWN_PROVIDER")

        signature = webhook_signature(provider, headers)
        if not signature:
            raise AuthenticationError("Webhook signature not found", code="MISSING_SIGNATURE")

        try:
            payload = json.loads(raw_body or b"{}")
        except ValueError as e:
            raise ValidationError("Invalid webhook payload", code="INVALID_PAYLOAD") from e
        if not isinstance(payload, dict):
            raise ValidationError("Invalid webhook payload", code="INVALID_PAYLOAD")

        logger.info(f"CRM webhook received from {provider}: {payload.get('subscriptionType') or payload.get('event_type')}")
        event = await self.crm.handle_webhook(provider, payload, signature)
        if event is None:
            self.monitor.log_security_event(
                "webhook_validation_failed",
                ip,
                user_agent=user_agent,
                details={"provider": provider, "payload": json.dumps(payload)[:200]},
            )
            raise AuthenticationError("Webhook validation failed", code="INVALID_WEBHOOK")

        event_type = refine_event_type(event)
        return {
            "success": True,
            "message": "Webhook processed successfully",
            "provider": provider,
            "eventType": event_type,
            "achievements": webhook_achievements(provider, event_type),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def verify(self, provider: Optional[str], challenge: Optional[str]) -> Any:
        """GET handshake: echoes the HubSpot challenge, otherwise describes the endpoint."""
        if provider == "hubspot" and challenge:
            return challenge
        if provider == "salesforce":
            return {"success": True, "message": "Webhook endpoint verified"}
        return {"success": True, "message": "CRM webhook endpoint", "providers": list(SUPPORTED_PROVIDERS)}
