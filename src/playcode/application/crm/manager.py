"""
CRM orchestration: provider selection, lead/deal operations, webhook intake,
event fan-out and the short-lived notification queue.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from playcode.domain.leads import PLAYER_LEVELS, GamingLead, deal_amount

from .base_adapter import BaseCRMAdapter, LeadLike
from .types import (
    SUPPORTED_PROVIDERS,
    CRMAdapterConfig,
    CRMEvent,
    CRMNotification,
    CRMResponse,
    CRMWebhookEvent,
)

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[CRMAdapterConfig], BaseCRMAdapter]
EventHandler = Callable[[CRMEvent], None]

NO_PROVIDER = "No CRM provider configured"
NOTIFICATION_TTL = timedelta(seconds=10)

WEBHOOK_TYPE_MAP = {
    "contact.creation": "lead.created",
    "contact.propertyChange": "lead.updated",
    "deal.creation": "lead.created",
    "deal.propertyChange": "lead.updated",
    "deal.deletion": "deal.lost",
}

PROVIDER_INFO = {
    "hubspot": {"name": "HubSpot", "icon": "🟠", "color": "#FF7A59"},
    "salesforce": {"name": "Salesforce", "icon": "☁️", "color": "#00A1E0"},
    "pipedrive": {"name": "Pipedrive", "icon": "🎯", "color": "#172733"},
    "rd_station": {"name": "RD Station", "icon": "🚀", "color": "#7C4DFF"},
}


def default_adapter_factories() -> Dict[str, AdapterFactory]:
    from playcode.infrastructure.crm.hubspot_adapter import HubSpotAdapter

    return {"hubspot": HubSpotAdapter}


def map_webhook_type(payload: Mapping[str, Any]) -> str:
    return WEBHOOK_TYPE_MAP.get(str(payload.get("subscriptionType") or ""), "lead.updated")


class CRMManager:
    _instance: Optional["CRMManager"] = None

    def __init__(self, adapter_factories: Optional[Dict[str, AdapterFactory]] = None):
        self._factories = adapter_factories if adapter_factories is not None else default_adapter_factories()
        self.adapters: Dict[str, BaseCRMAdapter] = {}
        self.active_provider: Optional[str] = None
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._notifications: List[CRMNotification] = []
        self._leads: Dict[str, GamingLead] = {}

    @classmethod
    def instance(cls) -> "CRMManager":
        if cls._instance is None:
            cls._instance = CRMManager()
        return cls._instance

    # providers

    async def initialize_provider(self, provider: str, config: CRMAdapterConfig) -> bool:
        try:
            if provider not in SUPPORTED_PROVIDERS:
                raise ValueError(f"Unsupported CRM provider: {provider}")
            factory = self._factories.get(provider)
            if factory is None:
                raise ValueError(f"CRM provider not implemented: {provider}")
            adapter = factory(config)
            connected = await adapter.connect()
        except Exception as e:
            logger.error(f"CRM provider {provider} failed to initialise: {e}")
            self._emit(CRMEvent(type="sync.error", data={"provider": provider, "error": str(e)}))
            self._notify("error", "❌ Connection Failed", f"Failed to connect to {provider}")
            return False

        if not connected:
            return False

        self.adapters[provider] = adapter
        if self.active_provider is None:
            self.active_provider = provider
        self._emit(CRMEvent(type="sync.completed", data={"provider": provider, "status": "connected"}))
        self._notify(
            "success",
            "🎮 CRM Connected!",
            f"Successfully connected to {provider}",
            achievement="crm_integration",
            xp_gained=500,
        )
        return True

    def set_active_provider(self, provider: str) -> bool:
        if provider in self.adapters:
            self.active_provider = provider
            return True
        return False

    def get_active_adapter(self) -> Optional[BaseCRMAdapter]:
        if self.active_provider is None:
            return None
        return self.adapters.get(self.active_provider)

    @property
    def enabled(self) -> bool:
        return self.get_active_adapter() is not None

    def get_supported_providers(self) -> List[Dict[str, Any]]:
        return [
            {"id": p, "type": p, "implemented": p in self._factories, **PROVIDER_INFO[p]}
            for p in SUPPORTED_PROVIDERS
        ]

    async def initialize_from_settings(self, settings) -> bool:
        crm = settings.crm
        if not crm.provider:
            logger.info("CRM provider not configured, running without CRM integration")
            return False
        if crm.provider != "hubspot":
            logger.warning(f"Unknown CRM provider: {crm.provider}")
            return False
        if not crm.hubspot_api_key or not crm.hubspot_portal_id:
            logger.warning("HubSpot credentials missing, CRM disabled")
            return False

        config = CRMAdapterConfig(
            provider="hubspot",
            api_key=crm.hubspot_api_key,
            portal_id=crm.hubspot_portal_id,
            webhook_secret=crm.hubspot_webhook_secret,
        )
        ok = await self.initialize_provider("hubspot", config)
        if ok:
            self.set_active_provider("hubspot")
            logger.info("HubSpot CRM initialised")
        else:
            logger.error("Failed to initialise HubSpot CRM")
        return ok

    # leads and deals

    async def create_lead(self, lead: GamingLead) -> CRMResponse:
        adapter = self.get_active_adapter()
        if adapter is None:
            return CRMResponse.fail(NO_PROVIDER)

        self._emit(CRMEvent(type="lead.created", data={"email": lead.email, "score": lead.lead_score}))
        try:
            response = await adapter.create_lead(lead)
        except Exception as e:
            logger.exception("CRM create_lead failed")
            self._emit(CRMEvent(type="sync.error", data={"operation": "create_lead", "error": str(e)}))
            return CRMResponse.fail(str(e))

        if response.success:
            self._notify(
                "success",
                "🚀 New Lead Created!",
                f"{lead.name} has been added to the CRM",
                achievement="lead_captured",
                xp_gained=100,
            )
            self.record_lead(lead)
        return response

    async def update_lead(self, crm_id: str, updates: LeadLike) -> CRMResponse:
        adapter = self.get_active_adapter()
        if adapter is None:
            return CRMResponse.fail(NO_PROVIDER)

        try:
            response = await adapter.update_lead(crm_id, updates)
        except Exception as e:
            logger.exception("CRM update_lead failed")
            return CRMResponse.fail(str(e))

        if response.success:
            self._emit(CRMEvent(type="lead.updated", data={"id": crm_id}))
            level = updates.player_level if isinstance(updates, GamingLead) else updates.get("player_level")
            if level:
                self._notify(
                    "info",
                    "⬆️ Lead Level Up!",
                    f"Lead progressed to {level}",
                    achievement="lead_progression",
                    xp_gained=200,
                )
        return response

    async def sync_lead(self, lead: GamingLead) -> CRMResponse:
        adapter = self.get_active_adapter()
        if adapter is None:
            return CRMResponse.fail(NO_PROVIDER)
        response = await adapter.sync_lead(lead)
        if response.success:
            self.record_lead(lead)
        return response

    async def bulk_sync_leads(self, leads: List[GamingLead]) -> List[CRMResponse]:
        adapter = self.get_active_adapter()
        if adapter is None:
            return [CRMResponse.fail(NO_PROVIDER) for _ in leads]

        self._emit(CRMEvent(type="sync.started", data={"count": len(leads)}))
        results = await adapter.bulk_sync(leads)
        successful = sum(1 for r in results if r.success)
        failed = len(results) - successful
        self._emit(CRMEvent(type="sync.completed", data={"successful": successful, "failed": failed, "total": len(leads)}))

        for lead, result in zip(leads, results):
            if result.success:
                self.record_lead(lead)
        if successful > 0:
            self._notify(
                "success" if successful == len(leads) else "warning",
                "📊 Bulk Sync Complete",
                f"Synced {successful}/{len(leads)} leads",
                achievement="bulk_sync_master",
                xp_gained=successful * 50,
            )
        return results

    async def create_deal(self, lead: GamingLead) -> CRMResponse:
        adapter = self.get_active_adapter()
        if adapter is None:
            return CRMResponse.fail(NO_PROVIDER)
        response = await adapter.create_deal(lead)
        if response.success:
            self._notify(
                "success",
                "💼 New Deal Created!",
                f"Deal created for {lead.name}",
                achievement="deal_maker",
                xp_gained=300,
            )
        return response

    async def update_deal_stage(self, deal_id: str, stage: str) -> CRMResponse:
        adapter = self.get_active_adapter()
        if adapter is None:
            return CRMResponse.fail(NO_PROVIDER)
        response = await adapter.update_deal_stage(deal_id, stage)
        if response.success and stage == "closedwon":
            self._notify(
                "success",
                "🏆 Deal Won!",
                "Achievement Unlocked: Deal Closer",
                achievement="deal_won",
                xp_gained=1000,
            )
        return response

    # webhooks

    async def handle_webhook(self, provider: str, payload: Mapping[str, Any], signature: str) -> Optional[CRMWebhookEvent]:
        """Returns the processed event, or None when the webhook was rejected or failed."""
        adapter = self.adapters.get(provider)
        if adapter is None:
            return None
        try:
            if not adapter.validate_webhook(payload, signature):
                logger.warning(f"Invalid {provider} webhook signature")
                return None
            event = CRMWebhookEvent(
                id=str(payload.get("eventId") or int(time.time() * 1000)),
                type=map_webhook_type(payload),
                provider=provider,
                data=dict(payload),
                signature=signature,
            )
            await adapter.process_webhook(event)
        except Exception:
            logger.exception("CRM webhook processing error")
            return None
        return event

    # events

    def on(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def _emit(self, event: CRMEvent) -> None:
        for handler in list(self._handlers.get(event.type, [])) + list(self._handlers.get("*", [])):
            handler(event)

    # notifications

    def _notify(self, type_: str, title: str, message: str, **extra: Any) -> CRMNotification:
        notification = CRMNotification(type=type_, title=title, message=message, **extra)
        self._notifications.append(notification)
        self._emit(CRMEvent(type="sync.completed", data=notification, metadata={"isNotification": True}))
        return notification

    def get_notifications(self, now: Optional[datetime] = None) -> List[CRMNotification]:
        now = now or datetime.now(timezone.utc)
        self._notifications = [n for n in self._notifications if now - n.timestamp < NOTIFICATION_TTL]
        return list(self._notifications)

    def clear_notifications(self) -> None:
        self._notifications = []

    # analytics

    def record_lead(self, lead: GamingLead) -> None:
        self._leads[lead.email.lower()] = lead

    def get_analytics(self) -> Dict[str, Any]:
        leads = list(self._leads.values())
        total = len(leads)
        converted = [lead for lead in leads if lead.player_level == "achievement_unlocked"]

        by_stage = {level: 0 for level in PLAYER_LEVELS}
        for lead in leads:
            by_stage[lead.player_level] = by_stage.get(lead.player_level, 0) + 1

        sources = Counter(lead.source or "unknown" for lead in leads)
        revenue: Dict[str, int] = {}
        for lead in leads:
            key = lead.project_type or "custom"
            revenue[key] = revenue.get(key, 0) + deal_amount(lead.budget_range, lead.project_type, lead.urgency)

        days_to_convert = [
            (lead.updated_at - lead.created_at).total_seconds() / 86400 for lead in converted
        ]
        return {
            "totalLeads": total,
            "conversionRate": round(len(converted) / total, 4) if total else 0,
            "averageLeadScore": round(sum(lead.lead_score for lead in leads) / total) if total else 0,
            "leadsByStage": by_stage,
            "topSources": [{"source": s, "count": c} for s, c in sources.most_common(5)],
            "revenueByProject": revenue,
            "timeToConversion": round(sum(days_to_convert) / len(days_to_convert), 1) if days_to_convert else 0,
        }
