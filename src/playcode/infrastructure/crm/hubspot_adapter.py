"""
HubSpot CRM v3 adapter.

HTTP failures are turned into failed `CRMResponse`s; nothing here raises to
the caller except `process_webhook` on a programming error.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from playcode.application.crm.base_adapter import BaseCRMAdapter, LeadLike
from playcode.application.crm.types import (
    CRMAdapterConfig,
    CRMCustomField,
    CRMResponse,
    CRMSearchQuery,
    CRMWebhookEvent,
)
from playcode.domain.leads import (
    PLAYER_LEVELS,
    PROJECT_POINTS,
    URGENCY_MULTIPLIERS,
    GamingLead,
    close_date,
    deal_amount,
    deal_stage_for_level,
)
from playcode.infrastructure.request_layer import JsonApiClient, RequestPolicy

logger = logging.getLogger(__name__)

HUBSPOT_API_URL = "https://api.hubapi.com/crm/v3"
PROPERTY_GROUP = "gaming_properties"
HIGH_VALUE_SCORE = 500

DEFAULT_PROPERTIES = ["email", "firstname", "lastname", "phone", "company"]
GAMING_PROPERTIES = [
    "gaming_lead_score",
    "gaming_player_level",
    "gaming_achievements",
    "gaming_power_ups",
    "gaming_project_type",
    "gaming_urgency",
]

FIELD_TYPES = {
    "text": "string",
    "number": "number",
    "date": "date",
    "select": "enumeration",
    "multiselect": "checkbox",
    "boolean": "bool",
}

CUSTOM_PROPERTIES = [
    CRMCustomField("lead_score", "🎮 Gaming Lead Score", "number"),
    CRMCustomField("player_level", "⭐ Player Level", "select", list(PLAYER_LEVELS)),
    CRMCustomField("achievements", "🏆 Achievements", "text"),
    CRMCustomField("power_ups", "⚡ Selected Power-ups", "text"),
    CRMCustomField("project_type", "🚀 Project Type", "select", list(PROJECT_POINTS)),
    CRMCustomField("urgency", "🔥 Urgency Level", "select", list(URGENCY_MULTIPLIERS)),
]


def property_list() -> str:
    return ",".join(DEFAULT_PROPERTIES + GAMING_PROPERTIES)


def compact_json(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _error_message(resp: httpx.Response, fallback: str) -> str:
    try:
        body = resp.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("message"):
        return f"{fallback}: {body['message']}"
    return fallback


class HubSpotAdapter(BaseCRMAdapter):
    provider = "hubspot"
    property_delay: float = 0.1

    def __init__(
        self,
        config: CRMAdapterConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        policy: Optional[RequestPolicy] = None,
    ):
        super().__init__(config)
        self._api = JsonApiClient(
            HUBSPOT_API_URL,
            headers={"Authorization": f"Bearer {config.api_key}"},
            policy=policy or RequestPolicy(max_retries=1),
            transport=transport,
        )

    # connection

    async def connect(self) -> bool:
        if not await self.test_connection():
            return False
        self.connected = True
        self.log_activity("connect", {"status": "connected"})
        await self._initialize_custom_properties()
        return True

    async def disconnect(self) -> None:
        self.connected = False
        self.log_activity("disconnect", {"status": "disconnected"})

    async def test_connection(self) -> bool:
        try:
            resp = await self._api.get("/objects/contacts", params={"limit": 1})
        except httpx.HTTPError as e:
            logger.warning(f"HubSpot connection test failed: {e}")
            return False
        return resp.is_success

    # contacts

    async def create_lead(self, lead: GamingLead) -> CRMResponse:
        errors = self.validate_lead(lead)
        if errors:
            return CRMResponse.fail(", ".join(errors), code="VALIDATION_ERROR")

        try:
            resp = await self._api.post("/objects/contacts", json={"properties": self.transform_lead_data(lead)})
        except httpx.HTTPError as e:
            self.log_activity("create_lead", {"error": str(e)}, logging.ERROR)
            return CRMResponse.fail(str(e), code="HUBSPOT_NETWORK_ERROR")
        if not resp.is_success:
            message = _error_message(resp, "Failed to create lead in HubSpot")
            self.log_activity("create_lead", {"error": message}, logging.ERROR)
            return CRMResponse.fail(message, code="HUBSPOT_CREATE_ERROR")

        crm_id = str(resp.json().get("id"))
        lead.crm_id = crm_id
        if lead.lead_score > HIGH_VALUE_SCORE:
            await self.create_deal(lead)

        self.log_activity("create_lead", {"lead_id": crm_id, "email": lead.email, "score": lead.lead_score})
        return CRMResponse.ok(self._synced(lead.to_dict(), crm_id))

    async def update_lead(self, crm_id: str, updates: LeadLike) -> CRMResponse:
        try:
            resp = await self._api.patch(
                f"/objects/contacts/{crm_id}", json={"properties": self.transform_lead_data(updates)}
            )
        except httpx.HTTPError as e:
            return CRMResponse.fail(str(e), code="HUBSPOT_NETWORK_ERROR")
        if not resp.is_success:
            message = _error_message(resp, "Failed to update lead in HubSpot")
            self.log_activity("update_lead", {"error": message}, logging.ERROR)
            return CRMResponse.fail(message, code="HUBSPOT_UPDATE_ERROR")

        data = updates.to_dict() if isinstance(updates, GamingLead) else dict(updates)
        self.log_activity("update_lead", {"lead_id": crm_id})
        return CRMResponse.ok(self._synced(data, str(resp.json().get("id") or crm_id)))

    async def get_lead(self, crm_id: str) -> CRMResponse:
        try:
            resp = await self._api.get(f"/objects/contacts/{crm_id}", params={"properties": property_list()})
        except httpx.HTTPError as e:
            return CRMResponse.fail(str(e), code="HUBSPOT_NETWORK_ERROR")
        if resp.status_code == 404:
            return CRMResponse.fail("Lead not found", code="NOT_FOUND")
        if not resp.is_success:
            return CRMResponse.fail("Failed to get lead from HubSpot", code="HUBSPOT_GET_ERROR")

        contact = resp.json()
        lead = self.reverse_transform_data(contact.get("properties") or {})
        lead.update(crm_id=str(contact.get("id")), crm_provider=self.provider)
        return CRMResponse.ok(lead)

    async def search_leads(self, query: CRMSearchQuery) -> CRMResponse:
        try:
            resp = await self._api.post("/objects/contacts/search", json=self.build_search_query(query))
        except httpx.HTTPError as e:
            return CRMResponse.fail(str(e), code="HUBSPOT_NETWORK_ERROR")
        if not resp.is_success:
            return CRMResponse.fail("Failed to search leads in HubSpot", code="HUBSPOT_SEARCH_ERROR")

        leads: List[Dict[str, Any]] = []
        for contact in resp.json().get("results") or []:
            lead = self.reverse_transform_data(contact.get("properties") or {})
            lead.update(crm_id=str(contact.get("id")), crm_provider=self.provider)
            leads.append(lead)
        return CRMResponse.ok(leads)

    def build_search_query(self, query: CRMSearchQuery) -> Dict[str, Any]:
        filters: List[Dict[str, Any]] = []
        if query.email:
            filters.append({"propertyName": "email", "operator": "EQ", "value": query.email})
        if query.company:
            filters.append({"propertyName": "company", "operator": "CONTAINS_TOKEN", "value": query.company})
        if query.min_score:
            filters.append({"propertyName": "gaming_lead_score", "operator": "GTE", "value": query.min_score})
        if query.max_score:
            filters.append({"propertyName": "gaming_lead_score", "operator": "LTE", "value": query.max_score})

        body: Dict[str, Any] = {
            "filterGroups": [{"filters": filters}] if filters else [],
            "properties": DEFAULT_PROPERTIES + GAMING_PROPERTIES,
            "limit": query.limit,
        }
        if query.page:
            body["after"] = str((query.page - 1) * query.limit)
        return body

    # deals

    async def create_deal(self, lead: GamingLead) -> CRMResponse:
        properties = {
            "dealname": f"{lead.name} - {(lead.project_type or 'custom').upper()} Project",
            "amount": str(deal_amount(lead.budget_range, lead.project_type, lead.urgency)),
            "dealstage": deal_stage_for_level(lead.player_level),
            "pipeline": "default",
            "gaming_lead_score": str(lead.lead_score),
            "gaming_project_type": lead.project_type,
            "gaming_urgency": lead.urgency,
            "closedate": close_date(lead.urgency),
        }
        try:
            resp = await self._api.post("/objects/deals", json={"properties": properties})
        except httpx.HTTPError as e:
            return CRMResponse.fail(str(e), code="HUBSPOT_NETWORK_ERROR")
        if not resp.is_success:
            self.log_activity("create_deal", {"status": resp.status_code}, logging.ERROR)
            return CRMResponse.fail("Failed to create deal in HubSpot", code="HUBSPOT_DEAL_ERROR")

        deal_id = str(resp.json().get("id"))
        if lead.crm_id:
            await self._associate_deal_with_contact(deal_id, lead.crm_id)
        self.log_activity("create_deal", {"deal_id": deal_id, "amount": properties["amount"]})
        return CRMResponse.ok({"dealId": deal_id})

    async def update_deal_stage(self, deal_id: str, stage: str) -> CRMResponse:
        try:
            resp = await self._api.patch(f"/objects/deals/{deal_id}", json={"properties": {"dealstage": stage}})
        except httpx.HTTPError as e:
            return CRMResponse.fail(str(e), code="HUBSPOT_NETWORK_ERROR")
        if not resp.is_success:
            return CRMResponse.fail("Failed to update deal stage", code="HUBSPOT_DEAL_ERROR")
        self.log_activity("update_deal_stage", {"deal_id": deal_id, "stage": stage})
        return CRMResponse.ok({"dealId": deal_id, "stage": stage})

    async def _associate_deal_with_contact(self, deal_id: str, contact_id: str) -> None:
        try:
            await self._api.put(f"/objects/deals/{deal_id}/associations/contacts/{contact_id}/deal_to_contact")
        except httpx.HTTPError as e:
            self.log_activity("associate_deal", {"error": str(e)}, logging.WARNING)

    # webhooks

    def validate_webhook(self, payload: Any, signature: str) -> bool:
        secret = (self.config.webhook_secret or "").encode("utf-8")
        expected = hmac.new(secret, compact_json(payload).encode("utf-8"), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")

    async def process_webhook(self, event: CRMWebhookEvent) -> None:
        data = event.data or {}
        if event.type == "lead.created":
            self.log_activity("webhook_processed", {"type": event.type, "object_id": data.get("objectId")})
        elif event.type == "lead.updated":
            if data.get("propertyName") == "lifecyclestage":
                self.log_activity(
                    "lead_stage_changed", {"object_id": data.get("objectId"), "stage": data.get("propertyValue")}
                )
        elif event.type == "deal.won":
            self.log_activity("deal_won", {"deal_id": data.get("objectId")})
        else:
            self.log_activity("unknown_webhook", {"type": event.type}, logging.WARNING)

    # custom properties

    async def create_custom_field(self, custom_field: CRMCustomField) -> CRMResponse:
        field_type = FIELD_TYPES.get(custom_field.type, "string")
        body: Dict[str, Any] = {
            "name": f"gaming_{custom_field.name}",
            "label": custom_field.label,
            "type": field_type,
            "fieldType": field_type,
            "groupName": PROPERTY_GROUP,
        }
        if custom_field.options:
            body["options"] = [
                {"label": opt, "value": opt.lower().replace(" ", "_"), "displayOrder": i}
                for i, opt in enumerate(custom_field.options)
            ]
        try:
            resp = await self._api.post("/properties/contacts", json=body)
        except httpx.HTTPError as e:
            return CRMResponse.fail(str(e), code="HUBSPOT_NETWORK_ERROR")
        if not resp.is_success:
            if "already exists" in _error_message(resp, ""):
                return CRMResponse.ok({"message": "Property already exists"})
            return CRMResponse.fail("Failed to create custom field", code="HUBSPOT_PROPERTY_ERROR")
        return CRMResponse.ok({"field": custom_field.name})

    async def _initialize_custom_properties(self) -> None:
        try:
            await self._api.post(
                "/properties/contacts/groups",
                json={"name": PROPERTY_GROUP, "label": "🎮 Gaming Properties", "displayOrder": 10},
            )
        except httpx.HTTPError as e:
            logger.debug(f"HubSpot property group not created: {e}")

        for prop in CUSTOM_PROPERTIES:
            await self.create_custom_field(prop)
            if self.property_delay > 0:
                await asyncio.sleep(self.property_delay)

    def _synced(self, data: Dict[str, Any], crm_id: str) -> Dict[str, Any]:
        data.update(
            crmId=crm_id,
            crmProvider=self.provider,
            syncStatus="synced",
            lastSyncAt=datetime.now(timezone.utc).isoformat(),
        )
        return data
