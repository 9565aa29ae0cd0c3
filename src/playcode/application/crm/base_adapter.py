from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

from playcode.domain.leads import GamingLead

from .types import (
    CRMAdapterConfig,
    CRMCustomField,
    CRMFieldMapping,
    CRMResponse,
    CRMSearchQuery,
    CRMWebhookEvent,
)

logger = logging.getLogger(__name__)

BUDGET_LABELS = {
    "startup": "5000-15000",
    "small": "15000-50000",
    "medium": "50000-150000",
    "large": "150000+",
    "custom": "Custom",
}

URGENCY_PRIORITIES = {"low": 0, "normal": 1, "high": 2, "critical": 3}

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
BR_PHONE_RE = re.compile(r"^(?:\+55\s?)?(?:\(?\d{2}\)?\s?)?(?:9?\d{4})-?\d{4}$")

LeadLike = Union[GamingLead, Mapping[str, Any]]


def _field(lead: LeadLike, name: str) -> Any:
    if isinstance(lead, Mapping):
        return lead.get(name)
    return getattr(lead, name, None)


def default_field_mappings() -> List[CRMFieldMapping]:
    return [
        CRMFieldMapping("email", "email", required=True),
        CRMFieldMapping("name", "firstname", required=True),
        CRMFieldMapping("phone", "phone"),
        CRMFieldMapping("company", "company"),
        CRMFieldMapping("message", "description"),
        CRMFieldMapping("project_type", "project_type", transformer=lambda v: str(v).upper()),
        CRMFieldMapping("budget_range", "budget", transformer=lambda v: BUDGET_LABELS.get(v, v)),
        CRMFieldMapping("urgency", "priority", transformer=lambda v: URGENCY_PRIORITIES.get(v, 1)),
    ]


class BaseCRMAdapter(ABC):
    """
    Provider-independent part of a CRM integration.

    Subclasses implement the HTTP calls; lead sync, batching, field mapping
    and validation live here.
    """

    provider: str = "custom"
    batch_size: int = 10
    batch_delay: float = 1.0

    def __init__(self, config: CRMAdapterConfig):
        self.config = config
        self.connected = False
        self.field_mappings: Dict[str, CRMFieldMapping] = {}
        self.map_custom_fields(default_field_mappings() + list(config.mappings or []))

    @abstractmethod
    async def connect(self) -> bool: ...

    @abstractmethod
    async def disconnect(self) -> None: ...

    @abstractmethod
    async def test_connection(self) -> bool: ...

    @abstractmethod
    async def create_lead(self, lead: GamingLead) -> CRMResponse: ...

    @abstractmethod
    async def update_lead(self, crm_id: str, updates: LeadLike) -> CRMResponse: ...

    @abstractmethod
    async def get_lead(self, crm_id: str) -> CRMResponse: ...

    @abstractmethod
    async def search_leads(self, query: CRMSearchQuery) -> CRMResponse: ...

    @abstractmethod
    async def create_deal(self, lead: GamingLead) -> CRMResponse: ...

    @abstractmethod
    async def update_deal_stage(self, deal_id: str, stage: str) -> CRMResponse: ...

    @abstractmethod
    def validate_webhook(self, payload: Any, signature: str) -> bool: ...

    @abstractmethod
    async def process_webhook(self, event: CRMWebhookEvent) -> None: ...

    @abstractmethod
    async def create_custom_field(self, custom_field: CRMCustomField) -> CRMResponse: ...

    async def sync_lead(self, lead: GamingLead) -> CRMResponse:
        """Update the contact with the same email if one exists, otherwise create it."""
        existing = await self.search_leads(CRMSearchQuery(email=lead.email))
        if existing.success and existing.data:
            crm_id = existing.data[0].get("crm_id")
            if crm_id:
                return await self.update_lead(crm_id, lead)
        return await self.create_lead(lead)

    async def bulk_sync(self, leads: List[GamingLead]) -> List[CRMResponse]:
        results: List[CRMResponse] = []
        for start in range(0, len(leads), self.batch_size):
            batch = leads[start : start + self.batch_size]
            outcomes = await asyncio.gather(*(self.sync_lead(lead) for lead in batch), return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    results.append(CRMResponse.fail(str(outcome) or type(outcome).__name__, code="SYNC_ERROR"))
                else:
                    results.append(outcome)
            if start + self.batch_size < len(leads) and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
        return results

    def map_custom_fields(self, mappings: List[CRMFieldMapping]) -> None:
        for mapping in mappings:
            self.field_mappings[mapping.local_field] = mapping

    def transform_lead_data(self, lead: LeadLike) -> Dict[str, Any]:
        transformed: Dict[str, Any] = {}
        for local_field, mapping in self.field_mappings.items():
            value = _field(lead, local_field)
            if value is None:
                continue
            transformed[mapping.crm_field] = mapping.transformer(value) if mapping.transformer else value

        score = _field(lead, "lead_score")
        if score is not None:
            transformed["gaming_lead_score"] = score
        achievements = _field(lead, "achievements")
        if achievements is not None:
            transformed["gaming_achievements"] = ", ".join(achievements)
        power_ups = _field(lead, "power_ups")
        if power_ups is not None:
            transformed["gaming_power_ups"] = ", ".join(power_ups)
        level = _field(lead, "player_level")
        if level is not None:
            transformed["gaming_player_level"] = level
        return transformed

    def reverse_transform_data(self, crm_data: Mapping[str, Any]) -> Dict[str, Any]:
        lead: Dict[str, Any] = {}
        for local_field, mapping in self.field_mappings.items():
            if crm_data.get(mapping.crm_field) is not None:
                lead[local_field] = crm_data[mapping.crm_field]

        if crm_data.get("gaming_lead_score"):
            lead["lead_score"] = int(float(crm_data["gaming_lead_score"]))
        if crm_data.get("gaming_achievements"):
            lead["achievements"] = [a for a in str(crm_data["gaming_achievements"]).split(", ") if a]
        if crm_data.get("gaming_power_ups"):
            lead["power_ups"] = [p for p in str(crm_data["gaming_power_ups"]).split(", ") if p]
        if crm_data.get("gaming_player_level"):
            lead["player_level"] = crm_data["gaming_player_level"]
        return lead

    def validate_lead(self, lead: LeadLike) -> List[str]:
        errors: List[str] = []
        email = _field(lead, "email")
        if not email or not EMAIL_RE.match(str(email)):
            errors.append("Invalid email address")
        name = _field(lead, "name")
        if not name or len(str(name).strip()) < 2:
            errors.append("Name is too short")
        phone = _field(lead, "phone")
        if phone and not BR_PHONE_RE.match(str(phone)):
            errors.append("Invalid phone number")
        for local_field, mapping in self.field_mappings.items():
            if mapping.required and not _field(lead, local_field):
                errors.append(f"{local_field} is required")
        return errors

    def log_activity(self, action: str, details: Optional[Dict[str, Any]] = None, level: int = logging.INFO) -> None:
        logger.log(level, f"CRM {self.provider} {action}: {details or {}}")
