from .base_adapter import BaseCRMAdapter
from .manager import CRMManager, map_webhook_type
from .types import (
    SUPPORTED_PROVIDERS,
    CRMAdapterConfig,
    CRMCustomField,
    CRMEvent,
    CRMFieldMapping,
    CRMNotification,
    CRMResponse,
    CRMSearchQuery,
    CRMWebhookEvent,
)

__all__ = [
    "SUPPORTED_PROVIDERS",
    "BaseCRMAdapter",
    "CRMAdapterConfig",
    "CRMCustomField",
    "CRMEvent",
    "CRMFieldMapping",
    "CRMManager",
    "CRMNotification",
    "CRMResponse",
    "CRMSearchQuery",
    "CRMWebhookEvent",
    "map_webhook_type",
]
