from .hubspot_adapter import HubSpotAdapter

__all__ = ["HubSpotAdapter"]
