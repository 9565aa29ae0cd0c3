from __future__ import annotations

from typing import Any, Dict, Protocol, runtime_checkable


@runtime_checkable
class PaymentGatewayPort(Protocol):
    """
    Recurring-payments gateway.

    Every call returns `{"success": bool, "data": {...}}` or
    `{"success": False, "error": {"code", "message", "details"}}`.
    """

    async def create_plan(self, plan: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def create_subscription(self, subscription: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        ...

    async def cancel_subscription(self, subscription_id: str) -> Dict[str, Any]:
        ...
