"""
Payment API Route

Plan catalog, power-up orders and subscription checkout.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from playcode.application.services.checkout_service import CheckoutService

from ..dependencies import json_body, provide

router = APIRouter()


class AddonOrderRequest(BaseModel):
    addon_id: str = Field(..., min_length=1, description="Power-up id, e.g. seo-boost")
    customer_info: Optional[Dict[str, Any]] = None


@router.get("/payment/plans")
async def list_plans(
    plan_id: Optional[str] = Query(None, description="Return a single plan"),
    service: CheckoutService = Depends(provide(CheckoutService)),
):
    return {"success": True, "data": service.list_plans(plan_id)}


@router.get("/payment/addons")
async def list_addons(
    id: Optional[str] = Query(None, description="Return a single power-up"),
    service: CheckoutService = Depends(provide(CheckoutService)),
):
    return {"success": True, "data": service.list_power_ups(id)}


@router.post("/payment/addons")
async def create_addon_order(
    req: AddonOrderRequest,
    service: CheckoutService = Depends(provide(CheckoutService)),
):
    order = service.create_addon_order(req.addon_id, req.customer_info)
    return {"success": True, "data": order, "message": "Pedido de power-up criado"}


@router.post("/payment/checkout")
async def create_checkout(
    body: Any = Depends(json_body),
    service: CheckoutService = Depends(provide(CheckoutService)),
):
    return {"success": True, "data": await service.checkout(body if isinstance(body, dict) else {})}


@router.post("/payment/checkout-mock")
async def create_mock_checkout(
    body: Any = Depends(json_body),
    service: CheckoutService = Depends(provide(CheckoutService)),
):
    return {"success": True, "data": await service.checkout(body if isinstance(body, dict) else {}, mock=True)}


@router.get("/payment/checkout")
async def list_subscriptions(
    customer_email: Optional[str] = Query(None),
    service: CheckoutService = Depends(provide(CheckoutService)),
):
    return {"success": True, "data": service.list_subscriptions(customer_email)}
