"""
CRM API Route

Provider webhooks plus the admin view of CRM analytics and notifications.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from playcode.application.crm.manager import CRMManager
from playcode.application.services.crm_webhook_service import CRMWebhookService

from ..dependencies import provide, request_ip, require_admin

router = APIRouter()


@router.post("/crm/webhook")
async def crm_webhook(
    request: Request,
    provider: Optional[str] = Query(None),
    service: CRMWebhookService = Depends(provide(CRMWebhookService)),
):
    raw = await request.body()
    return await service.receive(
        raw,
        request.headers,
        provider=request.headers.get("x-crm-provider") or provider,
        ip=request_ip(request),
    )


@router.get("/crm/webhook")
async def crm_webhook_verify(
    provider: Optional[str] = Query(None),
    challenge: Optional[str] = Query(None),
    service: CRMWebhookService = Depends(provide(CRMWebhookService)),
):
    result = service.verify(provider, challenge)
    if isinstance(result, str):
        return PlainTextResponse(result)
    return result


@router.get("/crm/analytics", dependencies=[Depends(require_admin)])
async def crm_analytics(crm: CRMManager = Depends(provide(CRMManager))):
    return {
        "success": True,
        "enabled": crm.enabled,
        "providers": crm.get_supported_providers(),
        "data": crm.get_analytics(),
    }


@router.get("/crm/notifications", dependencies=[Depends(require_admin)])
async def crm_notifications(crm: CRMManager = Depends(provide(CRMManager))):
    return {"success": True, "data": [n.to_dict() for n in crm.get_notifications()]}
