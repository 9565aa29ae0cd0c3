"""
Payment Webhooks API Route

PagSeguro subscription events and the sandbox activation stand-in.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from playcode.application.services.payment_webhook_service import PaymentWebhookService
from playcode.core.errors import AuthenticationError

from ..dependencies import json_body, provide

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/pagseguro")
async def pagseguro_webhook(
    request: Request,
    service: PaymentWebhookService = Depends(provide(PaymentWebhookService)),
):
    raw = await request.body()
    try:
        return await service.handle(raw, request.headers.get("x-pagseguro-signature", ""))
    except AuthenticationError:
        raise
    except Exception as e:
        logger.error(f"PagSeguro webhook processing failed: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": "Webhook processing failed"})


@router.get("/webhooks/pagseguro")
async def pagseguro_webhook_health():
    return {
        "status": "active",
        "service": "pagseguro-webhooks",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/webhooks/pagseguro-mock")
async def pagseguro_mock_webhook(
    body: Any = Depends(json_body),
    service: PaymentWebhookService = Depends(provide(PaymentWebhookService)),
):
    return await service.handle_mock(body if isinstance(body, dict) else {})
