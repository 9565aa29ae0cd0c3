"""
Contact API Route

Mission intake from the site's contact form.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from playcode.application.services.contact_service import ContactService

from ..dependencies import json_body, provide, request_ip, user_agent

router = APIRouter()


@router.post("/contact")
async def submit_contact(
    request: Request,
    body: Any = Depends(json_body),
    service: ContactService = Depends(provide(ContactService)),
):
    result = await service.submit(body, ip=request_ip(request), user_agent=user_agent(request))
    return result.to_dict()


@router.get("/contact")
async def contact_status():
    return {
        "status": "online",
        "message": "🎮 Central de missões operacional!",
        "endpoints": {"submit": "POST /api/contact"},
        "security": ["rate-limit", "honeypot", "input-validation"],
    }
