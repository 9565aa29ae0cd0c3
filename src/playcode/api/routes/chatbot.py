"""
PlayBot API Route
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from playcode.application.services.chatbot_service import ChatbotService

from ..dependencies import json_body, provide, request_ip

router = APIRouter()


@router.post("/chatbot")
async def chat(
    request: Request,
    body: Any = Depends(json_body),
    service: ChatbotService = Depends(provide(ChatbotService)),
):
    return await service.chat(body, ip=request_ip(request))


@router.get("/chatbot")
async def chatbot_status(service: ChatbotService = Depends(provide(ChatbotService))):
    return service.status()
