"""
Approval API Route

Admin sends a proposal; the customer opens the emailed link and decides.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from playcode.application.services.approval_service import ApprovalService
from playcode.infrastructure.security.input_validation import ApprovalDecisionIn

from ..dependencies import json_body, provide, request_ip, user_agent

router = APIRouter()


@router.post("/approval/send")
async def send_proposal(
    request: Request,
    body: Any = Depends(json_body),
    service: ApprovalService = Depends(provide(ApprovalService)),
):
    data = await service.send_proposal(
        body if isinstance(body, dict) else {}, ip=request_ip(request), user_agent=user_agent(request)
    )
    return {"success": True, "message": "Proposta enviada com sucesso!", "data": data}


@router.get("/approval/{token}")
async def get_proposal(
    token: str,
    request: Request,
    service: ApprovalService = Depends(provide(ApprovalService)),
):
    return {"success": True, "data": service.get_proposal(token, ip=request_ip(request))}


@router.post("/approval/{token}")
async def decide_proposal(
    token: str,
    req: ApprovalDecisionIn,
    request: Request,
    service: ApprovalService = Depends(provide(ApprovalService)),
):
    result = await service.decide(token, req.action, req.feedback, ip=request_ip(request))
    return {"success": True, **result}
