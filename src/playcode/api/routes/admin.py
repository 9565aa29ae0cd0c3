"""
Admin API Route

Session login and the onboarding review board.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel

from playcode.application.services.admin_service import ADMIN_COOKIE, AdminAuth, AdminOnboardingService

from ..dependencies import provide, request_ip, require_admin, user_agent

router = APIRouter()


class AdminLoginRequest(BaseModel):
    username: str
    password: str


class AdminActionRequest(BaseModel):
    action: Optional[str] = None
    onboardingId: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


@router.post("/admin/login")
async def admin_login(
    req: AdminLoginRequest,
    request: Request,
    response: Response,
    auth: AdminAuth = Depends(provide(AdminAuth)),
):
    session = auth.login(req.username, req.password, ip=request_ip(request), user_agent=user_agent(request))
    response.set_cookie(
        ADMIN_COOKIE,
        session,
        max_age=auth.session_seconds,
        httponly=True,
        samesite="lax",
        secure=not auth.settings.is_development,
    )
    return {"success": True, "message": "Login realizado com sucesso"}


@router.post("/admin/logout")
async def admin_logout(response: Response):
    response.delete_cookie(ADMIN_COOKIE)
    return {"success": True, "message": "Logout realizado"}


@router.get("/admin/onboarding", dependencies=[Depends(require_admin)])
async def list_onboardings(
    filter: Optional[str] = Query(None, description="all | completed | pending"),
    serviceType: Optional[str] = Query(None),
    planType: Optional[str] = Query(None),
    service: AdminOnboardingService = Depends(provide(AdminOnboardingService)),
):
    return service.board(filter, serviceType, planType)


@router.post("/admin/onboarding", dependencies=[Depends(require_admin)])
async def onboarding_action(
    req: AdminActionRequest,
    service: AdminOnboardingService = Depends(provide(AdminOnboardingService)),
):
    return service.perform(req.action, req.onboardingId, req.data)


@router.get("/admin/onboarding/{onboarding_id}", dependencies=[Depends(require_admin)])
async def onboarding_detail(
    onboarding_id: str,
    service: AdminOnboardingService = Depends(provide(AdminOnboardingService)),
):
    return {"success": True, "data": service.detail(onboarding_id)}
