"""
Analytics API Route

Gaming event tracking and the dashboard aggregate.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from playcode.application.services.analytics_service import AnalyticsService

from ..dependencies import json_body, provide, request_ip, user_agent

router = APIRouter()


@router.post("/analytics")
async def track_event(
    request: Request,
    body: Any = Depends(json_body),
    service: AnalyticsService = Depends(provide(AnalyticsService)),
):
    return service.track(
        body,
        ip=request_ip(request),
        user_agent=user_agent(request),
        referer=request.headers.get("referer", ""),
    )


@router.get("/analytics")
async def analytics_dashboard(
    timeframe: Optional[str] = Query("24h", description="1h | 24h | 7d | 30d"),
    category: Optional[str] = Query(None),
    service: AnalyticsService = Depends(provide(AnalyticsService)),
):
    return service.dashboard(timeframe, category)
