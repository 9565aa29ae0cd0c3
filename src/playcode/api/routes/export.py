"""
Export API Route

Onboarding summary as a downloadable HTML or PDF document.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel

from playcode.application.services.export_service import ExportService

from ..dependencies import provide

router = APIRouter()


class ExportRequest(BaseModel):
    onboardingData: Optional[Dict[str, Any]] = None
    onboardingId: Optional[str] = None


@router.post("/export/onboarding")
async def export_onboarding(
    req: ExportRequest,
    format: str = Query("pdf", description="html | pdf"),
    service: ExportService = Depends(provide(ExportService)),
):
    onboarding = service.resolve(req.onboardingData, req.onboardingId)
    document = service.export(onboarding, format)
    return Response(
        content=document.content,
        media_type=document.content_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(document.filename)}"},
    )
