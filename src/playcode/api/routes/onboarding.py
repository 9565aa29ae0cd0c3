"""
Onboarding API Route

Client-facing onboarding record, wizard progress and follow-ups.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from playcode.application.services.onboarding_service import OnboardingService
from playcode.domain.wizard import steps_for_service

from ..dependencies import provide

router = APIRouter()


class OnboardingUpdateRequest(BaseModel):
    formData: Optional[Dict[str, Any]] = None
    currentStep: Optional[int] = None
    completedSteps: Optional[List[int]] = None
    isCompleted: Optional[bool] = None
    completedAt: Optional[str] = None


@router.get("/onboarding/{onboarding_id}")
async def get_onboarding(
    onboarding_id: str,
    service: OnboardingService = Depends(provide(OnboardingService)),
):
    record = service.require_onboarding(onboarding_id, touch=True)
    return {"success": True, "data": record.to_api()}


@router.put("/onboarding/{onboarding_id}")
async def update_onboarding(
    onboarding_id: str,
    req: OnboardingUpdateRequest,
    service: OnboardingService = Depends(provide(OnboardingService)),
):
    record = service.apply_api_update(onboarding_id, req.model_dump(exclude_none=True))
    message = "Onboarding concluído com sucesso!" if record.is_completed else "Progresso salvo com sucesso"
    return {"message": message, "data": record.to_api()}


@router.delete("/onboarding/{onboarding_id}")
async def delete_onboarding(
    onboarding_id: str,
    service: OnboardingService = Depends(provide(OnboardingService)),
):
    service.delete_onboarding(onboarding_id)
    return {"success": True, "message": "Onboarding removido"}


@router.post("/onboarding/{onboarding_id}/reminders")
async def schedule_reminders(
    onboarding_id: str,
    service: OnboardingService = Depends(provide(OnboardingService)),
):
    service.require_onboarding(onboarding_id)
    reminders = service.schedule_follow_up_reminders(onboarding_id)
    return {"success": True, "data": reminders}


@router.get("/onboarding/{onboarding_id}/steps")
async def get_wizard_steps(
    onboarding_id: str,
    service: OnboardingService = Depends(provide(OnboardingService)),
):
    record = service.require_onboarding(onboarding_id)
    return {
        "success": True,
        "data": {
            "serviceType": record.service_type,
            "steps": [step.to_dict() for step in steps_for_service(record.service_type)],
            "progress": {"currentStep": record.current_step, "completedSteps": sorted(record.completed_steps)},
        },
    }
