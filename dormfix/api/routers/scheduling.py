"""Scheduling API: ranked contractor appointment recommendations."""
from __future__ import annotations


from fastapi import APIRouter, Depends, Request

from dormfix.api.dependencies import get_scheduling_service
from dormfix.api.schemas.scheduling import SchedulingRequestSchema, SchedulingResponse
from dormfix.services import SchedulingService


router = APIRouter(prefix="/scheduling", tags=["scheduling"])


@router.post("/recommendations", response_model=SchedulingResponse)
async def recommend_appointments(
    request: Request,
    body: SchedulingRequestSchema,
    service: SchedulingService = Depends(get_scheduling_service),
) -> SchedulingResponse:
    result = await service.schedule_appointment(body.to_request())
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is not None:
        notifier.notify_schedule(str(body.case_id) if body.case_id else None, result)
    return SchedulingResponse.model_validate(result.to_dict())
