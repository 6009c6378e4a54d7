"""Maintenance cases API: read a case created by triage."""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from dormfix.api.dependencies import get_session
from dormfix.core.exceptions import NotFoundError
from dormfix.services import CaseService

router = APIRouter(prefix="/cases", tags=["cases"])


class ReporterInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class CaseResponse(BaseModel):
    id: str
    case_number: str
    conversation_id: Optional[str] = None
    organization_id: str
    title: str
    description: str
    category: str
    priority: str
    status: str
    building_name: str
    room_number: Optional[str] = None
    routing_id: Optional[str] = None
    reporter: ReporterInfo
    metadata: Dict[str, Any] = {}
    created_at: Optional[str] = None


@router.get("/{case_id}", response_model=CaseResponse)
async def get_case(case_id: uuid.UUID, session: AsyncSession = Depends(get_session)) -> CaseResponse:
    case = await CaseService(session).get_case(case_id)
    if case is None:
        raise NotFoundError("Maintenance case not found", details={"case_id": str(case_id)})
    return CaseResponse.model_validate(case.to_dict())
