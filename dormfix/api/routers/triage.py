"""Triage API: start a conversation, send a turn, read the stored state."""
from __future__ import annotations

import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from dormfix.api.dependencies import get_triage_service
from dormfix.api.schemas.triage import (
    AgentResponseSchema,
    ContinueConversationRequest,
    ConversationStateResponse,
    StartConversationRequest,
    TurnResponse,
)
from dormfix.services import TriageService
from dormfix.triage.types import TriageState, TurnOutcome


router = APIRouter(prefix="/triage", tags=["triage"])
limiter = Limiter(key_func=get_remote_address)


def _turn_response(outcome: TurnOutcome) -> TurnResponse:
    return TurnResponse(
        conversation_id=outcome.state.conversation_id,
        response=AgentResponseSchema.model_validate(outcome.response.to_dict()),
    )


def _state_response(state: TriageState) -> ConversationStateResponse:
    data: Dict[str, Any] = {
        "conversation_id": state.conversation_id,
        "student_id": state.student_id,
        "organization_id": state.organization_id,
        "phase": state.phase.value,
        "urgency_level": state.urgency_level.value,
        "safety_flags": list(state.safety_flags),
        "slots": dict(state.slots),
        "location": state.location.to_dict(),
        "pending_questions": list(state.pending_questions),
        "history": [t.to_dict() for t in state.history],
        "case_id": state.case_id,
        "case_number": state.case_number,
        "is_complete": state.is_complete,
        "completed_at": state.completed_at,
        "version": state.version,
    }
    return ConversationStateResponse.model_validate(data)


@router.post("/conversations", response_model=TurnResponse, status_code=201)
@limiter.limit("30/minute")
async def start_conversation(
    request: Request,
    body: StartConversationRequest,
    service: TriageService = Depends(get_triage_service),
) -> TurnResponse:
    outcome = await service.start_conversation(
        body.student_id, body.organization_id, body.message, body.media_refs,
    )
    return _turn_response(outcome)


@router.post("/conversations/{conversation_id}/messages", response_model=TurnResponse)
@limiter.limit("30/minute")
async def send_message(
    request: Request,
    conversation_id: uuid.UUID,
    body: ContinueConversationRequest,
    service: TriageService = Depends(get_triage_service),
) -> TurnResponse:
    outcome = await service.continue_conversation(conversation_id, body.message, body.media_refs)
    return _turn_response(outcome)


@router.get("/conversations/{conversation_id}", response_model=ConversationStateResponse)
async def get_conversation(
    conversation_id: uuid.UUID,
    service: TriageService = Depends(get_triage_service),
) -> ConversationStateResponse:
    state = await service.get_conversation(conversation_id)
    return _state_response(state)
