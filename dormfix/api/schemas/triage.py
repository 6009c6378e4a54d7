"""Pydantic v2 schemas for the triage API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StartConversationRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=255)
    organization_id: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=8000)
    media_refs: List[str] = Field(default_factory=list)


class ContinueConversationRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=8000)
    media_refs: List[str] = Field(default_factory=list)


class CompletenessSchema(BaseModel):
    score: int
    is_ready: bool
    missing_elements: List[str] = []
    reasoning: str


class AgentResponseSchema(BaseModel):
    message: str
    urgency_level: str
    safety_flags: List[str] = []
    next_action: str
    is_complete: bool = False
    case_id: Optional[UUID] = None
    case_number: Optional[str] = None
    linked_existing_case: bool = False
    media_request: Optional[Dict[str, Any]] = None
    diy_action: Optional[Dict[str, Any]] = None
    completeness: Optional[CompletenessSchema] = None
    overridden: bool = False
    fallback_used: bool = False


class TurnResponse(BaseModel):
    conversation_id: UUID
    response: AgentResponseSchema


class TurnSchema(BaseModel):
    role: str
    message: str
    timestamp: datetime
    urgency_level: Optional[str] = None
    safety_flags: List[str] = []
    media_refs: List[str] = []


class LocationSchema(BaseModel):
    building_name: Optional[str] = None
    room_number: Optional[str] = None
    is_location_confirmed: bool = False


class ConversationStateResponse(BaseModel):
    conversation_id: UUID
    student_id: str
    organization_id: str
    phase: str
    urgency_level: str
    safety_flags: List[str] = []
    slots: Dict[str, Any] = {}
    location: LocationSchema
    pending_questions: List[str] = []
    history: List[TurnSchema] = []
    case_id: Optional[UUID] = None
    case_number: Optional[str] = None
    is_complete: bool = False
    completed_at: Optional[datetime] = None
    version: int = 0
