"""Pydantic v2 schemas for the scheduling API."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from dormfix.scheduling.types import SchedulingRequest, SchedulingUrgency, TimeWindow


class TimeWindowSchema(BaseModel):
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _ordered(self) -> "TimeWindowSchema":
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class SchedulingRequestSchema(BaseModel):
    case_id: Optional[UUID] = None
    contractor_id: Optional[UUID] = None
    urgency: Literal["Low", "Medium", "High", "Critical"]
    estimated_duration: str = Field(default="2 hours", max_length=64)
    requires_tenant_access: bool = False
    preferred_time_slots: List[TimeWindowSchema] = []
    must_complete_by: Optional[datetime] = None
    category: Optional[str] = Field(default=None, max_length=64)

    @model_validator(mode="after")
    def _has_target(self) -> "SchedulingRequestSchema":
        if self.case_id is None and not self.category and self.contractor_id is None:
            raise ValueError("one of case_id, category or contractor_id is required")
        return self

    def to_request(self) -> SchedulingRequest:
        return SchedulingRequest(
            case_id=self.case_id,
            urgency=SchedulingUrgency(self.urgency),
            estimated_duration=self.estimated_duration,
            contractor_id=self.contractor_id,
            requires_tenant_access=self.requires_tenant_access,
            preferred_time_slots=[TimeWindow(w.start, w.end) for w in self.preferred_time_slots],
            must_complete_by=self.must_complete_by,
            category=self.category,
        )


class RecommendationSchema(BaseModel):
    contractor_id: UUID
    contractor_name: str
    start: datetime
    end: datetime
    confidence: float
    reasoning: str
    priority: str
    workload: str
    approval_required: bool
    approval_deadline: Optional[datetime] = None
    estimated_cost: Optional[float] = None


class SchedulingResponse(BaseModel):
    success: bool
    recommendations: List[RecommendationSchema] = []
    reasoning: str
    total_options: int
    optimization_score: float
    analysis_completed_at: datetime
