"""Scheduling data structures: requests, candidate slots, recommendations and results."""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID


class SchedulingUrgency(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class RecommendationPriority(str, Enum):
    PRIMARY = "primary"
    ALTERNATIVE = "alternative"


class Workload(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"

    @classmethod
    def from_score(cls, score: float) -> "Workload":
        if score < 0.3:
            return cls.LIGHT
        if score < 0.7:
            return cls.MODERATE
        return cls.HEAVY


@dataclass(frozen=True)
class TimeWindow:
    start: _dt.datetime
    end: _dt.datetime

    def contains(self, start: _dt.datetime, end: _dt.datetime) -> bool:
        return start >= self.start and end <= self.end


@dataclass
class SchedulingRequest:
    case_id: Optional[UUID]
    urgency: SchedulingUrgency
    estimated_duration: str = "2 hours"
    contractor_id: Optional[UUID] = None
    requires_tenant_access: bool = False
    preferred_time_slots: List[TimeWindow] = field(default_factory=list)
    must_complete_by: Optional[_dt.datetime] = None
    category: Optional[str] = None
    """Overrides the case's category when given."""


@dataclass(frozen=True)
class AvailabilitySlot:
    """One candidate start time for one contractor. Derived on demand, never stored."""

    contractor_id: UUID
    contractor_name: str
    start: _dt.datetime
    end: _dt.datetime
    is_available: bool
    conflicting_count: int
    workload_score: float
    response_time_hours: float
    hourly_rate: Optional[float] = None


@dataclass(frozen=True)
class AppointmentRecommendation:
    contractor_id: UUID
    contractor_name: str
    start: _dt.datetime
    end: _dt.datetime
    confidence: float
    reasoning: str
    priority: RecommendationPriority
    workload: Workload
    approval_required: bool
    approval_deadline: Optional[_dt.datetime] = None
    estimated_cost: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractor_id": str(self.contractor_id),
            "contractor_name": self.contractor_name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "confidence": round(self.confidence, 4),
            "reasoning": self.reasoning,
            "priority": self.priority.value,
            "workload": self.workload.value,
            "approval_required": self.approval_required,
            "approval_deadline": self.approval_deadline.isoformat() if self.approval_deadline else None,
            "estimated_cost": self.estimated_cost,
        }


@dataclass
class SchedulingResult:
    success: bool
    recommendations: List[AppointmentRecommendation]
    reasoning: str
    total_options: int
    optimization_score: float
    analysis_completed_at: _dt.datetime

    @property
    def primary(self) -> Optional[AppointmentRecommendation]:
        return self.recommendations[0] if self.recommendations else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "reasoning": self.reasoning,
            "total_options": self.total_options,
            "optimization_score": round(self.optimization_score, 4),
            "analysis_completed_at": self.analysis_completed_at.isoformat(),
        }
