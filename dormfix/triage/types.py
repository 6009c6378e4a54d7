"""Core data structures for the triage (intake) layer."""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

SLOT_KEYS: Tuple[str, ...] = (
    "building_name",
    "room_number",
    "issue_summary",
    "timeline",
    "severity",
    "student_name",
    "student_email",
    "student_phone",
    "photo_requested",
)
CONTACT_SLOTS: Tuple[str, ...] = ("student_name", "student_email", "student_phone")

Slots = Dict[str, Any]
"""Named facts collected so far, keyed by SLOT_KEYS."""


class Phase(str, Enum):
    GATHERING_INFO = "gathering_info"
    FINAL_TRIAGE = "final_triage"


class UrgencyLevel(str, Enum):
    EMERGENCY = "emergency"
    URGENT = "urgent"
    NORMAL = "normal"
    LOW = "low"

    @property
    def rank(self) -> int:
        """1 for emergency down to 4 for low."""
        return _URGENCY_RANK[self]

    def is_more_severe_than(self, other: "UrgencyLevel") -> bool:
        return self.rank < other.rank


_URGENCY_RANK = {
    UrgencyLevel.EMERGENCY: 1,
    UrgencyLevel.URGENT: 2,
    UrgencyLevel.NORMAL: 3,
    UrgencyLevel.LOW: 4,
}


def raise_urgency(current: UrgencyLevel, candidate: Optional[UrgencyLevel]) -> UrgencyLevel:
    """Return the more severe of the two levels. Never lowers *current*."""
    if candidate is not None and candidate.is_more_severe_than(current):
        return candidate
    return current


class NextAction(str, Enum):
    ASK_FOLLOWUP = "ask_followup"
    REQUEST_MEDIA = "request_media"
    ESCALATE_IMMEDIATE = "escalate_immediate"
    COMPLETE_TRIAGE = "complete_triage"
    RECOMMEND_DIY = "recommend_diy"


class EmotionalContext(str, Enum):
    FRUSTRATED = "frustrated"
    URGENT = "urgent"
    CALM = "calm"
    WORRIED = "worried"


class Role(str, Enum):
    STUDENT = "student"
    AGENT = "agent"


class LocationConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class Turn:
    """One appended entry of the conversation history. Never edited after append."""

    role: Role
    message: str
    timestamp: _dt.datetime
    urgency_level: Optional[UrgencyLevel] = None
    safety_flags: List[str] = field(default_factory=list)
    media_refs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "role": self.role.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.urgency_level is not None:
            out["urgency_level"] = self.urgency_level.value
        if self.safety_flags:
            out["safety_flags"] = list(self.safety_flags)
        if self.media_refs:
            out["media_refs"] = list(self.media_refs)
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        urgency = data.get("urgency_level")
        return cls(
            role=Role(data.get("role", "student")),
            message=str(data.get("message") or ""),
            timestamp=_dt.datetime.fromisoformat(data["timestamp"]),
            urgency_level=UrgencyLevel(urgency) if urgency else None,
            safety_flags=list(data.get("safety_flags") or []),
            media_refs=list(data.get("media_refs") or []),
        )


@dataclass
class Location:
    """Location view for downstream consumers; mirrors the building/room slots."""

    building_name: Optional[str] = None
    room_number: Optional[str] = None
    is_location_confirmed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "building_name": self.building_name,
            "room_number": self.room_number,
            "is_location_confirmed": self.is_location_confirmed,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Location":
        data = data or {}
        return cls(
            building_name=data.get("building_name"),
            room_number=data.get("room_number"),
            is_location_confirmed=bool(data.get("is_location_confirmed", False)),
        )


@dataclass(frozen=True)
class SafetyCheckResult:
    is_emergency: bool
    flags: Tuple[str, ...] = ()
    emergency_message: Optional[str] = None
    hazard: Optional[str] = None


@dataclass(frozen=True)
class ContextAnalysis:
    emotional_context: EmotionalContext
    inferred_urgency: UrgencyLevel
    timeline_indicators: Tuple[str, ...] = ()
    severity_indicators: Tuple[str, ...] = ()
    inferred_info: Dict[str, str] = field(default_factory=dict)

    @property
    def is_frustrated(self) -> bool:
        return self.emotional_context == EmotionalContext.FRUSTRATED


@dataclass(frozen=True)
class LocationMatch:
    building_name: Optional[str] = None
    room_number: Optional[str] = None
    confidence: LocationConfidence = LocationConfidence.LOW


@dataclass(frozen=True)
class CompletenessResult:
    score: int
    is_ready: bool
    missing_elements: Tuple[str, ...]
    reasoning: str
    gates: Dict[str, bool] = field(default_factory=dict)
    threshold: int = 70


@dataclass
class TriageState:
    """Everything known about one reported issue. Persisted by conversation id.

    ``version`` increases by one on every persisted turn and guards against
    concurrent writers.
    """

    student_id: str
    organization_id: str
    conversation_id: Optional[UUID] = None
    phase: Phase = Phase.GATHERING_INFO
    urgency_level: UrgencyLevel = UrgencyLevel.NORMAL
    safety_flags: List[str] = field(default_factory=list)
    history: List[Turn] = field(default_factory=list)
    slots: Slots = field(default_factory=dict)
    location: Location = field(default_factory=Location)
    pending_questions: List[str] = field(default_factory=list)
    case_id: Optional[UUID] = None
    case_number: Optional[str] = None
    is_complete: bool = False
    completed_at: Optional[_dt.datetime] = None
    version: int = 0

    @property
    def student_turn_count(self) -> int:
        return sum(1 for t in self.history if t.role == Role.STUDENT)

    def has_contact_info(self) -> bool:
        return all(_present(self.slots.get(k)) for k in CONTACT_SLOTS)


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


@dataclass
class AgentResponse:
    """What the student sees for one turn, plus the signals behind it."""

    message: str
    urgency_level: UrgencyLevel
    safety_flags: List[str]
    next_action: NextAction
    is_complete: bool = False
    case_id: Optional[UUID] = None
    case_number: Optional[str] = None
    linked_existing_case: bool = False
    media_request: Optional[Dict[str, Any]] = None
    diy_action: Optional[Dict[str, Any]] = None
    completeness: Optional[CompletenessResult] = None
    overridden: bool = False
    fallback_used: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "message": self.message,
            "urgency_level": self.urgency_level.value,
            "safety_flags": list(self.safety_flags),
            "next_action": self.next_action.value,
            "is_complete": self.is_complete,
            "case_id": str(self.case_id) if self.case_id else None,
            "case_number": self.case_number,
            "linked_existing_case": self.linked_existing_case,
            "media_request": self.media_request,
            "diy_action": self.diy_action,
            "overridden": self.overridden,
            "fallback_used": self.fallback_used,
        }
        if self.completeness is not None:
            out["completeness"] = {
                "score": self.completeness.score,
                "is_ready": self.completeness.is_ready,
                "missing_elements": list(self.completeness.missing_elements),
                "reasoning": self.completeness.reasoning,
            }
        return out


@dataclass
class TurnOutcome:
    state: TriageState
    response: AgentResponse


@dataclass(frozen=True)
class MaterializedCase:
    """A created (or re-used) maintenance case for a conversation."""

    case_id: UUID
    case_number: str
    category: str
    linked_existing: bool = False
    confirmation: str = ""
