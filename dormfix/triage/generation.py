"""Generation client: one bounded, schema-validated language-model call per triage turn.

Wraps ``BaseLLMClient.function_call`` behind a narrow interface. Anything other
than a valid ``generate_triage_response`` payload within the timeout raises
``GenerationError``; the orchestrator owns the fallback.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from dormfix.clients.llm.base import BaseLLMClient, LLMMessage
from dormfix.core.exceptions import GenerationError
from dormfix.triage.prompts import SYSTEM_PROMPT, TOOL_NAME, TRIAGE_TOOL, build_turn_prompt
from dormfix.triage.types import (
    ContextAnalysis,
    LocationMatch,
    NextAction,
    Role,
    Turn,
    UrgencyLevel,
)

logger = logging.getLogger(__name__)

_SLOT_WIRE_NAMES = {
    "buildingName": "building_name",
    "roomNumber": "room_number",
    "issueSummary": "issue_summary",
    "timeline": "timeline",
    "severity": "severity",
    "studentName": "student_name",
    "studentEmail": "student_email",
    "studentPhone": "student_phone",
    "photoRequested": "photo_requested",
}


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GeneratedSlots(_WireModel):
    buildingName: Optional[str] = None
    roomNumber: Optional[str] = None
    issueSummary: Optional[str] = None
    timeline: Optional[str] = None
    severity: Optional[str] = None
    studentName: Optional[str] = None
    studentEmail: Optional[str] = None
    studentPhone: Optional[str] = None
    photoRequested: Optional[bool] = None


class GeneratedLocation(_WireModel):
    buildingName: Optional[str] = None
    roomNumber: Optional[str] = None
    isLocationConfirmed: Optional[bool] = None


class MediaRequest(_WireModel):
    type: str = Field(pattern="^(photo|video|audio)$")
    reason: Optional[str] = None


class DiyAction(_WireModel):
    action: str
    instructions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class GenerationResponse(_WireModel):
    """Validated ``generate_triage_response`` arguments. The first four fields are required."""

    message: str
    urgency_level: UrgencyLevel = Field(validation_alias=AliasChoices("urgencyLevel", "urgency_level"))
    safety_flags: List[str] = Field(validation_alias=AliasChoices("safetyFlags", "safety_flags"))
    next_action: NextAction = Field(validation_alias=AliasChoices("nextAction", "next_action"))
    slots: Optional[GeneratedSlots] = Field(default=None, validation_alias=AliasChoices("slots", "conversationSlots"))
    location: Optional[GeneratedLocation] = None
    next_question: Optional[str] = Field(default=None, validation_alias=AliasChoices("nextQuestion", "next_question"))
    queued_questions: List[str] = Field(default_factory=list, validation_alias=AliasChoices("queuedQuestions", "queued_questions"))
    acknowledgment: Optional[str] = None
    media_request: Optional[MediaRequest] = Field(default=None, validation_alias=AliasChoices("mediaRequest", "media_request"))
    diy_action: Optional[DiyAction] = Field(default=None, validation_alias=AliasChoices("diyAction", "diy_action"))
    is_complete: Optional[bool] = Field(default=None, validation_alias=AliasChoices("isComplete", "is_complete"))

    def slot_updates(self) -> Dict[str, Any]:
        if self.slots is None:
            return {}
        raw = self.slots.model_dump(exclude_none=True)
        return {_SLOT_WIRE_NAMES[k]: v for k, v in raw.items()}

    def location_updates(self) -> Dict[str, Any]:
        if self.location is None:
            return {}
        return {
            "building_name": self.location.buildingName,
            "room_number": self.location.roomNumber,
        }

    def compose_message(self) -> str:
        """The reply text, built from acknowledgment + next question when ``message`` is empty."""
        if self.message.strip():
            return self.message.strip()
        parts = [p.strip() for p in (self.acknowledgment, self.next_question) if p and p.strip()]
        return " ".join(parts)


@dataclass
class GenerationRequest:
    message: str
    history: List[Turn] = field(default_factory=list)
    known_slots: Dict[str, Any] = field(default_factory=dict)
    pending_questions: List[str] = field(default_factory=list)
    context: Optional[ContextAnalysis] = None
    location: Optional[LocationMatch] = None
    safety_flags: List[str] = field(default_factory=list)

    @property
    def is_initial(self) -> bool:
        return not any(t.role == Role.STUDENT for t in self.history)

    def analysis(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"safety_flags": list(self.safety_flags)}
        if self.context is not None:
            out.update(
                emotional_context=self.context.emotional_context.value,
                inferred_urgency=self.context.inferred_urgency.value,
                timeline_indicators=list(self.context.timeline_indicators),
                severity_indicators=list(self.context.severity_indicators),
            )
        if self.location is not None:
            out["extracted_location"] = {
                "building_name": self.location.building_name,
                "room_number": self.location.room_number,
                "confidence": self.location.confidence.value,
            }
        return out


class GenerationClient:
    """Calls the language model with the triage tool and validates the answer."""

    def __init__(
        self,
        llm_client: BaseLLMClient,
        *,
        timeout: float = 20.0,
        max_history_turns: int = 20,
    ) -> None:
        self._llm = llm_client
        self._timeout = timeout
        self._max_history_turns = max_history_turns

    def _history_messages(self, history: List[Turn]) -> List[LLMMessage]:
        messages: List[LLMMessage] = [{"role": "system", "content": SYSTEM_PROMPT}]
        for turn in history[-self._max_history_turns:]:
            role = "assistant" if turn.role == Role.AGENT else "user"
            messages.append({"role": role, "content": turn.message})
        return messages

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        prompt = build_turn_prompt(
            request.message,
            is_initial=request.is_initial,
            known_slots=request.known_slots,
            pending_questions=request.pending_questions,
            analysis=request.analysis(),
        )
        try:
            result = await asyncio.wait_for(
                self._llm.function_call(
                    prompt,
                    [TRIAGE_TOOL],
                    conversation_history=self._history_messages(request.history),
                    tool_choice=TOOL_NAME,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise GenerationError(
                f"Generation timed out after {self._timeout}s",
                details={"provider": self._llm.provider},
                cause=exc,
            ) from exc
        except Exception as exc:
            raise GenerationError(
                "Generation call failed",
                details={"provider": self._llm.provider},
                cause=exc,
            ) from exc

        if result is None:
            raise GenerationError("Model returned no structured response", details={"provider": self._llm.provider})
        if result.tool_name != TOOL_NAME:
            raise GenerationError(
                "Model called an unexpected tool",
                details={"tool_name": result.tool_name},
            )

        try:
            response = GenerationResponse.model_validate(result.arguments)
        except PydanticValidationError as exc:
            raise GenerationError(
                "Model response does not match the triage schema",
                details={"errors": exc.errors(include_url=False)},
                cause=exc,
            ) from exc

        if not response.compose_message():
            raise GenerationError("Model response has no message text")
        logger.debug(
            "GenerationClient: action=%s urgency=%s",
            response.next_action.value, response.urgency_level.value,
        )
        return response
