"""TriageOrchestrator: runs one student turn through safety, analysis, generation and gating.

The language model's answer is a proposal. Urgency is floored by the context
analyzer, slots merge stickily, and completion is decided by the completeness
scorer, never by the model alone.
"""
from __future__ import annotations

import asyncio
import copy
import datetime as _dt
import logging
from typing import Callable, List, Optional, Protocol

from dormfix.config.triage import TriageConfig
from dormfix.core.exceptions import GenerationError, RoutingError
from dormfix.triage.completeness import missing_info_message, score_completeness
from dormfix.triage.context import analyze_context
from dormfix.triage.generation import GenerationClient, GenerationRequest, GenerationResponse
from dormfix.triage.location import resolve_location
from dormfix.triage.merge import (
    apply_inferred_info,
    infer_issue_summary,
    merge_location,
    merge_slots,
    next_pending_questions,
    union_flags,
)
from dormfix.triage.safety import check_safety
from dormfix.triage.types import (
    CONTACT_SLOTS,
    AgentResponse,
    CompletenessResult,
    ContextAnalysis,
    LocationMatch,
    MaterializedCase,
    NextAction,
    Phase,
    Role,
    TriageState,
    Turn,
    TurnOutcome,
    UrgencyLevel,
    raise_urgency,
)

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "I'm having trouble processing your message right now. "
    "Let me connect you with someone who can help immediately."
)
PROCESSING_ERROR_FLAG = "processing_error"
ROUTING_FAILED_FLAG = "routing_failed"

ROUTING_FAILURE_MESSAGE = (
    "I couldn't match your building to our housing records, so I can't file this "
    "request automatically. A staff member will follow up with you directly."
)

_CONTACT_LABELS = {
    "student_name": "your name",
    "student_email": "your email address",
    "student_phone": "a phone number",
}


class CaseMaterializer(Protocol):
    async def materialize(self, state: TriageState) -> MaterializedCase:
        ...


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def emergency_contact_message(state: TriageState) -> str:
    missing = [_CONTACT_LABELS[k] for k in CONTACT_SLOTS if not state.slots.get(k)]
    if len(missing) > 1:
        wanted = ", ".join(missing[:-1]) + " and " + missing[-1]
    else:
        wanted = missing[0] if missing else "your contact details"
    return (
        "This needs urgent attention and I'm flagging it for the emergency team now. "
        f"So they can reach you, please send {wanted}."
    )


class TriageOrchestrator:
    def __init__(
        self,
        generation: GenerationClient,
        materializer: CaseMaterializer,
        *,
        config: Optional[TriageConfig] = None,
        clock: Callable[[], _dt.datetime] = _utcnow,
    ) -> None:
        self._generation = generation
        self._materializer = materializer
        self._config = config or TriageConfig()
        self._clock = clock

    # ── public ───────────────────────────────────────────────────────────────

    async def process_turn(
        self,
        state: TriageState,
        message: str,
        media_refs: Optional[List[str]] = None,
    ) -> TurnOutcome:
        """Run one student message. *state* is not mutated; the outcome carries the new state."""
        state = copy.deepcopy(state)
        now = self._clock()
        student_turn = Turn(
            role=Role.STUDENT,
            message=message,
            timestamp=now,
            media_refs=list(media_refs or []),
        )

        # 1. Safety first, always
        safety = check_safety(message)
        state.safety_flags = union_flags(state.safety_flags, safety.flags)
        student_turn.safety_flags = list(safety.flags)
        if safety.is_emergency:
            state.urgency_level = UrgencyLevel.EMERGENCY
            student_turn.urgency_level = UrgencyLevel.EMERGENCY
            response = AgentResponse(
                message=safety.emergency_message or FALLBACK_MESSAGE,
                urgency_level=UrgencyLevel.EMERGENCY,
                safety_flags=list(state.safety_flags),
                next_action=NextAction.ESCALATE_IMMEDIATE,
            )
            logger.warning(
                "TriageOrchestrator: hazard '%s' detected, returning fixed script",
                safety.hazard, extra={"conversation_id": state.conversation_id},
            )
            self._append_turns(state, student_turn, response, now)
            return TurnOutcome(state=state, response=response)

        # 2. Deterministic analysis
        context, extracted = await self._analyze(message)

        # 3. Generation
        request = GenerationRequest(
            message=message,
            history=list(state.history),
            known_slots=dict(state.slots),
            pending_questions=list(state.pending_questions),
            context=context,
            location=extracted,
            safety_flags=list(state.safety_flags),
        )
        try:
            generated = await self._generation.generate(request)
        except GenerationError as exc:
            logger.warning(
                "TriageOrchestrator: generation failed (%s), using fallback",
                exc, extra={"conversation_id": state.conversation_id},
            )
            return self._fallback(state, student_turn, message, context, extracted, now)

        # 4. Merge
        base_urgency = state.urgency_level if state.student_turn_count else generated.urgency_level
        urgency = raise_urgency(raise_urgency(base_urgency, generated.urgency_level), context.inferred_urgency)
        state.urgency_level = urgency
        state.safety_flags = union_flags(state.safety_flags, generated.safety_flags)
        student_turn.urgency_level = urgency
        self._merge_slots(state, generated, message, context, extracted)

        # 5. Rescore
        completeness = self._score(state, message, context)

        # 6. Deterministic override of premature completion
        next_action = generated.next_action
        reply = generated.compose_message()
        overridden = False
        if next_action == NextAction.COMPLETE_TRIAGE and not completeness.is_ready:
            logger.warning(
                "TriageOrchestrator: premature completion overridden (%s)",
                completeness.reasoning, extra={"conversation_id": state.conversation_id},
            )
            next_action = NextAction.ASK_FOLLOWUP
            reply = missing_info_message(completeness)
            overridden = True

        # 7. Materialization decision
        emergency_path = urgency == UrgencyLevel.EMERGENCY or next_action == NextAction.ESCALATE_IMMEDIATE
        should_materialize = (
            (completeness.is_ready and next_action == NextAction.COMPLETE_TRIAGE)
            or (emergency_path and state.has_contact_info())
        )
        if emergency_path and not state.has_contact_info():
            next_action = NextAction.ESCALATE_IMMEDIATE
            reply = emergency_contact_message(state)
            overridden = True

        state.pending_questions = next_pending_questions(
            state.pending_questions, generated.queued_questions, generated.next_question,
        )

        response = AgentResponse(
            message=reply,
            urgency_level=urgency,
            safety_flags=list(state.safety_flags),
            next_action=next_action,
            media_request=generated.media_request.model_dump() if generated.media_request else None,
            diy_action=generated.diy_action.model_dump() if generated.diy_action else None,
            completeness=completeness,
            overridden=overridden,
        )

        # 8. Materialize
        if should_materialize:
            await self._materialize(state, response, now)

        self._append_turns(state, student_turn, response, now)
        return TurnOutcome(state=state, response=response)

    # ── steps ────────────────────────────────────────────────────────────────

    async def _analyze(self, message: str) -> tuple:
        """Context analysis and location extraction share nothing, so they run side by side."""
        loop = asyncio.get_running_loop()
        context, extracted = await asyncio.gather(
            loop.run_in_executor(None, analyze_context, message),
            loop.run_in_executor(None, resolve_location, message),
        )
        return context, extracted

    def _merge_slots(
        self,
        state: TriageState,
        generated: GenerationResponse,
        message: str,
        context: ContextAnalysis,
        extracted: LocationMatch,
    ) -> None:
        slots = merge_slots(state.slots, generated.slot_updates())
        slots, location = merge_location(slots, generated.location_updates(), extracted)
        slots = apply_inferred_info(slots, context)
        slots = infer_issue_summary(slots, message)
        if generated.media_request is not None and generated.media_request.type == "photo":
            slots = merge_slots(slots, {"photo_requested": True})
        state.slots = slots
        state.location = location

    def _threshold(self, state: TriageState, context: Optional[ContextAnalysis]) -> int:
        # Frustration and long conversations relax the score only; gates still apply.
        student_turns = state.student_turn_count + 1
        if (context is not None and context.is_frustrated) or student_turns >= self._config.long_conversation_turns:
            return self._config.relaxed_threshold
        return self._config.ready_threshold

    def _score(self, state: TriageState, message: str, context: ContextAnalysis) -> CompletenessResult:
        return score_completeness(
            state.slots,
            state.location,
            message,
            context,
            len(state.history) + 1,
            threshold=self._threshold(state, context),
        )

    async def _materialize(self, state: TriageState, response: AgentResponse, now: _dt.datetime) -> None:
        try:
            case = await self._materializer.materialize(state)
        except RoutingError as exc:
            logger.error(
                "TriageOrchestrator: case not created, routing failed: %s",
                exc, extra={"conversation_id": state.conversation_id},
            )
            state.safety_flags = union_flags(state.safety_flags, [ROUTING_FAILED_FLAG])
            response.safety_flags = list(state.safety_flags)
            response.next_action = NextAction.ESCALATE_IMMEDIATE
            response.message = ROUTING_FAILURE_MESSAGE
            return

        state.case_id = case.case_id
        state.case_number = case.case_number
        state.phase = Phase.FINAL_TRIAGE
        state.is_complete = True
        state.completed_at = state.completed_at or now

        response.case_id = case.case_id
        response.case_number = case.case_number
        response.linked_existing_case = case.linked_existing
        response.is_complete = True
        if case.confirmation:
            response.message = f"{response.message}\n\n{case.confirmation}" if response.message else case.confirmation
        logger.info(
            "TriageOrchestrator: conversation completed with case %s (linked=%s)",
            case.case_number, case.linked_existing,
            extra={"conversation_id": state.conversation_id, "case_number": case.case_number},
        )

    def _fallback(
        self,
        state: TriageState,
        student_turn: Turn,
        message: str,
        context: ContextAnalysis,
        extracted: LocationMatch,
        now: _dt.datetime,
    ) -> TurnOutcome:
        # Deterministic facts are still worth keeping.
        slots, location = merge_location(state.slots, None, extracted)
        slots = apply_inferred_info(slots, context)
        state.slots = infer_issue_summary(slots, message)
        state.location = location
        state.urgency_level = raise_urgency(state.urgency_level, UrgencyLevel.URGENT)
        state.safety_flags = union_flags(state.safety_flags, [PROCESSING_ERROR_FLAG])
        student_turn.urgency_level = state.urgency_level
        response = AgentResponse(
            message=FALLBACK_MESSAGE,
            urgency_level=state.urgency_level,
            safety_flags=list(state.safety_flags),
            next_action=NextAction.ESCALATE_IMMEDIATE,
            fallback_used=True,
        )
        self._append_turns(state, student_turn, response, now)
        return TurnOutcome(state=state, response=response)

    @staticmethod
    def _append_turns(state: TriageState, student_turn: Turn, response: AgentResponse, now: _dt.datetime) -> None:
        state.history.append(student_turn)
        state.history.append(
            Turn(
                role=Role.AGENT,
                message=response.message,
                timestamp=now,
                urgency_level=response.urgency_level,
                safety_flags=list(response.safety_flags),
            )
        )
