"""TriageService: conversation persistence around the TriageOrchestrator.

Turns on the same conversation are serialized by an in-process lock and
guarded across processes by the row's ``version`` column: a write only lands
if nobody else wrote since the state was loaded.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from dormfix.config.triage import TriageConfig
from dormfix.core.exceptions import ConflictError, NotFoundError
from dormfix.infra.database.repositories import TriageConversationRepository
from dormfix.services.case_service import CaseService
from dormfix.services.notification_service import NotificationService
from dormfix.triage.generation import GenerationClient
from dormfix.triage.orchestrator import TriageOrchestrator
from dormfix.triage.types import Location, Phase, TriageState, Turn, TurnOutcome, UrgencyLevel

logger = logging.getLogger(__name__)


class ConversationLocks:
    """One asyncio.Lock per conversation id; unused locks are dropped automatically."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[UUID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, conversation_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock


_default_locks = ConversationLocks()


def state_from_row(row: Any) -> TriageState:
    return TriageState(
        student_id=row.student_id,
        organization_id=row.organization_id,
        conversation_id=row.id,
        phase=Phase(row.current_phase or Phase.GATHERING_INFO.value),
        urgency_level=UrgencyLevel(row.urgency_level or UrgencyLevel.NORMAL.value),
        safety_flags=list(row.safety_flags or []),
        history=[Turn.from_dict(t) for t in (row.history or [])],
        slots=dict(row.slots or {}),
        location=Location.from_dict(row.location),
        pending_questions=list(row.pending_questions or []),
        case_id=row.case_id,
        case_number=row.case_number,
        is_complete=bool(row.is_complete),
        completed_at=row.completed_at,
        version=row.version or 0,
    )


def state_values(state: TriageState) -> Dict[str, Any]:
    """Column values for a persisted state, version excluded."""
    return {
        "current_phase": state.phase.value,
        "urgency_level": state.urgency_level.value,
        "safety_flags": list(state.safety_flags),
        "history": [t.to_dict() for t in state.history],
        "slots": dict(state.slots),
        "location": state.location.to_dict(),
        "pending_questions": list(state.pending_questions),
        "case_id": state.case_id,
        "case_number": state.case_number,
        "is_complete": state.is_complete,
        "completed_at": state.completed_at,
    }


class TriageService:
    def __init__(
        self,
        session: AsyncSession,
        generation: GenerationClient,
        *,
        config: Optional[TriageConfig] = None,
        notifier: Optional[NotificationService] = None,
        locks: Optional[ConversationLocks] = None,
    ) -> None:
        self._session = session
        self._config = config or TriageConfig()
        self._conv_repo = TriageConversationRepository(session)
        self._cases = CaseService(session, config=self._config)
        self._orchestrator = TriageOrchestrator(generation, self._cases, config=self._config)
        self._notifier = notifier or NotificationService()
        self._locks = locks or _default_locks

    async def start_conversation(
        self,
        student_id: str,
        organization_id: str,
        message: str,
        media_refs: Optional[List[str]] = None,
    ) -> TurnOutcome:
        row = await self._conv_repo.create({"student_id": student_id, "organization_id": organization_id})
        logger.info(
            "TriageService: conversation started for student %s", student_id,
            extra={"conversation_id": row.id},
        )
        async with self._locks.lock_for(row.id):
            return await self._run_turn(state_from_row(row), message, media_refs)

    async def continue_conversation(
        self,
        conversation_id: UUID,
        message: str,
        media_refs: Optional[List[str]] = None,
    ) -> TurnOutcome:
        async with self._locks.lock_for(conversation_id):
            state = await self.get_conversation(conversation_id)
            return await self._run_turn(state, message, media_refs)

    async def get_conversation(self, conversation_id: UUID) -> TriageState:
        row = await self._conv_repo.get_by_id(conversation_id)
        if row is None:
            raise NotFoundError("Conversation not found", details={"conversation_id": str(conversation_id)})
        return state_from_row(row)

    async def _run_turn(self, state: TriageState, message: str, media_refs: Optional[List[str]]) -> TurnOutcome:
        outcome = await self._orchestrator.process_turn(state, message, media_refs)
        saved = await self._conv_repo.save_if_version(state.conversation_id, state.version, state_values(outcome.state))
        if not saved:
            logger.warning(
                "TriageService: stale write rejected at version %d", state.version,
                extra={"conversation_id": state.conversation_id},
            )
            raise ConflictError(
                "Conversation was updated concurrently; please resend your message",
                details={"conversation_id": str(state.conversation_id), "version": state.version},
            )
        outcome.state.version = state.version + 1
        # Commit before the lock is released so the next turn sees this one.
        await self._session.commit()
        self._notifier.notify_turn(state, outcome.state, outcome.response)
        logger.info(
            "TriageService: turn stored (action=%s, urgency=%s, complete=%s)",
            outcome.response.next_action.value, outcome.response.urgency_level.value, outcome.state.is_complete,
            extra={
                "conversation_id": state.conversation_id,
                "next_action": outcome.response.next_action.value,
                "urgency": outcome.response.urgency_level.value,
            },
        )
        return outcome
