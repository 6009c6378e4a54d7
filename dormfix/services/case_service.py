"""CaseService: turns a completed triage conversation into a maintenance case.

Steps: idempotent re-entry check, building routing, category detection,
structured case number, same-location duplicate linkage, then create.
A unique constraint on ``maintenance_cases.conversation_id`` settles racing
completions of the same conversation.
"""
from __future__ import annotations

import datetime as _dt
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dormfix.config.triage import TriageConfig
from dormfix.core.exceptions import RoutingError
from dormfix.infra.database.models.maintenance_case import MaintenanceCase
from dormfix.infra.database.repositories import MaintenanceCaseRepository
from dormfix.triage.categories import detect_category, domain_keywords
from dormfix.triage.location import building_code_for, canonicalize_building, routing_id_for
from dormfix.triage.types import MaterializedCase, Role, TriageState

logger = logging.getLogger(__name__)

DUPLICATE_SIMILARITY = 0.8
DUPLICATE_SIMILARITY_WITH_KEYWORDS = 0.6

_TOKEN = re.compile(r"[a-z0-9]+")
_STOPWORDS = frozenset(
    "a an and are at be been but by for from has have i in is it its my of on or our so "
    "that the there this to was we with".split()
)
_TITLE_MAX = 120


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


def tokenize(text: Optional[str]) -> set:
    return {t for t in _TOKEN.findall((text or "").lower()) if t not in _STOPWORDS}


def token_overlap(a: Optional[str], b: Optional[str]) -> float:
    """Jaccard overlap of the content words of *a* and *b* (0.0 when either is empty)."""
    ta, tb = tokenize(a), tokenize(b)
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / len(ta | tb)


def is_similar_description(a: Optional[str], b: Optional[str]) -> bool:
    overlap = token_overlap(a, b)
    if overlap >= DUPLICATE_SIMILARITY:
        return True
    return overlap >= DUPLICATE_SIMILARITY_WITH_KEYWORDS and bool(domain_keywords(a) & domain_keywords(b))


def _unit(room: Optional[str]) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9]", "", str(room or "")).upper()
    return cleaned or "NA"


def build_case_number(urgency_rank: int, building_code: str, room: Optional[str], day: _dt.date) -> str:
    """``L{rank}-{CODE}-{unit}-{yyyymmdd}``, e.g. ``L3-TNG-301-20241105``."""
    return f"L{urgency_rank}-{building_code}-{_unit(room)}-{day.strftime('%Y%m%d')}"


def _confirmation(case_number: str, linked: bool) -> str:
    if linked:
        return (
            f"This looks like the same problem already reported at your location, so I've added "
            f"your report to request {case_number}. You'll get updates on that request."
        )
    return f"Your maintenance request has been submitted. Your case number is {case_number}."


class CaseService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        config: Optional[TriageConfig] = None,
        clock: Callable[[], _dt.datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._repo = MaintenanceCaseRepository(session)
        self._config = config or TriageConfig()
        self._clock = clock

    async def get_case(self, case_id) -> Optional[MaintenanceCase]:
        return await self._repo.get_by_id(case_id)

    async def materialize(self, state: TriageState) -> MaterializedCase:
        existing = await self._existing_for(state)
        if existing is not None:
            return self._result(existing, linked=False)

        slots = state.slots
        building = canonicalize_building(slots.get("building_name"))
        if building is None:
            raise RoutingError(
                "Cannot route a case for an unknown building",
                details={"building_name": slots.get("building_name"), "conversation_id": str(state.conversation_id)},
            )
        routing_id = routing_id_for(building)
        code = building_code_for(building)
        room = str(slots.get("room_number") or "").strip()
        description = self._description(state)
        category = detect_category(description)
        now = self._clock()

        since = now - _dt.timedelta(minutes=self._config.dedup_window_minutes)
        for candidate in await self._repo.list_recent_at_location(building, room, since):
            if is_similar_description(description, candidate.description):
                await self._link(candidate, state)
                logger.info(
                    "CaseService: linked conversation to existing case %s",
                    candidate.case_number,
                    extra={"conversation_id": state.conversation_id, "case_number": candidate.case_number},
                )
                return self._result(candidate, linked=True)

        base_number = build_case_number(state.urgency_level.rank, code, room, now.date())
        case_number = await self._unique_case_number(base_number)
        payload: Dict[str, Any] = {
            "case_number": case_number,
            "conversation_id": state.conversation_id,
            "organization_id": state.organization_id,
            "title": self._title(slots.get("issue_summary") or description, category),
            "description": description,
            "category": category,
            "priority": state.urgency_level.value,
            "building_name": building,
            "room_number": room,
            "routing_id": routing_id,
            "reporter_name": slots.get("student_name"),
            "reporter_email": slots.get("student_email"),
            "reporter_phone": slots.get("student_phone"),
            "extra_metadata": {
                "safety_flags": list(state.safety_flags),
                "timeline": slots.get("timeline"),
                "severity": slots.get("severity"),
                "student_id": state.student_id,
                "linked_conversations": [],
            },
        }
        # One retry: another conversation may have taken the same case number concurrently.
        for attempt in range(2):
            try:
                async with self._session.begin_nested():
                    case = await self._repo.create(payload)
                break
            except IntegrityError:
                winner = await self._repo.get_by_conversation_id(state.conversation_id) if state.conversation_id else None
                if winner is not None:
                    logger.info(
                        "CaseService: concurrent completion detected, reusing case %s",
                        winner.case_number, extra={"conversation_id": state.conversation_id},
                    )
                    return self._result(winner, linked=False)
                if attempt:
                    raise
                clashed = payload["case_number"]
                payload["case_number"] = await self._unique_case_number(base_number, also_taken=(clashed,))
                logger.warning(
                    "CaseService: case number %s taken concurrently, retrying as %s",
                    clashed, payload["case_number"], extra={"conversation_id": state.conversation_id},
                )

        logger.info(
            "CaseService: created case %s (%s, %s) routed to %s",
            case.case_number, category, state.urgency_level.value, routing_id,
            extra={"conversation_id": state.conversation_id, "case_id": case.id, "case_number": case.case_number},
        )
        return self._result(case, linked=False)

    # ── helpers ──────────────────────────────────────────────────────────────

    async def _existing_for(self, state: TriageState) -> Optional[MaintenanceCase]:
        if state.case_id is not None:
            case = await self._repo.get_by_id(state.case_id)
            if case is not None:
                return case
        if state.conversation_id is not None:
            return await self._repo.get_by_conversation_id(state.conversation_id)
        return None

    async def _unique_case_number(self, base: str, also_taken: Tuple[str, ...] = ()) -> str:
        taken = set(await self._repo.case_numbers_with_prefix(base)) | set(also_taken)
        if base not in taken:
            return base
        n = 2
        while f"{base}-{n}" in taken:
            n += 1
        return f"{base}-{n}"

    async def _link(self, case: MaintenanceCase, state: TriageState) -> None:
        metadata = dict(case.extra_metadata or {})
        linked: List[str] = list(metadata.get("linked_conversations") or [])
        if state.conversation_id is not None and str(state.conversation_id) not in linked:
            linked.append(str(state.conversation_id))
        metadata["linked_conversations"] = linked
        metadata["safety_flags"] = sorted(set(metadata.get("safety_flags") or []) | set(state.safety_flags))
        await self._repo.update(case.id, {"extra_metadata": metadata})

    @staticmethod
    def _description(state: TriageState) -> str:
        summary = str(state.slots.get("issue_summary") or "").strip()
        if summary:
            return summary
        student_words = [t.message for t in state.history if t.role == Role.STUDENT and t.message.strip()]
        return " ".join(student_words)[:500]

    @staticmethod
    def _title(summary: str, category: str) -> str:
        first_line = " ".join(str(summary).split())
        if len(first_line) > _TITLE_MAX:
            first_line = first_line[: _TITLE_MAX - 3].rstrip() + "..."
        return first_line or f"{category} issue"

    @staticmethod
    def _result(case: MaintenanceCase, *, linked: bool) -> MaterializedCase:
        return MaterializedCase(
            case_id=case.id,
            case_number=case.case_number,
            category=case.category,
            linked_existing=linked,
            confirmation=_confirmation(case.case_number, linked),
        )
