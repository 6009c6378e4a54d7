"""SchedulingService: recommends contractor appointments for a maintenance case.

Calendars for the candidate contractors are loaded concurrently (one session
per contractor when a session factory is available); slot generation and
ranking are pure functions in dormfix.scheduling.optimizer.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import logging
from typing import Any, Callable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dormfix.config.scheduling import SchedulingConfig
from dormfix.core.exceptions import NotFoundError
from dormfix.infra.database.repositories import ContractorRepository, MaintenanceCaseRepository
from dormfix.scheduling.optimizer import (
    ContractorCalendar,
    day_range,
    generate_day_slots,
    optimization_score,
    parse_duration_hours,
    rank_recommendations,
    scheduling_summary,
    select_candidates,
)
from dormfix.scheduling.types import AvailabilitySlot, SchedulingRequest, SchedulingResult, SchedulingUrgency
from dormfix.triage.categories import GENERAL

logger = logging.getLogger(__name__)

NO_CONTRACTORS_REASON = "No suitable contractors found for this maintenance request"
NO_SLOTS_REASON = "No available time slots found for the matching contractors within the requested timeframe"


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


class SchedulingService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        config: Optional[SchedulingConfig] = None,
        clock: Callable[[], _dt.datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._session_factory = session_factory
        self._contractors = ContractorRepository(session)
        self._cases = MaintenanceCaseRepository(session)
        self._config = config or SchedulingConfig()
        self._clock = clock

    async def schedule_appointment(
        self,
        request: SchedulingRequest,
        now: Optional[_dt.datetime] = None,
    ) -> SchedulingResult:
        now = now or self._clock()
        category = request.category or await self._case_category(request.case_id)

        candidates = await self._candidates(request, category)
        if not candidates:
            logger.info("SchedulingService: no contractors for category=%s urgency=%s", category, request.urgency.value)
            return self._empty(now, NO_CONTRACTORS_REASON)

        days = day_range(now, request.must_complete_by, self._config.horizon_days)
        range_end = _dt.datetime.combine(days[-1] + _dt.timedelta(days=1), _dt.time.min, tzinfo=now.tzinfo)
        calendars = await self._load_calendars(candidates, now, range_end, days)

        duration = parse_duration_hours(request.estimated_duration)
        slots: List[AvailabilitySlot] = []
        for contractor, calendar in zip(candidates, calendars):
            for day in days:
                slots.extend(
                    generate_day_slots(
                        contractor,
                        day,
                        calendar,
                        duration,
                        now=now,
                        step_minutes=self._config.slot_step_minutes,
                        buffer_minutes=self._config.buffer_minutes,
                        default_daily_cap=self._config.default_daily_cap,
                    )
                )
        available = [s for s in slots if s.is_available]

        recommendations = rank_recommendations(available, request, now, limit=self._config.max_recommendations)
        if not recommendations:
            logger.info(
                "SchedulingService: %d contractors, no free slots before %s",
                len(candidates), days[-1].isoformat(),
            )
            return self._empty(now, NO_SLOTS_REASON)

        score = optimization_score(recommendations, request.urgency, now)
        primary = recommendations[0]
        logger.info(
            "SchedulingService: %d options, primary %s at %s (confidence=%.2f, score=%.2f)",
            len(available), primary.contractor_name, primary.start.isoformat(), primary.confidence, score,
            extra={"contractor_id": primary.contractor_id, "case_id": request.case_id},
        )
        return SchedulingResult(
            success=True,
            recommendations=recommendations,
            reasoning=scheduling_summary(recommendations, request.urgency),
            total_options=len(available),
            optimization_score=score,
            analysis_completed_at=self._clock(),
        )

    # ── helpers ──────────────────────────────────────────────────────────────

    async def _case_category(self, case_id: Optional[UUID]) -> Optional[str]:
        if case_id is None:
            return None
        case = await self._cases.get_by_id(case_id)
        if case is None:
            raise NotFoundError("Maintenance case not found", details={"case_id": str(case_id)})
        # General cases go to any trade
        return None if case.category == GENERAL else case.category

    async def _candidates(self, request: SchedulingRequest, category: Optional[str]) -> List[Any]:
        if request.contractor_id is not None:
            contractor = await self._contractors.get_by_id(request.contractor_id)
            if contractor is None:
                raise NotFoundError("Contractor not found", details={"contractor_id": str(request.contractor_id)})
            return [contractor] if contractor.is_active else []
        contractors = await self._contractors.list_active(
            emergency_only=request.urgency == SchedulingUrgency.CRITICAL,
        )
        return select_candidates(contractors, category, request.urgency, limit=self._config.max_candidates)

    async def _load_calendars(
        self,
        contractors: List[Any],
        start: _dt.datetime,
        end: _dt.datetime,
        days: List[_dt.date],
    ) -> List[ContractorCalendar]:
        if self._session_factory is None:
            # A single AsyncSession must not be used concurrently.
            return [await self._load_calendar(self._contractors, c.id, start, end, days) for c in contractors]
        return list(await asyncio.gather(*(self._load_isolated(c.id, start, end, days) for c in contractors)))

    async def _load_isolated(
        self,
        contractor_id: UUID,
        start: _dt.datetime,
        end: _dt.datetime,
        days: List[_dt.date],
    ) -> ContractorCalendar:
        async with self._session_factory() as session:
            return await self._load_calendar(ContractorRepository(session), contractor_id, start, end, days)

    @staticmethod
    async def _load_calendar(
        repo: ContractorRepository,
        contractor_id: UUID,
        start: _dt.datetime,
        end: _dt.datetime,
        days: List[_dt.date],
    ) -> ContractorCalendar:
        # Bookings start at the beginning of the first day so the daily count is complete.
        day_start = _dt.datetime.combine(days[0], _dt.time.min, tzinfo=start.tzinfo)
        return ContractorCalendar(
            availability=await repo.list_availability(contractor_id),
            bookings=await repo.list_bookings(contractor_id, day_start, end),
            blackouts=await repo.list_blackouts(contractor_id, days[0], days[-1]),
        )

    def _empty(self, now: _dt.datetime, reason: str) -> SchedulingResult:
        return SchedulingResult(
            success=False,
            recommendations=[],
            reasoning=reason,
            total_options=0,
            optimization_score=0.0,
            analysis_completed_at=now,
        )
