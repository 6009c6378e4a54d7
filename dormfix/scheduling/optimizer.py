"""Pure scheduling functions: candidate filtering, slot generation, scoring and ranking.

Contractor, availability, booking and blackout arguments are duck-typed: ORM rows
or any object with the same attribute names. Weekly windows use Python weekday
numbering (0 = Monday) and are read in the timezone of ``now``.
"""
from __future__ import annotations

import datetime as _dt
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from dormfix.scheduling.types import (
    AppointmentRecommendation,
    AvailabilitySlot,
    RecommendationPriority,
    SchedulingRequest,
    SchedulingUrgency,
    Workload,
)

DEFAULT_DURATION_HOURS = 2.0
DEFAULT_RESPONSE_TIME_HOURS = 24.0
BUSINESS_HOURS = (9, 17)

_DURATION = re.compile(r"(\d+)(?:\s*-\s*(\d+))?\s*hours?", re.IGNORECASE)


@dataclass
class ContractorCalendar:
    """Everything needed to generate one contractor's slots over a date range."""

    availability: List[Any] = field(default_factory=list)
    bookings: List[Any] = field(default_factory=list)
    blackouts: List[Any] = field(default_factory=list)


def parse_duration_hours(text: Optional[str]) -> float:
    """"2-4 hours" -> 3.0, "1 hour" -> 1.0, anything else -> 2.0."""
    match = _DURATION.search(text or "")
    if not match:
        return DEFAULT_DURATION_HOURS
    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) else low
    return (low + high) / 2


def _hours_until(start: _dt.datetime, now: _dt.datetime) -> float:
    return (start - now).total_seconds() / 3600


def _local_date(value: _dt.datetime, tz: Optional[_dt.tzinfo]) -> _dt.date:
    if tz is not None and value.tzinfo is not None:
        return value.astimezone(tz).date()
    return value.date()


# ── candidates ───────────────────────────────────────────────────────────────

def matches_category(contractor: Any, category: Optional[str]) -> bool:
    """Substring match in either direction against the contractor category or specialties."""
    if not category:
        return True
    wanted = category.lower()
    labels = [contractor.category or ""] + list(getattr(contractor, "specialties", None) or [])
    for label in labels:
        label = str(label).lower()
        if label and (wanted in label or label in wanted):
            return True
    return False


def select_candidates(
    contractors: Iterable[Any],
    category: Optional[str],
    urgency: SchedulingUrgency,
    limit: int = 10,
) -> List[Any]:
    suitable = [
        c for c in contractors
        if c.is_active
        and matches_category(c, category)
        and (urgency != SchedulingUrgency.CRITICAL or c.emergency_available)
    ]
    suitable.sort(key=lambda c: (not c.is_preferred, -(c.rating or 0)))
    return suitable[:limit]


# ── slot generation ──────────────────────────────────────────────────────────

def day_range(now: _dt.datetime, must_complete_by: Optional[_dt.datetime], horizon_days: int = 14) -> List[_dt.date]:
    end = must_complete_by or (now + _dt.timedelta(days=horizon_days))
    days: List[_dt.date] = []
    day = now.date()
    while day <= end.date():
        days.append(day)
        day += _dt.timedelta(days=1)
    return days


def window_for_day(availability: Sequence[Any], day: _dt.date) -> Optional[Any]:
    for entry in availability:
        if entry.day_of_week == day.weekday() and entry.is_active:
            return entry
    return None


def is_blacked_out(blackouts: Sequence[Any], day: _dt.date) -> bool:
    return any(b.start_date <= day <= b.end_date for b in blackouts)


def generate_day_slots(
    contractor: Any,
    day: _dt.date,
    calendar: ContractorCalendar,
    duration_hours: float,
    *,
    now: _dt.datetime,
    step_minutes: int = 30,
    buffer_minutes: int = 15,
    default_daily_cap: int = 3,
) -> List[AvailabilitySlot]:
    """Every step-aligned start in the day's window whose end plus buffer still fits."""
    window = window_for_day(calendar.availability, day)
    if window is None or is_blacked_out(calendar.blackouts, day):
        return []

    tz = now.tzinfo
    window_start = _dt.datetime.combine(day, window.start_time, tzinfo=tz)
    window_end = _dt.datetime.combine(day, window.end_time, tzinfo=tz)
    duration = _dt.timedelta(minutes=duration_hours * 60)
    buffer = _dt.timedelta(minutes=buffer_minutes)
    step = _dt.timedelta(minutes=step_minutes)

    cap = contractor.max_jobs_per_day or default_daily_cap
    daily = sum(1 for b in calendar.bookings if _local_date(b.start_at, tz) == day)
    workload = min(daily / cap, 1.0)
    response_time = contractor.response_time_hours or DEFAULT_RESPONSE_TIME_HOURS

    slots: List[AvailabilitySlot] = []
    start = window_start
    while start + duration + buffer <= window_end:
        end = start + duration
        if start >= now:
            conflicts = sum(1 for b in calendar.bookings if start < b.end_at and end > b.start_at)
            slots.append(
                AvailabilitySlot(
                    contractor_id=contractor.id,
                    contractor_name=contractor.name,
                    start=start,
                    end=end,
                    is_available=conflicts == 0 and daily < cap,
                    conflicting_count=conflicts,
                    workload_score=workload,
                    response_time_hours=response_time,
                    hourly_rate=contractor.hourly_rate,
                )
            )
        start += step
    return slots


# ── scoring ──────────────────────────────────────────────────────────────────

def score_slot(slot: AvailabilitySlot, request: SchedulingRequest, now: _dt.datetime) -> float:
    confidence = 1.0
    hours = _hours_until(slot.start, now)
    if request.urgency == SchedulingUrgency.CRITICAL:
        confidence *= 1.0 if hours <= 4 else max(0.3, 1 - (hours - 4) / 24)
    elif request.urgency == SchedulingUrgency.HIGH:
        confidence *= 1.0 if hours <= 24 else max(0.5, 1 - (hours - 24) / 48)

    confidence *= 1.0 - slot.workload_score * 0.3
    confidence *= max(0.3, 1.0 - (slot.response_time_hours - 1) / 48)

    if slot.conflicting_count == 0:
        confidence *= 1.1
    else:
        confidence *= max(0.7, 1.0 - slot.conflicting_count * 0.1)

    if any(w.contains(slot.start, slot.end) for w in request.preferred_time_slots):
        confidence *= 1.2

    if BUSINESS_HOURS[0] <= slot.start.hour <= BUSINESS_HOURS[1]:
        confidence *= 1.1

    return max(0.0, min(confidence, 1.0))


def recommendation_reasoning(
    slot: AvailabilitySlot,
    urgency: SchedulingUrgency,
    confidence: float,
    now: _dt.datetime,
) -> str:
    reasons: List[str] = []
    if slot.workload_score < 0.3:
        reasons.append("contractor has light workload")
    elif slot.workload_score > 0.7:
        reasons.append("contractor has heavy workload")
    if slot.response_time_hours <= 2:
        reasons.append("very fast response time")
    if BUSINESS_HOURS[0] <= slot.start.hour <= BUSINESS_HOURS[1]:
        reasons.append("during business hours")
    if urgency == SchedulingUrgency.CRITICAL and _hours_until(slot.start, now) <= 4:
        reasons.append("immediate availability for emergency")
    if reasons:
        return "Recommended due to: " + ", ".join(reasons)
    return f"Available slot with {round(confidence * 100)}% confidence"


def rank_recommendations(
    slots: Iterable[AvailabilitySlot],
    request: SchedulingRequest,
    now: _dt.datetime,
    *,
    limit: int = 5,
) -> List[AppointmentRecommendation]:
    """Score available slots, sort by confidence (earlier start breaks ties), keep *limit*."""
    hours = parse_duration_hours(request.estimated_duration)
    scored = [(score_slot(s, request, now), s) for s in slots if s.is_available]
    scored.sort(key=lambda pair: (-pair[0], pair[1].start))

    out: List[AppointmentRecommendation] = []
    for index, (confidence, slot) in enumerate(scored[:limit]):
        out.append(
            AppointmentRecommendation(
                contractor_id=slot.contractor_id,
                contractor_name=slot.contractor_name,
                start=slot.start,
                end=slot.end,
                confidence=confidence,
                reasoning=recommendation_reasoning(slot, request.urgency, confidence, now),
                priority=RecommendationPriority.PRIMARY if index == 0 else RecommendationPriority.ALTERNATIVE,
                workload=Workload.from_score(slot.workload_score),
                approval_required=request.requires_tenant_access,
                approval_deadline=slot.start - _dt.timedelta(hours=24) if request.requires_tenant_access else None,
                estimated_cost=slot.hourly_rate * hours if slot.hourly_rate else None,
            )
        )
    return out


def optimization_score(
    recommendations: Sequence[AppointmentRecommendation],
    urgency: SchedulingUrgency,
    now: _dt.datetime,
) -> float:
    if not recommendations:
        return 0.0
    primary = recommendations[0]
    score = primary.confidence * 0.6
    score += min(len(recommendations) / 5, 1.0) * 0.2
    if urgency == SchedulingUrgency.CRITICAL and _hours_until(primary.start, now) <= 4:
        score += 0.2
    return min(score, 1.0)


def scheduling_summary(recommendations: Sequence[AppointmentRecommendation], urgency: SchedulingUrgency) -> str:
    if not recommendations:
        return "No available contractors found matching the requirements and timeline."
    primary = recommendations[0]
    kind = {SchedulingUrgency.CRITICAL: "emergency", SchedulingUrgency.HIGH: "urgent"}.get(urgency, "routine")
    when = primary.start.strftime("%A, %B %d at %I:%M %p")
    text = (
        f"Scheduled this {kind} maintenance with {primary.contractor_name} on {when}. "
        f"Selected with {round(primary.confidence * 100)}% confidence considering contractor "
        f"availability, workload ({primary.workload.value}) and urgency."
    )
    if len(recommendations) > 1:
        text += f" {len(recommendations) - 1} alternative time slots available."
    return text
