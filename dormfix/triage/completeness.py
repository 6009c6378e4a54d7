"""Completeness scorer: weighted score plus hard gates deciding when a case may be created.

The score alone never authorizes completion. A case needs the threshold AND
every gate: building and room, an identified issue, and full contact details.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from dormfix.triage.categories import mentions_issue
from dormfix.triage.types import (
    CompletenessResult,
    ContextAnalysis,
    Location,
    Slots,
    UrgencyLevel,
)

LOCATION_BUILDING_POINTS = 25
LOCATION_ROOM_POINTS = 15
ISSUE_POINTS = 20
ISSUE_DETAIL_POINTS = 10
SIGNAL_MAX_POINTS = 20
SIGNAL_FLOOR_POINTS = 5
ENGAGEMENT_MAX_POINTS = 10
ENGAGEMENT_POINTS_PER_TURN = 2.5

DEFAULT_THRESHOLD = 70

_MISSING_LABELS = {
    "building_name": "building name",
    "room_number": "room number",
    "issue_summary": "a description of the issue",
    "student_name": "your name",
    "student_email": "your email address",
    "student_phone": "your phone number",
}


def _has(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _signal_points(slots: Slots, context: Optional[ContextAnalysis]) -> int:
    points = 0
    if _has(slots.get("severity")) or (context and context.severity_indicators):
        points += 10
    if _has(slots.get("timeline")) or (context and context.timeline_indicators):
        points += 5
    if context and context.inferred_urgency != UrgencyLevel.NORMAL:
        points += 5
    return max(SIGNAL_FLOOR_POINTS, min(SIGNAL_MAX_POINTS, points))


def score_completeness(
    slots: Slots,
    location: Optional[Location],
    message: str,
    context: Optional[ContextAnalysis],
    history_length: int,
    *,
    threshold: int = DEFAULT_THRESHOLD,
) -> CompletenessResult:
    location = location or Location()
    message = message or ""
    building = slots.get("building_name") or location.building_name
    room = slots.get("room_number") or location.room_number
    summary = slots.get("issue_summary") or ""

    score = 0.0
    if _has(building):
        score += LOCATION_BUILDING_POINTS
    if _has(room):
        score += LOCATION_ROOM_POINTS

    issue_identified = _has(summary) or mentions_issue(message)
    if issue_identified:
        score += ISSUE_POINTS
        if len(str(summary).strip()) >= 20 or len(message.strip()) >= 40:
            score += ISSUE_DETAIL_POINTS

    score += _signal_points(slots, context)
    score += min(ENGAGEMENT_MAX_POINTS, max(0, history_length) * ENGAGEMENT_POINTS_PER_TURN)
    total = int(min(100, round(score)))

    missing: List[str] = []
    if not _has(building):
        missing.append(_MISSING_LABELS["building_name"])
    if not _has(room):
        missing.append(_MISSING_LABELS["room_number"])
    if not issue_identified:
        missing.append(_MISSING_LABELS["issue_summary"])
    missing_contact = [_MISSING_LABELS[k] for k in ("student_name", "student_email", "student_phone") if not _has(slots.get(k))]
    missing.extend(missing_contact)

    gates: Dict[str, bool] = {
        "location": _has(building) and _has(room),
        "issue": issue_identified,
        "contact": not missing_contact,
    }
    is_ready = total >= threshold and all(gates.values())

    parts = [f"score {total}/100 (threshold {threshold})"]
    for gate, passed in gates.items():
        parts.append(f"{gate} gate {'passed' if passed else 'failed'}")
    if missing:
        parts.append("missing: " + ", ".join(missing))
    return CompletenessResult(
        score=total,
        is_ready=is_ready,
        missing_elements=tuple(missing),
        reasoning="; ".join(parts),
        gates=gates,
        threshold=threshold,
    )


def missing_info_message(result: CompletenessResult) -> str:
    """Deterministic follow-up asking for what the gates still need."""
    if not result.missing_elements:
        return "Thanks! I have everything I need. Let me put your request together."
    items = list(result.missing_elements)
    if len(items) == 1:
        wanted = items[0]
    else:
        wanted = ", ".join(items[:-1]) + " and " + items[-1]
    return f"Thanks for the details so far. Before I can submit your request, I still need {wanted}."
