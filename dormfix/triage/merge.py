"""Pure merge functions: previous conversation state + one turn's signals -> new values.

None of these mutate their inputs.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from dormfix.triage.categories import mentions_issue
from dormfix.triage.location import canonicalize_building
from dormfix.triage.types import SLOT_KEYS, ContextAnalysis, Location, LocationMatch, Slots

_NULLISH = ("null", "none", "n/a", "unknown", "")
_MAX_SUMMARY_CHARS = 200


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in _NULLISH
    return False


def merge_slots(current: Slots, updates: Optional[Dict[str, Any]], *, fill_only: bool = False) -> Slots:
    """Sticky merge of *updates* into *current*.

    Rules:
    - Unknown keys are ignored.
    - Blank values (None, "", "null", "none", ...) never erase a stored value.
    - A non-blank value replaces the stored one, unless ``fill_only`` is set,
      in which case only empty slots are filled.
    """
    merged = dict(current)
    for key, value in (updates or {}).items():
        if key not in SLOT_KEYS or is_blank(value):
            continue
        if isinstance(value, str):
            value = value.strip()
        if fill_only and not is_blank(merged.get(key)):
            continue
        merged[key] = value
    return merged


def union_flags(current: Iterable[str], new: Iterable[str]) -> List[str]:
    """Ordered union. Existing flags are never removed."""
    out = list(current)
    for flag in new:
        flag = (flag or "").strip()
        if flag and flag not in out:
            out.append(flag)
    return out


def merge_location(
    slots: Slots,
    service_location: Optional[Dict[str, Any]],
    extracted: Optional[LocationMatch],
) -> Tuple[Slots, Location]:
    """Fold the model's location and the deterministic extraction into the slots.

    The model's explicit values win; the extraction only fills what is still
    empty. Building names are canonicalized when they can be. The returned
    Location always mirrors the building/room slots.
    """
    merged = merge_slots(slots, service_location or {})
    if extracted is not None:
        merged = merge_slots(
            merged,
            {"building_name": extracted.building_name, "room_number": extracted.room_number},
            fill_only=True,
        )
    building = merged.get("building_name")
    if not is_blank(building):
        merged["building_name"] = canonicalize_building(building) or building
    location = Location(
        building_name=merged.get("building_name"),
        room_number=merged.get("room_number"),
        is_location_confirmed=not is_blank(merged.get("building_name")) and not is_blank(merged.get("room_number")),
    )
    return merged, location


def apply_inferred_info(slots: Slots, context: Optional[ContextAnalysis]) -> Slots:
    """Fill timeline/severity from the context analysis when not already known."""
    if context is None or not context.inferred_info:
        return dict(slots)
    return merge_slots(slots, context.inferred_info, fill_only=True)


def infer_issue_summary(slots: Slots, message: str) -> Slots:
    """Use the student's own words as the issue summary if none was captured yet."""
    if not is_blank(slots.get("issue_summary")) or not mentions_issue(message):
        return dict(slots)
    summary = " ".join((message or "").split())[:_MAX_SUMMARY_CHARS]
    return merge_slots(slots, {"issue_summary": summary}, fill_only=True)


def next_pending_questions(current: List[str], queued: Optional[List[str]], asked: Optional[str]) -> List[str]:
    """New queue: the model's queued questions replace the old queue when given;
    the question just asked is dropped from it."""
    base = list(queued) if queued else list(current)
    out: List[str] = []
    for q in base:
        q = (q or "").strip()
        if q and q != (asked or "").strip() and q not in out:
            out.append(q)
    return out
