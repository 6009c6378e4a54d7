"""Location resolver: map free-text building mentions and room numbers to canonical names.

The building table is data: each canonical building carries its routing id,
a short code used in case numbers, and the nicknames students actually type.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

from dormfix.triage.types import LocationConfidence, LocationMatch

logger = logging.getLogger(__name__)

# Inputs shorter than this are only matched exactly (no substring guessing).
MIN_FUZZY_LENGTH = 4


@dataclass(frozen=True)
class Building:
    name: str
    routing_id: str
    code: str
    aliases: Tuple[str, ...] = ()


BUILDINGS: Tuple[Building, ...] = (
    Building("Next House", "mit-next-house", "NXT", ("next house",)),
    Building("Simmons Hall", "mit-simmons-hall", "SIM", ("simmons",)),
    Building("MacGregor House", "mit-macgregor-house", "MAC", ("macgregor", "mac gregor", "macg")),
    Building("Burton-Conner", "mit-burton-conner", "BC", ("burton conner", "burton", "bc")),
    Building("New House", "mit-new-house", "NEW", ("new house",)),
    Building("Baker House", "mit-baker-house", "BAK", ("baker",)),
    Building("McCormick Hall", "mit-mccormick-hall", "MCC", ("mccormick", "mccormick house")),
    Building("Random Hall", "mit-random-hall", "RAN", ("random hall",)),
    Building("Senior House", "mit-senior-house", "SEN", ("senior house", "senhaus")),
    Building("Tang Hall", "mit-tang-hall", "TNG", ("tang",)),
    Building("Westgate", "mit-westgate", "WSG", ("west gate",)),
    Building("Ashdown House", "mit-ashdown-house", "ASH", ("ashdown",)),
    Building("Sidney-Pacific", "mit-sidney-pacific", "SP", ("sidney pacific", "sidpac", "sp")),
)


def _normalize(name: str) -> str:
    return re.sub(r"[\s\-_]+", " ", (name or "").strip().lower())


def _build_index() -> Dict[str, Building]:
    index: Dict[str, Building] = {}
    for b in BUILDINGS:
        index[_normalize(b.name)] = b
        for alias in b.aliases:
            index[_normalize(alias)] = b
    return index


_INDEX = _build_index()
# Longest first so "burton conner" wins over "burton"
_ALIASES_BY_LENGTH: List[Tuple[str, Building]] = sorted(_INDEX.items(), key=lambda kv: -len(kv[0]))


def find_building(name: Optional[str]) -> Optional[Building]:
    """Exact alias lookup, then substring matching for inputs of MIN_FUZZY_LENGTH or more."""
    key = _normalize(name or "")
    if not key:
        return None
    if key in _INDEX:
        return _INDEX[key]
    if len(key) < MIN_FUZZY_LENGTH:
        return None
    for alias, building in _ALIASES_BY_LENGTH:
        if len(alias) < MIN_FUZZY_LENGTH:
            continue
        if alias in key or key in alias:
            return building
    return None


def canonicalize_building(name: Optional[str]) -> Optional[str]:
    """Return the canonical building name, or None. Canonical names map to themselves."""
    building = find_building(name)
    return building.name if building else None


# ── message patterns ─────────────────────────────────────────────────────────

def _alias_regex(aliases: List[str]) -> str:
    parts = [re.escape(alias).replace(r"\ ", r"[\s\-]+") for alias in aliases]
    return r"(?P<building>\b(?:" + "|".join(parts) + r")\b)"


# Two-letter aliases ("bc", "sp") double as chat shorthand ("bc" = because), so
# inside a sentence they only count when a room number follows them directly.
_LONG_ALIASES = [alias for alias, _ in _ALIASES_BY_LENGTH if len(alias) >= MIN_FUZZY_LENGTH]
_SHORT_ALIASES = [alias for alias, _ in _ALIASES_BY_LENGTH if len(alias) < MIN_FUZZY_LENGTH]

_B = _alias_regex(_LONG_ALIASES)
_B_SHORT = _alias_regex(_SHORT_ALIASES)
# Digits glued to a phone-number separator ("555-1234", "617.555") are never rooms.
_R = r"(?<![\d\-])(?<!\d\.)(?P<room>\d{1,4}[a-z]?)\b(?!\s*[-.]\s*\d)"
_R_MULTI = r"(?<![\d\-])(?<!\d\.)(?P<room>\d{2,4}[a-z]?)\b(?!\s*[-.]\s*\d)"
_RW = r"(?:\b(?:room|rm\.?|unit|apt\.?|apartment)|#)"
_RW_LEAD = _RW + r"\s*(?:(?:is|number|no\.?|num)\s*)?[:#]?\s*"
_NOT_A_QUANTITY = r"(?!\s*(?:degrees|deg|°|%|am\b|pm\b|minutes?|mins?|hours?|hrs?|days?|weeks?|months?|times?|years?))"

# Ordered pattern families: (pattern, captures both building and room)
_PATTERNS: Tuple[Tuple[Pattern[str], bool], ...] = (
    (re.compile(_B + r"\s*,?\s*(?:" + _RW_LEAD + r")?" + _R + _NOT_A_QUANTITY, re.IGNORECASE), True),
    (re.compile(_B_SHORT + r"\s*(?:" + _RW_LEAD + r")?" + _R_MULTI + _NOT_A_QUANTITY, re.IGNORECASE), True),
    (re.compile(_RW_LEAD + _R + r"\s*(?:,\s*)?(?:in|at|of|,)?\s*(?:the\s+)?" + _B, re.IGNORECASE), True),
    (re.compile(r"\b" + _R + r"\s+(?:in|at)\s+(?:the\s+)?" + _B, re.IGNORECASE), True),
    (re.compile(_B, re.IGNORECASE), False),
)
# A bare number is only a room when it is the whole reply ("301", "#4B").
_ROOM_ONLY: Tuple[Pattern[str], ...] = (
    re.compile(_RW_LEAD + _R + _NOT_A_QUANTITY, re.IGNORECASE),
    re.compile(r"^\s*#?\s*(?P<room>\d{1,4}[a-z]?)\s*[.!]?\s*$", re.IGNORECASE),
)


def _room(raw: Optional[str]) -> Optional[str]:
    return raw.upper() if raw else None


def resolve_location(message: str) -> LocationMatch:
    """Extract building and room from *message*.

    Confidence is high when one pattern captured both, medium for a building
    alone and low otherwise (a room found on its own is still returned).
    Numbers only count as rooms next to a building name or a room keyword,
    or when they make up the whole message.
    """
    text = message or ""
    for pattern, has_room in _PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        building = canonicalize_building(match.group("building"))
        if building is None:
            continue
        if has_room:
            return LocationMatch(building, _room(match.group("room")), LocationConfidence.HIGH)
        return LocationMatch(building, _find_room(text), LocationConfidence.MEDIUM)

    # The whole reply is a building alias, short ones included ("BC").
    whole = _INDEX.get(_normalize(text.strip(" .!?")))
    if whole is not None:
        return LocationMatch(whole.name, None, LocationConfidence.MEDIUM)

    return LocationMatch(None, _find_room(text), LocationConfidence.LOW)


def _find_room(text: str) -> Optional[str]:
    for pattern in _ROOM_ONLY:
        match = pattern.search(text)
        if match:
            return _room(match.group("room"))
    return None


def routing_id_for(name: Optional[str]) -> Optional[str]:
    building = find_building(name)
    return building.routing_id if building else None


def building_code_for(name: Optional[str]) -> Optional[str]:
    building = find_building(name)
    return building.code if building else None
