"""Maintenance categories and the issue vocabulary shared by scoring and case creation."""
from __future__ import annotations

import re
from typing import Optional, Pattern, Tuple

GENERAL = "General"

# Ordered: first category with a keyword hit wins.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        "HVAC",
        (
            "heat", "heater", "heating", "radiator", "thermostat", "hvac", "vent",
            "air conditioning", "air conditioner", "ac", "a/c", "too hot", "too cold", "freezing",
        ),
    ),
    (
        "Electrical",
        (
            "outlet", "power", "light", "lights", "bulb", "breaker", "electrical", "electricity",
            "switch", "wire", "wiring", "sparks", "fuse",
        ),
    ),
    (
        "Plumbing",
        (
            "leak", "leaking", "drip", "dripping", "faucet", "toilet", "sink", "drain", "pipe",
            "shower", "clog", "clogged", "water", "flood", "flooding",
        ),
    ),
    (
        "Structural",
        ("ceiling", "wall", "floor", "window", "door", "roof", "crack", "stairs", "tile", "mold"),
    ),
    (
        "Security",
        ("lock", "locked", "key", "card reader", "security", "break-in", "intruder", "alarm"),
    ),
)

# Words that describe a problem without naming a category.
_GENERIC_ISSUE_WORDS: Tuple[str, ...] = (
    "broken", "not working", "doesn't work", "won't", "stopped working", "damaged",
    "noise", "smell", "pest", "mice", "roach", "roaches", "bed bug", "bugs", "fridge",
    "stove", "oven", "microwave", "furniture",
)


def _compile(words: Tuple[str, ...]) -> Pattern[str]:
    alternation = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    return re.compile(r"(?<![\w/])(?:" + alternation + r")(?![\w/])", re.IGNORECASE)


_CATEGORY_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = tuple(
    (name, _compile(words)) for name, words in CATEGORY_KEYWORDS
)
_ANY_ISSUE = _compile(
    tuple(w for _, words in CATEGORY_KEYWORDS for w in words) + _GENERIC_ISSUE_WORDS
)


def detect_category(text: Optional[str]) -> str:
    """First-match category over CATEGORY_KEYWORDS, General when nothing matches."""
    for name, pattern in _CATEGORY_PATTERNS:
        if pattern.search(text or ""):
            return name
    return GENERAL


def mentions_issue(text: Optional[str]) -> bool:
    return bool(_ANY_ISSUE.search(text or ""))


def domain_keywords(text: Optional[str]) -> set:
    """Lower-cased issue keywords present in *text* (used for duplicate detection)."""
    return {m.group(0).lower() for m in _ANY_ISSUE.finditer(text or "")}
