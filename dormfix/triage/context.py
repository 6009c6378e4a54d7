"""Context analyzer: emotion, urgency, timeline and severity cues from message text.

Deterministic and independent of the language model. The orchestrator uses the
inferred urgency as a floor and pre-fills the timeline/severity slots from it.
"""
from __future__ import annotations

import re
from typing import Dict, List, Pattern, Tuple

from dormfix.triage.types import ContextAnalysis, EmotionalContext, UrgencyLevel


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# Checked in order; the first label with a hit wins.
_EMOTION_PATTERNS: Tuple[Tuple[EmotionalContext, Tuple[Pattern[str], ...]], ...] = (
    (
        EmotionalContext.FRUSTRATED,
        (
            _rx(r"frustrat"),
            _rx(r"\bannoy"),
            _rx(r"\bridiculous\b"),
            _rx(r"\bfed up\b"),
            _rx(r"\bsick of\b"),
            _rx(r"\bhow many times\b"),
            _rx(r"\bstill (?:not|isn'?t|hasn'?t|broken)\b"),
            _rx(r"\b(?:third|fourth|3rd|4th) time\b"),
            _rx(r"!{3,}"),
        ),
    ),
    (
        EmotionalContext.URGENT,
        (
            _rx(r"\burgent(?:ly)?\b"),
            _rx(r"\basap\b"),
            _rx(r"\bimmediately\b"),
            _rx(r"\bemergency\b"),
            _rx(r"\bright (?:away|now)\b"),
        ),
    ),
    (
        EmotionalContext.WORRIED,
        (
            _rx(r"\bworried\b"),
            _rx(r"\bscared\b"),
            _rx(r"\bafraid\b"),
            _rx(r"\bnervous\b"),
            _rx(r"\bconcerned\b"),
            _rx(r"\bis (?:it|this) (?:safe|dangerous)\b"),
        ),
    ),
)

_URGENT_INDICATORS: Tuple[Pattern[str], ...] = (
    _rx(r"\burgent\b"),
    _rx(r"\basap\b"),
    _rx(r"\bimmediately\b"),
    _rx(r"\bemergency\b"),
    _rx(r"\bright away\b"),
    _rx(r"\bbroken\b"),
    _rx(r"\bnot working\b"),
    _rx(r"\bleaking\b"),
    _rx(r"\bflooding\b"),
)

_NEGATED_URGENCY = _rx(r"\bnot (?:urgent|an emergency)\b")

_LOW_INDICATORS: Tuple[Pattern[str], ...] = (
    _rx(r"\bno rush\b"),
    _rx(r"\bwhenever\b"),
    _rx(r"\bnot urgent\b"),
    _rx(r"\bminor\b"),
    _rx(r"\bcosmetic\b"),
)

_TEMPERATURE_WORDS = _rx(r"\b(?:freezing|boiling|sweltering|scorching|ice cold|unbearably (?:hot|cold))\b")
_TEMPERATURE_DEGREES = _rx(r"\b(\d{1,3})\s*(?:degrees\b|deg\b|°)(?:\s*([fc])(?:elsius|ahrenheit)?\b)?")

_TIMELINE_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = (
    (_rx(r"\byesterday\b|\blast night\b"), "started recently"),
    (_rx(r"\btoday\b|\bthis morning\b|\btonight\b|\bjust (?:now|started)\b"), "started today"),
    (_rx(r"\bweeks?\b|\bdays\b"), "ongoing for days"),
    (_rx(r"\bmonths?\b"), "long-standing issue"),
)

_SEVERITY_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = (
    (_rx(r"\bcompletely\b|\btotally\b|\bnot working at all\b|\bwon'?t turn on\b"), "complete failure"),
    (_rx(r"\blittle bit\b|\bslightly\b|\bsometimes\b|\bon and off\b"), "intermittent issue"),
    (_rx(r"\bgetting worse\b|\bworse\b"), "worsening"),
)


def is_temperature_extreme(message: str) -> bool:
    """True for explicit extreme temperatures ("40 degrees", "freezing", "boiling")."""
    if _TEMPERATURE_WORDS.search(message):
        return True
    for match in _TEMPERATURE_DEGREES.finditer(message):
        value = int(match.group(1))
        unit = (match.group(2) or "f").lower()
        if unit == "c":
            if value <= 10 or value >= 30:
                return True
        elif value <= 55 or value >= 85:
            return True
    return False


def _collect(patterns: Tuple[Tuple[Pattern[str], str], ...], message: str) -> List[str]:
    labels: List[str] = []
    for pattern, label in patterns:
        if pattern.search(message) and label not in labels:
            labels.append(label)
    return labels


def _emotion(message: str) -> EmotionalContext:
    for label, patterns in _EMOTION_PATTERNS:
        if any(p.search(message) for p in patterns):
            return label
    return EmotionalContext.CALM


def _urgency(message: str) -> UrgencyLevel:
    if is_temperature_extreme(message):
        return UrgencyLevel.URGENT
    text = _NEGATED_URGENCY.sub(" ", message)
    if any(p.search(text) for p in _URGENT_INDICATORS):
        return UrgencyLevel.URGENT
    if any(p.search(message) for p in _LOW_INDICATORS):
        return UrgencyLevel.LOW
    return UrgencyLevel.NORMAL


def analyze_context(message: str) -> ContextAnalysis:
    message = message or ""
    timeline = _collect(_TIMELINE_PATTERNS, message)
    severity = _collect(_SEVERITY_PATTERNS, message)

    inferred: Dict[str, str] = {}
    if timeline:
        inferred["timeline"] = ", ".join(timeline)
    if severity:
        inferred["severity"] = ", ".join(severity)

    return ContextAnalysis(
        emotional_context=_emotion(message),
        inferred_urgency=_urgency(message),
        timeline_indicators=tuple(timeline),
        severity_indicators=tuple(severity),
        inferred_info=inferred,
    )
