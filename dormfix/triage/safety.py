"""Safety checker: keyword hazard detection with fixed remediation scripts, no LLM calls.

Runs first on every student message. An emergency match short-circuits the
turn with a scripted response, so life-safety guidance never depends on the
language model being reachable.
"""
from __future__ import annotations

import logging
import re
from typing import List, Pattern, Tuple

from dormfix.triage.types import SafetyCheckResult

logger = logging.getLogger(__name__)

_GAS_SCRIPT = (
    "EMERGENCY - POSSIBLE GAS LEAK\n\n"
    "Do this now:\n"
    "- Leave the building immediately\n"
    "- Do NOT use light switches, outlets or your phone inside\n"
    "- Once outside, call 911 or the gas company emergency line\n"
    "- Do NOT go back in until the authorities say it is safe\n\n"
    "This is a serious safety emergency. Please get to safety first."
)

_ELECTRICAL_WATER_SCRIPT = (
    "EMERGENCY - ELECTRICAL HAZARD\n\n"
    "Do this now:\n"
    "- Stay away from the wet outlet or fixture\n"
    "- Turn off power at the circuit breaker only if you can reach it without touching water\n"
    "- Do NOT touch water near electrical outlets\n"
    "- Call the maintenance emergency line\n\n"
    "Electricity and water together are dangerous. Please stay clear and get help."
)

_FIRE_SCRIPT = (
    "EMERGENCY - SMOKE OR FIRE\n\n"
    "Do this now:\n"
    "- Leave the area and pull the nearest fire alarm\n"
    "- Do NOT open doors that feel hot\n"
    "- Call 911 once you are outside\n"
    "- Do NOT go back for belongings\n\n"
    "Your safety comes first. Maintenance has been alerted."
)

_FLOOD_SCRIPT = (
    "EMERGENCY - FLOODING\n\n"
    "Do this now:\n"
    "- Move away from standing water, especially near outlets or cords\n"
    "- If you can safely reach it, close the shut-off valve under the sink or toilet\n"
    "- Call the maintenance emergency line\n\n"
    "Please stay safe while we get someone to you."
)

_TEMPERATURE_SCRIPT = (
    "URGENT - NO HEATING OR COOLING\n\n"
    "Do this now:\n"
    "- Move to a common area or a friend's room with working heat or air conditioning\n"
    "- Do NOT use open flames or ovens to heat your room\n"
    "- Call the maintenance emergency line if anyone feels unwell\n\n"
    "We treat this as an emergency and will get it looked at right away."
)

_CO_SCRIPT = (
    "EMERGENCY - CARBON MONOXIDE\n\n"
    "Do this now:\n"
    "- Leave the building immediately and get fresh air\n"
    "- Call 911 from outside\n"
    "- Seek medical help if you feel dizzy, sleepy or have a headache\n"
    "- Do NOT go back in until responders say it is safe\n\n"
    "Carbon monoxide is invisible and dangerous. Please get out now."
)

_WIRING_SCRIPT = (
    "EMERGENCY - EXPOSED WIRING\n\n"
    "Do this now:\n"
    "- Do NOT touch the wire or anything in contact with it\n"
    "- Keep others away from the area\n"
    "- Turn off power at the circuit breaker only if it is safe to do so\n"
    "- Call the maintenance emergency line, or 911 if someone was shocked\n\n"
    "Please stay clear until an electrician arrives."
)

# Ordered: first matching group wins.
EMERGENCY_GROUPS: Tuple[Tuple[str, Tuple[str, ...], str], ...] = (
    ("gas", ("gas smell", "gas leak", "smell gas", "gas odor", "smells like gas", "rotten egg smell"), _GAS_SCRIPT),
    (
        "electrical_water",
        ("electrical outlet wet", "outlet wet", "water in outlet", "water in the outlet", "water near outlet", "water in light fixture"),
        _ELECTRICAL_WATER_SCRIPT,
    ),
    ("combustion", ("electrical sparking", "sparks", "smoke", "burning smell", "on fire", "flames"), _FIRE_SCRIPT),
    ("flooding", ("water gushing", "flooding", "flooded", "burst pipe"), _FLOOD_SCRIPT),
    ("temperature", ("no heat", "no air conditioning"), _TEMPERATURE_SCRIPT),
    ("carbon_monoxide", ("carbon monoxide", "co alarm", "co detector"), _CO_SCRIPT),
    ("exposed_wiring", ("exposed wire", "exposed wires", "electrical shock", "got shocked"), _WIRING_SCRIPT),
)

URGENT_KEYWORDS: Tuple[str, ...] = (
    "no power",
    "circuit breaker",
    "outlet not working",
    "water leak",
    "dripping",
    "toilet overflow",
    "heater not working",
    "ac not working",
)


def _compile(keyword: str) -> Pattern[str]:
    return re.compile(r"\b" + re.escape(keyword) + r"\b")


def _flag(prefix: str, keyword: str) -> str:
    return prefix + "_" + re.sub(r"\s+", "_", keyword)


_EMERGENCY_PATTERNS: List[Tuple[str, str, Pattern[str], str]] = [
    (group, kw, _compile(kw), script)
    for group, keywords, script in EMERGENCY_GROUPS
    for kw in keywords
]
_URGENT_PATTERNS: List[Tuple[str, Pattern[str]]] = [(kw, _compile(kw)) for kw in URGENT_KEYWORDS]


def check_safety(message: str) -> SafetyCheckResult:
    """Scan *message* for hazards.

    The first emergency keyword returns immediately with that hazard's script.
    Urgent keywords only contribute ``urgent_*`` flags.
    """
    text = (message or "").lower()

    for group, keyword, pattern, script in _EMERGENCY_PATTERNS:
        if pattern.search(text):
            logger.info("SafetyChecker: emergency hazard '%s' matched on '%s'", group, keyword)
            return SafetyCheckResult(
                is_emergency=True,
                flags=(_flag("emergency", keyword),),
                emergency_message=script,
                hazard=group,
            )

    flags = tuple(_flag("urgent", kw) for kw, pattern in _URGENT_PATTERNS if pattern.search(text))
    if flags:
        logger.debug("SafetyChecker: urgent flags %s", flags)
    return SafetyCheckResult(is_emergency=False, flags=flags)
