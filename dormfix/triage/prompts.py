"""Prompt text and the fixed tool schema for the triage generation call."""
from __future__ import annotations

import json
from typing import Any, Dict, List

TOOL_NAME = "generate_triage_response"

SYSTEM_PROMPT = """You are the housing maintenance assistant for a student residence system. \
You help students report maintenance problems through a short, kind conversation.

CONVERSATION RULES:
1. ONE QUESTION AT A TIME. Never ask more than one question in a message.
2. Acknowledge what the student told you before asking the next thing.
3. Keep replies short: at most two sentences plus one question.
4. Never ask again for anything listed under KNOWN FACTS.
5. Students are not maintenance experts; read past dramatic wording to the actual problem.

WHAT TO COLLECT (in this order of importance):
1. Building name, then room number
2. What the problem is, when it started and how bad it is
3. Student name, email and phone number (needed to create the request)

SAFETY:
- Anything involving gas, smoke, sparks, flooding near electricity or carbon monoxide is an emergency:
  set urgencyLevel "emergency" and nextAction "escalate_immediate".
- Suggest simple DIY steps (nextAction "recommend_diy") only when they are safe for a student.

Only set nextAction "complete_triage" when you believe every item above is known.
Always answer by calling the generate_triage_response tool."""


def _slot_properties() -> Dict[str, Any]:
    text = {"type": "string"}
    return {
        "buildingName": text,
        "roomNumber": text,
        "issueSummary": text,
        "timeline": text,
        "severity": text,
        "studentName": text,
        "studentEmail": text,
        "studentPhone": text,
        "photoRequested": {"type": "boolean"},
    }


TRIAGE_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": TOOL_NAME,
        "description": "Produce the assistant's next triage message with urgency and safety assessment.",
        "parameters": {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Reply shown to the student"},
                "urgencyLevel": {"type": "string", "enum": ["emergency", "urgent", "normal", "low"]},
                "safetyFlags": {"type": "array", "items": {"type": "string"}},
                "nextAction": {
                    "type": "string",
                    "enum": ["ask_followup", "request_media", "escalate_immediate", "complete_triage", "recommend_diy"],
                },
                "slots": {
                    "type": "object",
                    "description": "Facts learned so far; omit anything unknown",
                    "properties": _slot_properties(),
                },
                "location": {
                    "type": "object",
                    "properties": {
                        "buildingName": {"type": "string"},
                        "roomNumber": {"type": "string"},
                        "isLocationConfirmed": {"type": "boolean"},
                    },
                },
                "nextQuestion": {"type": "string", "description": "The single next question, if any"},
                "queuedQuestions": {"type": "array", "items": {"type": "string"}},
                "acknowledgment": {"type": "string"},
                "mediaRequest": {
                    "type": "object",
                    "properties": {
                        "type": {"type": "string", "enum": ["photo", "video", "audio"]},
                        "reason": {"type": "string"},
                    },
                },
                "diyAction": {
                    "type": "object",
                    "properties": {
                        "action": {"type": "string"},
                        "instructions": {"type": "array", "items": {"type": "string"}},
                        "warnings": {"type": "array", "items": {"type": "string"}},
                    },
                },
                "isComplete": {"type": "boolean"},
            },
            "required": ["message", "urgencyLevel", "safetyFlags", "nextAction"],
        },
    },
}


def _section(title: str, body: str) -> str:
    return f"## {title}\n{body.strip() or '(none)'}\n"


def build_turn_prompt(
    message: str,
    *,
    is_initial: bool,
    known_slots: Dict[str, Any],
    pending_questions: List[str],
    analysis: Dict[str, Any],
) -> str:
    """Structured request for one turn. History travels separately as chat messages."""
    known = {k: v for k, v in known_slots.items() if v not in (None, "")}
    parts = [
        _section("TURN", "First message of a new report." if is_initial else "Follow-up message in an ongoing report."),
        _section("STUDENT MESSAGE", message),
        _section("KNOWN FACTS (do not re-ask)", json.dumps(known, ensure_ascii=False, indent=2) if known else ""),
        _section("PENDING QUESTIONS", "\n".join(f"- {q}" for q in pending_questions)),
        _section("DETERMINISTIC ANALYSIS", json.dumps(analysis, ensure_ascii=False, indent=2)),
    ]
    return "\n".join(parts)
