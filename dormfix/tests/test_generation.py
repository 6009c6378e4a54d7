"""Unit tests for GenerationClient: schema validation, timeouts and history window."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from unittest.mock import AsyncMock, MagicMock

from dormfix.clients.llm.base import FunctionCallResult
from dormfix.core.exceptions import GenerationError
from dormfix.triage.generation import GenerationClient, GenerationRequest
from dormfix.triage.prompts import TOOL_NAME
from dormfix.triage.types import NextAction, Role, Turn, UrgencyLevel


def _run(coro):
    return asyncio.run(coro)


def _llm(result=None, side_effect=None):
    llm = MagicMock()
    llm.provider = "fake"
    llm.function_call = AsyncMock(return_value=result, side_effect=side_effect)
    return llm


_VALID = {
    "message": "Thanks! Which building and room are you in?",
    "urgencyLevel": "normal",
    "safetyFlags": [],
    "nextAction": "ask_followup",
    "conversationSlots": {"issueSummary": "leaking faucet", "roomNumber": None},
    "nextQuestion": "Which building and room are you in?",
    "mediaRequest": {"type": "photo", "reason": "to see the leak"},
}


class TestGenerate(unittest.TestCase):
    def test_valid_response(self) -> None:
        client = GenerationClient(_llm(FunctionCallResult(tool_name=TOOL_NAME, arguments=_VALID)))
        response = _run(client.generate(GenerationRequest(message="my faucet leaks")))
        self.assertEqual(response.urgency_level, UrgencyLevel.NORMAL)
        self.assertEqual(response.next_action, NextAction.ASK_FOLLOWUP)
        self.assertEqual(response.slot_updates(), {"issue_summary": "leaking faucet"})
        self.assertEqual(response.media_request.type, "photo")

    def test_message_composed_from_parts(self) -> None:
        args = dict(_VALID, message="", acknowledgment="Got it.")
        client = GenerationClient(_llm(FunctionCallResult(tool_name=TOOL_NAME, arguments=args)))
        response = _run(client.generate(GenerationRequest(message="hi")))
        self.assertEqual(response.compose_message(), "Got it. Which building and room are you in?")

    def test_no_tool_call_raises(self) -> None:
        client = GenerationClient(_llm(None))
        with self.assertRaises(GenerationError):
            _run(client.generate(GenerationRequest(message="hi")))

    def test_wrong_tool_raises(self) -> None:
        client = GenerationClient(_llm(FunctionCallResult(tool_name="other", arguments=_VALID)))
        with self.assertRaises(GenerationError):
            _run(client.generate(GenerationRequest(message="hi")))

    def test_schema_violation_raises(self) -> None:
        args = dict(_VALID, urgencyLevel="catastrophic")
        client = GenerationClient(_llm(FunctionCallResult(tool_name=TOOL_NAME, arguments=args)))
        with self.assertRaises(GenerationError) as ctx:
            _run(client.generate(GenerationRequest(message="hi")))
        self.assertIn("errors", ctx.exception.details)

    def test_missing_required_field_raises(self) -> None:
        args = {k: v for k, v in _VALID.items() if k != "nextAction"}
        client = GenerationClient(_llm(FunctionCallResult(tool_name=TOOL_NAME, arguments=args)))
        with self.assertRaises(GenerationError):
            _run(client.generate(GenerationRequest(message="hi")))

    def test_provider_error_is_wrapped(self) -> None:
        client = GenerationClient(_llm(side_effect=RuntimeError("boom")))
        with self.assertRaises(GenerationError) as ctx:
            _run(client.generate(GenerationRequest(message="hi")))
        self.assertIsInstance(ctx.exception.cause, RuntimeError)

    def test_timeout(self) -> None:
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)

        llm = _llm()
        llm.function_call = slow
        client = GenerationClient(llm, timeout=0.01)
        with self.assertRaises(GenerationError) as ctx:
            _run(client.generate(GenerationRequest(message="hi")))
        self.assertIn("timed out", ctx.exception.message)

    def test_history_window(self) -> None:
        llm = _llm(FunctionCallResult(tool_name=TOOL_NAME, arguments=_VALID))
        now = _dt.datetime.now(_dt.timezone.utc)
        history = [Turn(role=Role.STUDENT if i % 2 == 0 else Role.AGENT, message=f"m{i}", timestamp=now) for i in range(6)]
        client = GenerationClient(llm, max_history_turns=2)
        _run(client.generate(GenerationRequest(message="hi", history=history)))
        sent = llm.function_call.call_args.kwargs["conversation_history"]
        self.assertEqual(len(sent), 3)
        self.assertEqual(sent[0]["role"], "system")
        self.assertEqual([m["content"] for m in sent[1:]], ["m4", "m5"])
        self.assertEqual(llm.function_call.call_args.kwargs["tool_choice"], TOOL_NAME)

    def test_initial_flag(self) -> None:
        now = _dt.datetime.now(_dt.timezone.utc)
        self.assertTrue(GenerationRequest(message="hi").is_initial)
        self.assertFalse(GenerationRequest(message="hi", history=[Turn(Role.STUDENT, "x", now)]).is_initial)


if __name__ == "__main__":
    unittest.main()
