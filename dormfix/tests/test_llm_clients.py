"""Unit tests for the LLM registry and the provider tool-call adapters.

No network: the vendor SDK calls are replaced with AsyncMocks.
"""
from __future__ import annotations

import asyncio
import json
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock

from dormfix.clients.llm import LLMConfig, LLMRegistry, build_llm_client
from dormfix.clients.llm.providers.gemini import GeminiLLMClient
from dormfix.clients.llm.providers.noop import NoOpLLMClient
from dormfix.clients.llm.providers.openai import OpenAILLMClient

_TOOLS = [{"type": "function", "function": {"name": "triage_turn", "parameters": {"type": "object"}}}]


def _run(coro):
    return asyncio.run(coro)


def _openai_response(tool_calls=None):
    message = SimpleNamespace(content=None, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestRegistry(unittest.TestCase):
    def test_unknown_provider_raises(self) -> None:
        with self.assertRaises(KeyError):
            LLMRegistry().build("mistral", {})

    def test_build_uses_registered_builder(self) -> None:
        registry = LLMRegistry()
        registry.register("noop", lambda config: NoOpLLMClient())
        client = build_llm_client(LLMConfig(model="m", provider="noop"), registry)
        self.assertEqual(client.provider, "noop")
        self.assertEqual(registry.providers, ["noop"])

    def test_default_registry_builds_openai(self) -> None:
        client = build_llm_client(LLMConfig(model="gpt-4o-mini", provider="openai", api_key="sk-test"))
        self.assertIsInstance(client, OpenAILLMClient)


class TestOpenAIFunctionCall(unittest.TestCase):
    def setUp(self) -> None:
        self.client = OpenAILLMClient(api_key="sk-test")
        self.create = AsyncMock()
        self.client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=self.create)))

    def test_forced_tool_choice_and_history(self) -> None:
        call = SimpleNamespace(function=SimpleNamespace(name="triage_turn", arguments='{"message": "hi"}'))
        self.create.return_value = _openai_response([call])
        history = [{"role": "system", "content": "be brief"}]
        result = _run(self.client.function_call("sink leaks", _TOOLS, conversation_history=history, tool_choice="triage_turn"))
        self.assertEqual(result.tool_name, "triage_turn")
        self.assertEqual(result.arguments, {"message": "hi"})
        kwargs = self.create.call_args.kwargs
        self.assertEqual(kwargs["tool_choice"], {"type": "function", "function": {"name": "triage_turn"}})
        self.assertEqual([m["role"] for m in kwargs["messages"]], ["system", "user"])

    def test_no_tool_call_returns_none(self) -> None:
        self.create.return_value = _openai_response(None)
        self.assertIsNone(_run(self.client.function_call("hello", _TOOLS)))
        self.assertEqual(self.create.call_args.kwargs["tool_choice"], "auto")

    def test_sdk_error_returns_none(self) -> None:
        self.create.side_effect = RuntimeError("rate limited")
        self.assertIsNone(_run(self.client.function_call("hello", _TOOLS)))

    def test_bad_arguments_become_empty(self) -> None:
        call = SimpleNamespace(function=SimpleNamespace(name="triage_turn", arguments="{not json"))
        self.create.return_value = _openai_response([call])
        self.assertEqual(_run(self.client.function_call("x", _TOOLS)).arguments, {})


class TestGeminiFunctionCall(unittest.TestCase):
    def setUp(self) -> None:
        self.client = GeminiLLMClient(api_key="test-key")

    def test_fenced_json_envelope(self) -> None:
        envelope = {"tool_name": "triage_turn", "arguments": {"message": "Which room?"}}
        self.client.chat = AsyncMock(return_value="```json\n" + json.dumps(envelope) + "\n```")
        result = _run(self.client.function_call("my heater is off", _TOOLS, tool_choice="triage_turn"))
        self.assertEqual(result.tool_name, "triage_turn")
        self.assertEqual(result.arguments["message"], "Which room?")
        prompt = self.client.chat.call_args.args[0][-1]["content"]
        self.assertIn('You MUST call the tool "triage_turn"', prompt)

    def test_prose_reply_returns_none(self) -> None:
        self.client.chat = AsyncMock(return_value="Sorry, I can't help with that.")
        self.assertIsNone(_run(self.client.function_call("x", _TOOLS)))

    def test_no_tools_skips_model(self) -> None:
        self.client.chat = AsyncMock()
        self.assertIsNone(_run(self.client.function_call("x", [])))
        self.client.chat.assert_not_called()


if __name__ == "__main__":
    unittest.main()
