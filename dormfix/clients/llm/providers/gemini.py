"""Google Gemini LLM provider: BaseLLMClient implementation + registry builder."""
from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

from google import genai

from dormfix.clients.llm.base import BaseLLMClient, FunctionCallResult, LLMMessage

logger = logging.getLogger(__name__)


def _split_messages(messages: List[Dict[str, Any]]) -> tuple:
    """Return (system instruction text, gemini-style contents)."""
    system_parts: List[str] = []
    contents: List[Dict[str, Any]] = []
    for msg in messages:
        content = (msg.get("content") or "").strip()
        if not content:
            continue
        role = msg.get("role", "user")
        if role == "system":
            system_parts.append(content)
        else:
            contents.append({"role": "model" if role == "assistant" else "user", "parts": [{"text": content}]})
    return "\n\n".join(system_parts), contents


class GeminiLLMClient(BaseLLMClient):
    """Google Gemini LLM client (gemini-2.0-flash, gemini-1.5-pro, ...)."""

    def __init__(self, model: str = "gemini-2.0-flash", *, api_key: Optional[str] = None) -> None:
        self._model = model
        resolved_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
        self._client = genai.Client(api_key=resolved_key)

    @property
    def provider(self) -> str:
        return "gemini"

    async def complete(self, prompt: str, *, model: Optional[str] = None) -> str:
        response = await self._client.aio.models.generate_content(
            model=model or self._model,
            contents=prompt,
        )
        return response.text or ""

    async def chat(self, messages: List[Dict[str, Any]]) -> str:
        """Native multi-turn chat with system-instruction support."""
        from google.genai import types as genai_types

        system, contents = _split_messages(messages)
        config = genai_types.GenerateContentConfig(system_instruction=system) if system else None
        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=contents,
            config=config,
        )
        return response.text or ""

    async def function_call(
        self,
        prompt: str,
        tools: List[dict],
        *,
        conversation_history: Optional[List[LLMMessage]] = None,
        tool_choice: Optional[str] = None,
    ) -> Optional[FunctionCallResult]:
        """Prompt-based tool calling: the model answers with a JSON envelope."""
        if not tools:
            return None

        tool_list = json.dumps(tools, ensure_ascii=False, indent=2)
        if tool_choice:
            selection = f'You MUST call the tool "{tool_choice}".'
        else:
            selection = "Select the most appropriate tool."
        dispatch_prompt = (
            f"{selection} Extract its arguments from the conversation.\n\n"
            f"Available tools (JSON schema):\n{tool_list}\n\n"
            f"Request:\n{prompt}\n\n"
            "Respond with ONLY a JSON object in this exact format:\n"
            '{"tool_name": "<name>", "arguments": {<key-value pairs>}}'
        )
        messages: List[Dict[str, Any]] = list(conversation_history or [])
        messages.append({"role": "user", "content": dispatch_prompt})

        try:
            raw = await self.chat(messages)
        except Exception as exc:
            logger.error("GeminiLLMClient.function_call failed: %s", exc)
            return None

        raw = re.sub(r"^```(?:json)?\s*", "", raw.strip())
        raw = re.sub(r"\s*```$", "", raw.strip())
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("GeminiLLMClient.function_call: could not parse JSON: %r", raw[:200])
            return None
        if not isinstance(parsed, dict) or not parsed.get("tool_name"):
            return None

        return FunctionCallResult(
            tool_name=parsed["tool_name"],
            arguments=parsed.get("arguments") or {},
            raw_response=raw,
        )


def gemini_builder(config: Dict[str, Any]) -> GeminiLLMClient:
    return GeminiLLMClient(
        model=config.get("model", "gemini-2.0-flash"),
        api_key=config.get("api_key"),
    )
