"""OpenAI LLM provider: BaseLLMClient implementation + registry builder."""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from dormfix.clients.llm.base import BaseLLMClient, FunctionCallResult, LLMMessage

logger = logging.getLogger(__name__)


class OpenAILLMClient(BaseLLMClient):
    """OpenAI-compatible LLM client (gpt-4o, gpt-4o-mini, ...)."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        client_kwargs: Dict[str, Any] = {
            "api_key": api_key or os.environ.get("OPENAI_API_KEY"),
            "base_url": base_url,
        }
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._client = AsyncOpenAI(**client_kwargs)

    @property
    def provider(self) -> str:
        return "openai"

    def _base_kwargs(self, messages: List[Dict[str, Any]], model: Optional[str] = None) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": model or self._model,
            "messages": messages,
            "temperature": self._temperature,
        }
        if self._max_tokens is not None:
            kwargs["max_tokens"] = self._max_tokens
        return kwargs

    async def complete(self, prompt: str, *, model: Optional[str] = None) -> str:
        response = await self._client.chat.completions.create(
            **self._base_kwargs([{"role": "user", "content": prompt}], model)
        )
        return response.choices[0].message.content or ""

    async def chat(self, messages: List[Dict[str, Any]]) -> str:
        """Native multi-turn chat with system-prompt support."""
        response = await self._client.chat.completions.create(**self._base_kwargs(messages))
        return response.choices[0].message.content or ""

    async def function_call(
        self,
        prompt: str,
        tools: List[dict],
        *,
        conversation_history: Optional[List[LLMMessage]] = None,
        tool_choice: Optional[str] = None,
    ) -> Optional[FunctionCallResult]:
        """Native tool calling. A named ``tool_choice`` forces that function."""
        if not tools:
            return None

        messages: List[Dict[str, Any]] = list(conversation_history or [])
        messages.append({"role": "user", "content": prompt})
        kwargs = self._base_kwargs(messages)
        kwargs["tools"] = tools
        kwargs["tool_choice"] = (
            {"type": "function", "function": {"name": tool_choice}} if tool_choice else "auto"
        )

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except Exception as exc:
            logger.error("OpenAILLMClient.function_call failed: %s", exc)
            return None

        msg = response.choices[0].message
        if not msg.tool_calls:
            return None

        tc = msg.tool_calls[0]
        try:
            arguments = json.loads(tc.function.arguments)
        except json.JSONDecodeError:
            logger.warning("OpenAILLMClient.function_call: arguments are not JSON: %r", tc.function.arguments)
            arguments = {}

        return FunctionCallResult(
            tool_name=tc.function.name,
            arguments=arguments,
            raw_response=tc.function.arguments,
        )


def openai_builder(config: Dict[str, Any]) -> OpenAILLMClient:
    return OpenAILLMClient(
        model=config.get("model", "gpt-4o-mini"),
        api_key=config.get("api_key"),
        base_url=config.get("base_url"),
        temperature=float(config.get("temperature", 0.0)),
        max_tokens=config.get("max_tokens"),
        timeout=config.get("timeout"),
    )
