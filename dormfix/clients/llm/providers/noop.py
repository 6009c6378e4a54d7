"""No-op LLM client used when no provider is configured.

It never produces a tool call, so every triage turn takes the fallback path
and is escalated to staff. Safety scripts still work without it.
"""
from __future__ import annotations

from dormfix.clients.llm.base import BaseLLMClient, FunctionCallResult

_NOOP_MESSAGE = (
    "The maintenance assistant is not configured yet. "
    "Set OPENAI_API_KEY or GEMINI_API_KEY, or contact housing staff directly."
)


class NoOpLLMClient(BaseLLMClient):
    @property
    def provider(self) -> str:
        return "noop"

    async def complete(self, prompt: str, *, model: str | None = None) -> str:
        return _NOOP_MESSAGE

    async def function_call(
        self,
        prompt: str,
        tools: list,
        *,
        conversation_history: list | None = None,
        tool_choice: str | None = None,
    ) -> FunctionCallResult | None:
        return None
