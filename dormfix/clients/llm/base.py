from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, TypedDict


class LLMMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class FunctionCallResult:
    """Result of an LLM function/tool call."""

    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    raw_response: Optional[str] = None


class BaseLLMClient(ABC):
    @property
    @abstractmethod
    def provider(self) -> str:
        ...

    @abstractmethod
    async def complete(self, prompt: str, *, model: str | None = None) -> str:
        ...

    async def chat(self, messages: List[LLMMessage]) -> str:
        """Send a multi-turn conversation with an optional system message.

        Default implementation flattens the messages into one prompt and calls
        ``complete()``. Providers with native multi-turn APIs override it.
        """
        parts: List[str] = []
        for msg in messages:
            content = (msg.get("content") or "").strip()
            if not content:
                continue
            if msg.get("role") == "system":
                parts.insert(0, f"[System instructions]\n{content}\n")
            else:
                parts.append(f"{msg.get('role', 'user')}: {content}")
        return await self.complete("\n".join(parts))

    async def function_call(
        self,
        prompt: str,
        tools: List[dict],
        *,
        conversation_history: Optional[List[LLMMessage]] = None,
        tool_choice: Optional[str] = None,
    ) -> Optional[FunctionCallResult]:
        """Ask the LLM to call one of *tools* and return its arguments.

        ``tool_choice`` names a tool the model must call. Returns ``None``
        when the provider does not support function calling or the model
        produced no call.
        """
        return None
