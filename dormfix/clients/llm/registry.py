"""
LLM provider registry: provider name -> builder(config dict) -> BaseLLMClient.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List

from dormfix.clients.llm.base import BaseLLMClient

Builder = Callable[[Dict[str, Any]], BaseLLMClient]


class LLMRegistry:
    def __init__(self) -> None:
        self._builders: Dict[str, Builder] = {}

    def register(self, provider: str, builder: Builder) -> None:
        self._builders[provider] = builder

    @property
    def providers(self) -> List[str]:
        return list(self._builders)

    def build(self, provider: str, config: Dict[str, Any]) -> BaseLLMClient:
        """Build a client. Raises KeyError for an unknown provider."""
        builder = self._builders.get(provider)
        if builder is None:
            raise KeyError(f"Unknown LLM provider: {provider!r}. Registered: {self.providers}")
        return builder(config)


default_registry = LLMRegistry()

from dormfix.clients.llm.providers.gemini import gemini_builder  # noqa: E402
from dormfix.clients.llm.providers.openai import openai_builder  # noqa: E402

default_registry.register("openai", openai_builder)
default_registry.register("gemini", gemini_builder)
