"""
LLM clients: base, config, registry.

Register a provider with default_registry.register(provider, builder) and use
build_llm_client() to get a client for the environment (no-op when unset).
"""
from __future__ import annotations

import logging
from typing import Optional

from dormfix.clients.llm.base import BaseLLMClient, FunctionCallResult, LLMMessage
from dormfix.clients.llm.config import LLMConfig
from dormfix.clients.llm.registry import LLMRegistry, default_registry

logger = logging.getLogger(__name__)


def build_llm_client(config: Optional[LLMConfig] = None, registry: Optional[LLMRegistry] = None) -> BaseLLMClient:
    """Build the configured client, falling back to the no-op client."""
    config = config or LLMConfig.from_env()
    if config is None or not config.provider:
        from dormfix.clients.llm.providers.noop import NoOpLLMClient

        logger.info("LLM: no provider configured, using no-op client")
        return NoOpLLMClient()
    client = (registry or default_registry).build(config.provider, config.to_dict())
    logger.info("LLM: using %s (%s)", config.provider, config.model)
    return client


__all__ = [
    "BaseLLMClient",
    "FunctionCallResult",
    "LLMMessage",
    "LLMConfig",
    "LLMRegistry",
    "default_registry",
    "build_llm_client",
]
