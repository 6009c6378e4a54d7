from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class LLMConfig:
    """Provider settings for the generation client."""

    model: str
    provider: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.0
    max_tokens: Optional[int] = None
    timeout: float = 60.0
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Config as a builder dict, None values dropped."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_env(cls) -> Optional["LLMConfig"]:
        """OPENAI_API_KEY wins over GEMINI_API_KEY / GOOGLE_API_KEY; None when neither is set.

        LLM_MODEL overrides the provider's default model, LLM_BASE_URL points
        the OpenAI client at a compatible endpoint.
        """
        openai_key = os.environ.get("OPENAI_API_KEY")
        gemini_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
        if openai_key:
            return cls(
                provider="openai",
                model=os.environ.get("LLM_MODEL", "gpt-4o-mini"),
                api_key=openai_key,
                base_url=os.environ.get("LLM_BASE_URL") or None,
            )
        if gemini_key:
            return cls(
                provider="gemini",
                model=os.environ.get("LLM_MODEL", "gemini-2.0-flash"),
                api_key=gemini_key,
            )
        return None
