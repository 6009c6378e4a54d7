"""
dormfix.config.triage – intake engine tuning (dataclass + validators).

Env vars: TRIAGE_GENERATION_TIMEOUT, TRIAGE_READY_THRESHOLD, TRIAGE_RELAXED_THRESHOLD,
TRIAGE_LONG_CONVERSATION_TURNS, TRIAGE_DEDUP_WINDOW_MINUTES, TRIAGE_MAX_HISTORY_TURNS.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from dormfix.config._validators import positive_float, positive_int, score_between


@dataclass(frozen=True)
class TriageConfig:
    """Thresholds and limits used by the conversation orchestrator and case materializer."""

    generation_timeout: float = 20.0
    """Seconds to wait for the language model before falling back."""

    ready_threshold: int = 70
    """Completeness score needed (together with every gate) to materialize a case."""

    relaxed_threshold: int = 60
    """Threshold used for frustrated students or long conversations. Gates still apply."""

    long_conversation_turns: int = 6
    """Student turns after which the relaxed threshold kicks in."""

    dedup_window_minutes: int = 30
    """How far back to look for a same-location case before creating a new one."""

    max_history_turns: int = 20
    """Turns of history sent to the language model (the stored history is never cut)."""

    def __post_init__(self) -> None:
        positive_float(self.generation_timeout, "generation_timeout")
        score_between(self.ready_threshold, "ready_threshold")
        score_between(self.relaxed_threshold, "relaxed_threshold")
        if self.relaxed_threshold > self.ready_threshold:
            raise ValueError("relaxed_threshold must not exceed ready_threshold")
        positive_int(self.long_conversation_turns, "long_conversation_turns")
        positive_int(self.dedup_window_minutes, "dedup_window_minutes")
        positive_int(self.max_history_turns, "max_history_turns")

    @classmethod
    def from_env(cls, **overrides: object) -> TriageConfig:
        env = {
            "generation_timeout": ("TRIAGE_GENERATION_TIMEOUT", float),
            "ready_threshold": ("TRIAGE_READY_THRESHOLD", int),
            "relaxed_threshold": ("TRIAGE_RELAXED_THRESHOLD", int),
            "long_conversation_turns": ("TRIAGE_LONG_CONVERSATION_TURNS", int),
            "dedup_window_minutes": ("TRIAGE_DEDUP_WINDOW_MINUTES", int),
            "max_history_turns": ("TRIAGE_MAX_HISTORY_TURNS", int),
        }
        values = {}
        for attr, (var, cast) in env.items():
            if overrides.get(attr) is not None:
                values[attr] = cast(overrides[attr])
            elif os.environ.get(var):
                values[attr] = cast(os.environ[var])
        return cls(**values)


def load_triage_config(**overrides: object) -> TriageConfig:
    return TriageConfig.from_env(**overrides)
