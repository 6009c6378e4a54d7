"""
dormfix.config.scheduling – scheduling optimizer limits.

Env vars: SCHEDULING_HORIZON_DAYS, SCHEDULING_SLOT_STEP_MINUTES, SCHEDULING_BUFFER_MINUTES,
SCHEDULING_MAX_CANDIDATES, SCHEDULING_MAX_RECOMMENDATIONS, SCHEDULING_DEFAULT_DAILY_CAP.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields

from dormfix.config._validators import positive_int


@dataclass(frozen=True)
class SchedulingConfig:
    horizon_days: int = 14
    slot_step_minutes: int = 30
    buffer_minutes: int = 15
    max_candidates: int = 10
    max_recommendations: int = 5
    default_daily_cap: int = 3

    def __post_init__(self) -> None:
        for f in fields(self):
            positive_int(getattr(self, f.name), f.name, min_val=0 if f.name == "buffer_minutes" else 1)

    @classmethod
    def from_env(cls, **overrides: object) -> SchedulingConfig:
        values = {}
        for f in fields(cls):
            var = f"SCHEDULING_{f.name.upper()}"
            if overrides.get(f.name) is not None:
                values[f.name] = int(overrides[f.name])
            elif os.environ.get(var):
                values[f.name] = int(os.environ[var])
        return cls(**values)


def load_scheduling_config(**overrides: object) -> SchedulingConfig:
    return SchedulingConfig.from_env(**overrides)
