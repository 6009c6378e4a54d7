"""Small validators shared by the config dataclasses."""
from __future__ import annotations


def positive_int(value: int, name: str, min_val: int = 1) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < min_val:
        raise ValueError(f"{name} must be an integer >= {min_val}, got {value!r}")
    return value


def positive_float(value: float, name: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"{name} must be a positive number, got {value!r}")
    return float(value)


def score_between(value: int, name: str, low: int = 0, high: int = 100) -> int:
    if not isinstance(value, int) or not (low <= value <= high):
        raise ValueError(f"{name} must be an integer in [{low}, {high}], got {value!r}")
    return value


def env_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes")
