"""
Formatters: JSON lines for the rotating file, plain text for the console.
"""
from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

# Attributes passed through ``logger.info(..., extra={...})`` that end up in
# the JSON record. Anything else on the LogRecord is logging internals.
CONTEXT_KEYS = (
    "conversation_id",
    "case_id",
    "case_number",
    "contractor_id",
    "urgency",
    "next_action",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with triage context keys lifted to the top level."""

    def __init__(self, *, context_keys: tuple = CONTEXT_KEYS) -> None:
        super().__init__()
        self.context_keys = context_keys

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": _utc_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self.context_keys:
            value = getattr(record, key, None)
            if value is not None:
                log_dict[key] = value
        if record.exc_info:
            log_dict["exception"] = "".join(
                traceback.format_exception(*record.exc_info)
            ).strip()
        log_dict["lineno"] = record.lineno
        return json.dumps(log_dict, default=str, ensure_ascii=False)


def _utc_iso(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat()


class PlainConsoleFormatter(logging.Formatter):
    """Human-readable format for console."""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None) -> None:
        super().__init__(
            fmt=fmt or "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt=datefmt or "%Y-%m-%d %H:%M:%S",
        )
