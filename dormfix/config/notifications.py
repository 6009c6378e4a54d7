"""
dormfix.config.notifications – outbound webhook target for case and emergency events.

Env vars: NOTIFY_WEBHOOK_URL, NOTIFY_WEBHOOK_SECRET, NOTIFY_TIMEOUT_SECONDS.
Both URL and secret must be set for events to be sent.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dormfix.config._validators import positive_float


@dataclass(frozen=True)
class NotificationConfig:
    webhook_url: Optional[str] = None
    webhook_secret: Optional[str] = None
    timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        if self.webhook_url and not self.webhook_url.startswith(("http://", "https://")):
            raise ValueError("webhook_url must be an http(s) URL")
        positive_float(self.timeout_seconds, "timeout_seconds")

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url and self.webhook_secret)

    @classmethod
    def from_env(cls, **overrides: object) -> NotificationConfig:
        return cls(
            webhook_url=str(overrides.get("webhook_url") or os.environ.get("NOTIFY_WEBHOOK_URL", "")) or None,
            webhook_secret=str(overrides.get("webhook_secret") or os.environ.get("NOTIFY_WEBHOOK_SECRET", "")) or None,
            timeout_seconds=float(overrides.get("timeout_seconds") or os.environ.get("NOTIFY_TIMEOUT_SECONDS", 10.0)),
        )


def load_notification_config(**overrides: object) -> NotificationConfig:
    return NotificationConfig.from_env(**overrides)
