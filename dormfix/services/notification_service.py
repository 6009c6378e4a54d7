"""Outbound HMAC-signed webhook notifications.

Every event is signed with HMAC-SHA256 using ``NOTIFY_WEBHOOK_SECRET``. The hex
digest is sent in the ``X-DormFix-Signature: sha256=<hex>`` header so the
receiver can verify authenticity:

    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    assert hmac.compare_digest(expected, received_sig.removeprefix("sha256="))

Events fired
------------
- ``case.created``            new maintenance case (student and admin audiences)
- ``case.linked``             a report was folded into an existing case
- ``emergency.alert``         a conversation was raised to emergency urgency
- ``appointment.recommended`` scheduling produced a primary recommendation

Delivery is fire-and-forget: failures are logged and never reach the caller.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional, Set

import httpx

from dormfix.config.notifications import NotificationConfig
from dormfix.scheduling.types import SchedulingResult
from dormfix.triage.types import AgentResponse, TriageState, UrgencyLevel

logger = logging.getLogger(__name__)

CASE_CREATED = "case.created"
CASE_LINKED = "case.linked"
EMERGENCY_ALERT = "emergency.alert"
APPOINTMENT_RECOMMENDED = "appointment.recommended"


def _build_payload(event: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "event": event,
        "timestamp": _dt.datetime.now(_dt.timezone.utc).isoformat(),
        "data": data,
    }


def _sign(body: bytes, secret: str) -> str:
    """Return ``sha256=<hex>`` HMAC signature for *body* using *secret*."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


async def dispatch(
    event: str,
    data: Dict[str, Any],
    webhook_url: Optional[str],
    webhook_secret: Optional[str],
    *,
    timeout: float = 10.0,
) -> bool:
    """POST a signed JSON event to *webhook_url*. Returns True on a 2xx/3xx answer.

    Silently drops the event if URL or secret is missing.
    Never raises; logs warnings on failure.
    """
    if not webhook_url or not webhook_secret:
        return False

    body = json.dumps(_build_payload(event, data), ensure_ascii=False, default=str).encode("utf-8")
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(
                webhook_url,
                content=body,
                headers={
                    "Content-Type": "application/json",
                    "X-DormFix-Signature": _sign(body, webhook_secret),
                    "X-DormFix-Event": event,
                },
            )
    except Exception as exc:
        logger.warning("Notification: %s -> %s failed: %s", event, webhook_url, exc)
        return False

    if resp.status_code >= 400:
        logger.warning("Notification: %s -> %s returned HTTP %d", event, webhook_url, resp.status_code)
        return False
    logger.info("Notification: %s dispatched -> %s (%d)", event, webhook_url, resp.status_code)
    return True


def verify_inbound(body: bytes, secret: str, provided_sig: str) -> bool:
    """Verify that *provided_sig* (bare hex or ``sha256=<hex>``) matches the HMAC of *body*."""
    if not secret:
        return False
    clean = provided_sig.removeprefix("sha256=")
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, clean)


class NotificationService:
    """Builds event payloads for triage and scheduling outcomes and sends them in the background."""

    def __init__(self, config: Optional[NotificationConfig] = None) -> None:
        self._config = config or NotificationConfig()
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def emit(self, event: str, data: Dict[str, Any]) -> Optional[asyncio.Task]:
        """Schedule delivery without waiting for it."""
        if not self.enabled:
            return None
        task = asyncio.ensure_future(
            dispatch(
                event,
                data,
                self._config.webhook_url,
                self._config.webhook_secret,
                timeout=self._config.timeout_seconds,
            )
        )
        # Keep a reference until done so the task is not garbage collected.
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def notify_turn(self, previous: TriageState, state: TriageState, response: AgentResponse) -> None:
        """Emit the events implied by one processed turn: a new emergency, a new or linked case."""
        base = {
            "conversation_id": str(state.conversation_id) if state.conversation_id else None,
            "organization_id": state.organization_id,
            "student_id": state.student_id,
            "urgency_level": response.urgency_level.value,
            "safety_flags": list(response.safety_flags),
            "location": state.location.to_dict(),
        }
        if state.urgency_level == UrgencyLevel.EMERGENCY and previous.urgency_level != UrgencyLevel.EMERGENCY:
            self.emit(EMERGENCY_ALERT, {**base, "message": response.message})
        if response.case_id is not None and previous.case_id is None:
            case_data = {
                **base,
                "case_id": str(response.case_id),
                "case_number": response.case_number,
                "issue_summary": state.slots.get("issue_summary"),
                "reporter": {
                    "name": state.slots.get("student_name"),
                    "email": state.slots.get("student_email"),
                    "phone": state.slots.get("student_phone"),
                },
            }
            if response.linked_existing_case:
                self.emit(CASE_LINKED, case_data)
            else:
                self.emit(CASE_CREATED, {**case_data, "audiences": ["student", "admin"]})

    def notify_schedule(self, case_id: Optional[str], result: SchedulingResult) -> None:
        if not result.success or result.primary is None:
            return
        self.emit(
            APPOINTMENT_RECOMMENDED,
            {
                "case_id": case_id,
                "primary": result.primary.to_dict(),
                "alternatives": len(result.recommendations) - 1,
                "optimization_score": round(result.optimization_score, 4),
            },
        )
