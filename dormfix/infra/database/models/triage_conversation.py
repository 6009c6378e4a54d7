"""TriageConversation ORM: one row per reported issue, holding the whole intake state."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from dormfix.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class TriageConversation(Base, TimestampMixin):
    """Persisted TriageState. JSONB columns keep the state shape flexible."""

    __tablename__ = "triage_conversations"
    __table_args__ = (
        Index("ix_triage_conversations_student_id", "student_id"),
        Index("ix_triage_conversations_organization_id", "organization_id"),
        Index("ix_triage_conversations_is_complete", "is_complete"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    student_id: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_id: Mapped[str] = mapped_column(String(255), nullable=False)

    current_phase: Mapped[str] = mapped_column(
        String(32), nullable=False, server_default="gathering_info",
    )
    """gathering_info | final_triage. Never reverts once final."""

    urgency_level: Mapped[str] = mapped_column(String(16), nullable=False, server_default="normal")
    safety_flags: Mapped[List[str]] = mapped_column(JSONB, nullable=False, server_default="[]")
    history: Mapped[List[dict[str, Any]]] = mapped_column(JSONB, nullable=False, server_default="[]")
    """Append-only list of turn dicts (see Turn.to_dict)."""

    slots: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    location: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    pending_questions: Mapped[List[str]] = mapped_column(JSONB, nullable=False, server_default="[]")

    case_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    case_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    """Bumped on every persisted turn; updates are conditional on it."""

    def __repr__(self) -> str:
        return (
            f"TriageConversation(id={self.id!r}, phase={self.current_phase!r}, "
            f"urgency={self.urgency_level!r}, v={self.version})"
        )
