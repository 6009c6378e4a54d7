"""MaintenanceCase ORM: the work order created from a completed triage conversation."""
from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy import Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from dormfix.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class MaintenanceCase(Base, TimestampMixin):
    __tablename__ = "maintenance_cases"
    __table_args__ = (
        Index("ix_maintenance_cases_location", "building_name", "room_number", "created_at"),
        Index("ix_maintenance_cases_status", "status"),
        Index("ix_maintenance_cases_organization_id", "organization_id"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    case_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    conversation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True, unique=True,
    )
    """One case per conversation. Linked duplicates keep the first conversation id."""

    organization_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    category: Mapped[str] = mapped_column(String(32), nullable=False, server_default="General")
    priority: Mapped[str] = mapped_column(String(16), nullable=False, server_default="normal")
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="open")
    """open | scheduled | resolved | closed."""

    building_name: Mapped[str] = mapped_column(String(255), nullable=False)
    room_number: Mapped[str] = mapped_column(String(32), nullable=False)
    routing_id: Mapped[str] = mapped_column(String(64), nullable=False)

    reporter_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reporter_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reporter_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    extra_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)
    """Safety flags, linked conversation ids, triage timeline and severity."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "case_number": self.case_number,
            "conversation_id": str(self.conversation_id) if self.conversation_id else None,
            "organization_id": self.organization_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "building_name": self.building_name,
            "room_number": self.room_number,
            "routing_id": self.routing_id,
            "reporter": {
                "name": self.reporter_name,
                "email": self.reporter_email,
                "phone": self.reporter_phone,
            },
            "metadata": dict(self.extra_metadata or {}),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"MaintenanceCase(id={self.id!r}, number={self.case_number!r}, status={self.status!r})"
