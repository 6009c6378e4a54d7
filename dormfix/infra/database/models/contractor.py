"""Contractor ORM models: the contractor, weekly availability, bookings and blackout ranges.

Read-only for the scheduling optimizer.
"""
from __future__ import annotations

import datetime as _dt
import uuid
from typing import Any, List, Optional

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from dormfix.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Contractor(Base, TimestampMixin):
    __tablename__ = "contractors"
    __table_args__ = (
        Index("ix_contractors_is_active", "is_active"),
        Index("ix_contractors_category", "category"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    specialties: Mapped[List[str]] = mapped_column(JSONB, nullable=False, server_default="[]")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_preferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    emergency_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_jobs_per_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    response_time_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    hourly_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    contact: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB, nullable=True)


class ContractorAvailability(Base):
    """Recurring weekly window. day_of_week: 0 = Monday ... 6 = Sunday."""

    __tablename__ = "contractor_availability"
    __table_args__ = (
        Index("ix_contractor_availability_contractor_day", "contractor_id", "day_of_week"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False,
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[_dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[_dt.time] = mapped_column(Time, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ContractorBooking(Base, TimestampMixin):
    __tablename__ = "contractor_bookings"
    __table_args__ = (
        Index("ix_contractor_bookings_contractor_start", "contractor_id", "start_at"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False,
    )
    case_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("maintenance_cases.id", ondelete="SET NULL"), nullable=True,
    )
    start_at: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[_dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="confirmed")


class ContractorBlackout(Base):
    """Inclusive date range in which the contractor takes no work."""

    __tablename__ = "contractor_blackouts"
    __table_args__ = (
        Index("ix_contractor_blackouts_contractor", "contractor_id", "start_date"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    contractor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False,
    )
    start_date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
