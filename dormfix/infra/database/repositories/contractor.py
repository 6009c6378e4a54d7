"""Contractor, availability, booking and blackout queries for the scheduling optimizer."""
from __future__ import annotations

import datetime as _dt
from typing import List
from uuid import UUID

from sqlalchemy import select

from dormfix.infra.database.models.contractor import (
    Contractor,
    ContractorAvailability,
    ContractorBlackout,
    ContractorBooking,
)
from dormfix.infra.database.repositories.base import BaseRepository


class ContractorRepository(BaseRepository[Contractor]):
    model = Contractor

    async def list_active(self, *, emergency_only: bool = False) -> List[Contractor]:
        stmt = select(Contractor).where(Contractor.is_active.is_(True))
        if emergency_only:
            stmt = stmt.where(Contractor.emergency_available.is_(True))
        stmt = stmt.order_by(Contractor.is_preferred.desc(), Contractor.rating.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_availability(self, contractor_id: UUID) -> List[ContractorAvailability]:
        stmt = (
            select(ContractorAvailability)
            .where(ContractorAvailability.contractor_id == contractor_id)
            .order_by(ContractorAvailability.day_of_week, ContractorAvailability.start_time)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_bookings(
        self,
        contractor_id: UUID,
        start: _dt.datetime,
        end: _dt.datetime,
    ) -> List[ContractorBooking]:
        """Bookings overlapping [start, end). Cancelled ones are ignored."""
        stmt = (
            select(ContractorBooking)
            .where(ContractorBooking.contractor_id == contractor_id)
            .where(ContractorBooking.start_at < end)
            .where(ContractorBooking.end_at > start)
            .where(ContractorBooking.status != "cancelled")
            .order_by(ContractorBooking.start_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_blackouts(
        self,
        contractor_id: UUID,
        start_date: _dt.date,
        end_date: _dt.date,
    ) -> List[ContractorBlackout]:
        stmt = (
            select(ContractorBlackout)
            .where(ContractorBlackout.contractor_id == contractor_id)
            .where(ContractorBlackout.start_date <= end_date)
            .where(ContractorBlackout.end_date >= start_date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
