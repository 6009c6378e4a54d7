"""MaintenanceCase repository."""
from __future__ import annotations

import datetime as _dt
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from dormfix.infra.database.models.maintenance_case import MaintenanceCase
from dormfix.infra.database.repositories.base import BaseRepository


class MaintenanceCaseRepository(BaseRepository[MaintenanceCase]):
    model = MaintenanceCase

    async def get_by_conversation_id(self, conversation_id: UUID) -> Optional[MaintenanceCase]:
        stmt = select(MaintenanceCase).where(MaintenanceCase.conversation_id == conversation_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def case_numbers_with_prefix(self, prefix: str) -> List[str]:
        stmt = select(MaintenanceCase.case_number).where(MaintenanceCase.case_number.startswith(prefix))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_recent_at_location(
        self,
        building_name: str,
        room_number: str,
        since: _dt.datetime,
    ) -> List[MaintenanceCase]:
        """Cases at the same building and room created at or after *since*, newest first."""
        stmt = (
            select(MaintenanceCase)
            .where(func.lower(MaintenanceCase.building_name) == building_name.lower())
            .where(MaintenanceCase.room_number == room_number)
            .where(MaintenanceCase.created_at >= since)
            .order_by(MaintenanceCase.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
