"""TriageConversation repository with a version-checked state write."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import update as sa_update

from dormfix.infra.database.models.triage_conversation import TriageConversation
from dormfix.infra.database.repositories.base import BaseRepository


class TriageConversationRepository(BaseRepository[TriageConversation]):
    model = TriageConversation

    async def save_if_version(self, id: UUID, expected_version: int, data: dict[str, Any]) -> bool:
        """Write *data* and bump the version, only if the row is still at *expected_version*.

        Returns False when another writer got there first.
        """
        stmt = (
            sa_update(TriageConversation)
            .where(TriageConversation.id == id)
            .where(TriageConversation.version == expected_version)
            .values(**data, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
