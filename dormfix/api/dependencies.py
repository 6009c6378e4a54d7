"""FastAPI dependency providers."""
from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dormfix.core.exceptions import ConfigurationError
from dormfix.services import SchedulingService, TriageService


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional AsyncSession from the app-level session factory."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_triage_service(request: Request, session: AsyncSession = Depends(get_session)) -> TriageService:
    state = request.app.state
    generation = getattr(state, "generation", None)
    if generation is None:
        raise ConfigurationError("Generation client not initialised. Check server startup logs.", http_status=503)
    return TriageService(
        session,
        generation,
        config=state.triage_config,
        notifier=state.notifier,
        locks=state.conversation_locks,
    )


def get_scheduling_service(request: Request, session: AsyncSession = Depends(get_session)) -> SchedulingService:
    return SchedulingService(
        session,
        session_factory=request.app.state.session_factory,
        config=request.app.state.scheduling_config,
    )
