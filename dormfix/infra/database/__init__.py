"""
dormfix.infra.database – PostgreSQL async engine, session, models and repositories.

Public API
──────────
  build_engine, build_session_factory, init_db, ensure_database_exists, close_engine
  Base, TriageConversation, MaintenanceCase, Contractor (+ availability/booking/blackout)
  TriageConversationRepository, MaintenanceCaseRepository, ContractorRepository
"""
from dormfix.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from dormfix.infra.database.models import (
    Base,
    Contractor,
    ContractorAvailability,
    ContractorBlackout,
    ContractorBooking,
    MaintenanceCase,
    TriageConversation,
)
from dormfix.infra.database.repositories import (
    BaseRepository,
    ContractorRepository,
    MaintenanceCaseRepository,
    TriageConversationRepository,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "init_db",
    "ensure_database_exists",
    "close_engine",
    "Base",
    "TriageConversation",
    "MaintenanceCase",
    "Contractor",
    "ContractorAvailability",
    "ContractorBooking",
    "ContractorBlackout",
    "BaseRepository",
    "TriageConversationRepository",
    "MaintenanceCaseRepository",
    "ContractorRepository",
]
