"""
dormfix.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from dormfix.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from dormfix.infra.database.models.contractor import (
    Contractor,
    ContractorAvailability,
    ContractorBlackout,
    ContractorBooking,
)
from dormfix.infra.database.models.maintenance_case import MaintenanceCase
from dormfix.infra.database.models.triage_conversation import TriageConversation

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "TriageConversation",
    "MaintenanceCase",
    "Contractor",
    "ContractorAvailability",
    "ContractorBooking",
    "ContractorBlackout",
]
