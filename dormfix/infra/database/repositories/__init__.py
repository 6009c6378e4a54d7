"""Repositories for the dormfix database."""
from dormfix.infra.database.repositories.base import BaseRepository
from dormfix.infra.database.repositories.contractor import ContractorRepository
from dormfix.infra.database.repositories.maintenance_case import MaintenanceCaseRepository
from dormfix.infra.database.repositories.triage_conversation import TriageConversationRepository

__all__ = [
    "BaseRepository",
    "TriageConversationRepository",
    "MaintenanceCaseRepository",
    "ContractorRepository",
]
