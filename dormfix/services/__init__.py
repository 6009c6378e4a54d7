"""Service layer: triage conversations, case materialization, scheduling and notifications."""
from dormfix.services.case_service import CaseService
from dormfix.services.notification_service import NotificationService
from dormfix.services.scheduling_service import SchedulingService
from dormfix.services.triage_service import ConversationLocks, TriageService

__all__ = [
    "CaseService",
    "ConversationLocks",
    "NotificationService",
    "SchedulingService",
    "TriageService",
]
