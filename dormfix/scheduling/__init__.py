"""Scheduling optimizer: contractor slot generation, scoring and ranking."""
from dormfix.scheduling.optimizer import ContractorCalendar, parse_duration_hours
from dormfix.scheduling.types import (
    AppointmentRecommendation,
    AvailabilitySlot,
    RecommendationPriority,
    SchedulingRequest,
    SchedulingResult,
    SchedulingUrgency,
    TimeWindow,
    Workload,
)

__all__ = [
    "ContractorCalendar",
    "parse_duration_hours",
    "AppointmentRecommendation",
    "AvailabilitySlot",
    "RecommendationPriority",
    "SchedulingRequest",
    "SchedulingResult",
    "SchedulingUrgency",
    "TimeWindow",
    "Workload",
]
