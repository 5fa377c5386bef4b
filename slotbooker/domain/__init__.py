"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityFilter
from .models import (
    SLOT_GRANULARITY_MINUTES,
    Appointment,
    Practitioner,
    TimeInterval,
    WorkingHours,
)
from .slot_generator import SlotGenerator, SlotSequence

__all__ = [
    "SLOT_GRANULARITY_MINUTES",
    "Appointment",
    "AvailabilityFilter",
    "Practitioner",
    "SlotGenerator",
    "SlotSequence",
    "TimeInterval",
    "WorkingHours",
]
