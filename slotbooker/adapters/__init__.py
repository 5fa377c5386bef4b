"""
Adapters layer - Roster and appointment storage implementations.
"""

from .json_store import JsonAppointmentStore
from .memory_store import InMemoryAppointmentStore
from .roster import ConfigPractitionerSource

__all__ = ["ConfigPractitionerSource", "InMemoryAppointmentStore", "JsonAppointmentStore"]
