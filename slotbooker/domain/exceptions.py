"""
Domain-specific exception hierarchy for the booking engine.

Every ``SchedulingError`` carries a stable ``kind`` string so callers can
branch on the outcome without matching on message text.
"""

from typing import Iterable, List


class SchedulingError(Exception):
    """Base class for all application-level errors."""

    kind = "scheduling_error"


class PractitionerNotFoundError(SchedulingError):
    """Raised when the roster has no practitioner with the requested id."""

    kind = "practitioner_not_found"

    def __init__(self, practitioner_id: str):
        super().__init__(f"Practitioner not found: {practitioner_id}")
        self.practitioner_id = practitioner_id


class AppointmentNotFoundError(SchedulingError):
    """Raised when no committed appointment has the requested id."""

    kind = "appointment_not_found"

    def __init__(self, appointment_id: str):
        super().__init__(f"Appointment not found: {appointment_id}")
        self.appointment_id = appointment_id


class InvalidWindowError(SchedulingError):
    """Raised when working hours do not open before they close."""

    kind = "invalid_window"


class OutOfHoursError(SchedulingError):
    """Raised when a proposed interval falls outside the working-hours window."""

    kind = "out_of_hours"


class InvalidDurationError(SchedulingError):
    """Raised when a duration is not a positive multiple of the slot granularity."""

    kind = "invalid_duration"


class ConflictError(SchedulingError):
    """Raised when a proposed interval overlaps committed appointments."""

    kind = "conflict"

    def __init__(self, conflicting_ids: Iterable[str]):
        self.conflicting_ids: List[str] = list(conflicting_ids)
        joined = ", ".join(self.conflicting_ids) or "unknown"
        super().__init__(f"Time slot is already booked (conflicts with: {joined})")


class UnavailableError(SchedulingError):
    """Raised when the store times out or fails transiently. Safe to retry."""

    kind = "unavailable"


class StoreError(Exception):
    """Base class for errors raised by appointment store adapters."""


class StoreUnavailableError(StoreError):
    """Transient store failure (connection lost, lock service down, ...)."""


class RecordNotFoundError(StoreError):
    """Raised by ``replace``/``delete`` when the id is unknown to the store."""


class UniqueConflictError(StoreError):
    """Raised by ``insert`` when (practitioner_id, start) is already taken."""

    def __init__(self, existing_id: str):
        super().__init__(f"Start time already taken by appointment {existing_id}")
        self.existing_id = existing_id
