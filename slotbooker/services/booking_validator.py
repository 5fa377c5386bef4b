"""
Validation of proposed appointments against working hours and bookings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pendulum import DateTime

from ..domain.exceptions import ConflictError, InvalidDurationError, OutOfHoursError
from ..domain.models import SLOT_GRANULARITY_MINUTES, Practitioner, TimeInterval
from .ports import AppointmentStoreProtocol, await_store

logger = logging.getLogger(__name__)


def _check_duration_minutes(duration: int, granularity_minutes: int) -> None:
    if duration <= 0 or duration % granularity_minutes != 0:
        raise InvalidDurationError(
            f"Duration must be a positive multiple of {granularity_minutes} "
            f"minutes, got {duration}"
        )


def proposed_interval(
    start: DateTime,
    duration_minutes: int,
    granularity_minutes: int = SLOT_GRANULARITY_MINUTES,
) -> TimeInterval:
    """
    Build ``[start, start + duration)`` for a booking request.

    Raises:
        InvalidDurationError: If the duration is not a positive multiple of the grid
    """
    _check_duration_minutes(duration_minutes, granularity_minutes)
    return TimeInterval.from_duration(start, duration_minutes)


@dataclass(frozen=True)
class ConflictCheck:
    """Outcome of a conflict query: an empty id list means no conflict."""
    conflicting_ids: List[str] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicting_ids)


class BookingValidator:
    """
    Decides whether a proposed interval may be committed.

    Shared by the create and update flows; for updates the appointment
    being replaced is passed as ``exclude_appointment_id`` so it never
    conflicts with itself. The validator only reads; committing is the
    caller's job.
    """

    def __init__(
        self,
        store: AppointmentStoreProtocol,
        timezone: str,
        granularity_minutes: int = SLOT_GRANULARITY_MINUTES,
    ) -> None:
        self._store = store
        self._timezone = timezone
        self._granularity_minutes = granularity_minutes

    async def check_conflict(
        self,
        practitioner_id: str,
        interval: TimeInterval,
        *,
        timeout: float,
        exclude_appointment_id: Optional[str] = None,
    ) -> ConflictCheck:
        """Find committed appointments of the practitioner overlapping ``interval``."""
        candidates = await await_store(
            self._store.find_by_practitioner_and_range(practitioner_id, interval),
            timeout,
            operation="find_by_practitioner_and_range",
        )

        conflicting_ids = [
            appointment.id
            for appointment in sorted(candidates, key=lambda a: a.start)
            if appointment.id != exclude_appointment_id
            and appointment.interval.overlaps(interval)
        ]
        return ConflictCheck(conflicting_ids=conflicting_ids)

    def check_duration(self, interval: TimeInterval) -> None:
        """Raise ``InvalidDurationError`` unless duration is a positive multiple of the grid."""
        seconds = (interval.end - interval.start).total_seconds()
        if seconds % 60 != 0:
            raise InvalidDurationError(
                f"Duration must be a whole number of minutes, got {seconds:g} seconds"
            )
        _check_duration_minutes(interval.duration_minutes(), self._granularity_minutes)

    def check_working_hours(
        self,
        practitioner: Practitioner,
        interval: TimeInterval,
    ) -> None:
        """Raise ``OutOfHoursError`` unless ``interval`` lies in the day's window."""
        window = practitioner.working_hours.window_for(
            interval.start.in_timezone(self._timezone).date(),
            self._timezone,
        )
        if not window.contains(interval):
            raise OutOfHoursError(
                f"{interval} is outside the working hours of {practitioner.name} "
                f"({practitioner.working_hours})"
            )

    async def validate(
        self,
        practitioner: Practitioner,
        interval: TimeInterval,
        *,
        timeout: float,
        exclude_appointment_id: Optional[str] = None,
    ) -> None:
        """
        Run every check for a proposed booking.

        Raises:
            InvalidDurationError: Duration is not on the slot grid
            OutOfHoursError: Interval is not inside the working hours
            ConflictError: Interval overlaps committed appointments
            UnavailableError: The store did not answer in time
        """
        self.check_duration(interval)
        self.check_working_hours(practitioner, interval)

        result = await self.check_conflict(
            practitioner.id,
            interval,
            timeout=timeout,
            exclude_appointment_id=exclude_appointment_id,
        )
        if result.has_conflict:
            logger.info(
                "Rejected %s for practitioner %s: conflicts with %s",
                interval, practitioner.id, result.conflicting_ids,
            )
            raise ConflictError(result.conflicting_ids)
