"""
Domain models for intervals, working hours and appointments.
"""

from dataclasses import dataclass, replace
from datetime import date as date_type
from datetime import time
from typing import Optional

import pendulum
from pendulum import DateTime

from .exceptions import InvalidWindowError

SLOT_GRANULARITY_MINUTES = 30


@dataclass(frozen=True)
class TimeInterval:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def from_duration(cls, start: DateTime, minutes: int) -> "TimeInterval":
        """Build the interval ``[start, start + minutes)``."""
        return cls(start=start, end=start.add(minutes=minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeInterval") -> bool:
        """
        Check if this interval overlaps with another.

        Intervals that only touch (one ends exactly when the other begins)
        do not overlap.
        """
        return self.start < other.end and other.start < self.end

    def contains(self, inner: "TimeInterval") -> bool:
        """Check if ``inner`` lies entirely within this interval."""
        return inner.start >= self.start and inner.end <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class WorkingHours:
    """
    Daily window during which a practitioner accepts appointments.
    """
    start_time: time
    end_time: time

    def window_for(self, day: date_type, timezone: str) -> TimeInterval:
        """
        Get the working hours range for a specific calendar date.

        Raises:
            InvalidWindowError: If the window does not open before it closes
        """
        if self.start_time >= self.end_time:
            raise InvalidWindowError(
                f"Working hours must start before they end "
                f"({self.start_time:%H:%M} >= {self.end_time:%H:%M})"
            )

        start = pendulum.datetime(
            day.year, day.month, day.day,
            self.start_time.hour, self.start_time.minute,
            tz=timezone,
        )
        end = pendulum.datetime(
            day.year, day.month, day.day,
            self.end_time.hour, self.end_time.minute,
            tz=timezone,
        )

        return TimeInterval(start=start, end=end)

    def __str__(self) -> str:
        return f"{self.start_time:%H:%M} - {self.end_time:%H:%M}"


@dataclass(frozen=True)
class Practitioner:
    """A bookable practitioner as supplied by the roster."""
    id: str
    name: str
    working_hours: WorkingHours
    specialization: Optional[str] = None


@dataclass(frozen=True)
class Appointment:
    """
    A committed booking for one practitioner.

    ``interval`` is derived from ``start`` and ``duration_minutes``.
    """
    id: str
    practitioner_id: str
    start: DateTime
    duration_minutes: int
    appointment_type: str
    patient_name: str
    notes: Optional[str] = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval.from_duration(self.start, self.duration_minutes)

    def rescheduled(
        self,
        interval: TimeInterval,
        appointment_type: str,
        patient_name: str,
        notes: Optional[str] = None,
    ) -> "Appointment":
        """Return a copy with the same identity and replaced booking fields."""
        return replace(
            self,
            start=interval.start,
            duration_minutes=interval.duration_minutes(),
            appointment_type=appointment_type,
            patient_name=patient_name,
            notes=notes,
        )
