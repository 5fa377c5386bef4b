"""
Candidate slot generation from a practitioner's working hours.

Pure domain logic: no store access, no I/O.
"""

from datetime import date as date_type
from typing import Iterator

from pendulum import DateTime

from .models import SLOT_GRANULARITY_MINUTES, TimeInterval, WorkingHours


class SlotSequence:
    """
    Lazy, finite sequence of slot-start times inside a window.

    Iterating twice yields the same slots; nothing is computed until
    iteration starts.
    """

    def __init__(self, window: TimeInterval, granularity_minutes: int):
        self.window = window
        self.granularity_minutes = granularity_minutes

    def __iter__(self) -> Iterator[DateTime]:
        current = self.window.start

        # A slot must fit entirely before closing time; a trailing remainder
        # shorter than the granularity is dropped.
        while current.add(minutes=self.granularity_minutes) <= self.window.end:
            yield current
            current = current.add(minutes=self.granularity_minutes)

    def __repr__(self) -> str:
        return f"SlotSequence({self.window}, every {self.granularity_minutes} min)"


class SlotGenerator:
    """
    Produces the candidate slot starts for a practitioner on a date.

    Example (09:00 - 10:45, 30 minute slots):
        09:00, 09:30, 10:00   (10:30 would end after 10:45 and is dropped)
    """

    def __init__(self, granularity_minutes: int = SLOT_GRANULARITY_MINUTES):
        if granularity_minutes <= 0:
            raise ValueError("granularity_minutes must be greater than zero")
        self.granularity_minutes = granularity_minutes

    def generate(
        self,
        working_hours: WorkingHours,
        day: date_type,
        timezone: str,
    ) -> SlotSequence:
        """
        Build the slot sequence for ``day``.

        Raises:
            InvalidWindowError: If working hours start at or after they end
        """
        window = working_hours.window_for(day, timezone)
        return SlotSequence(window, self.granularity_minutes)

