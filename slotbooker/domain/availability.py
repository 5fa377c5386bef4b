"""
Removes booked time from a sequence of candidate slots.
"""

from typing import Iterable, Iterator, List

from pendulum import DateTime

from .models import SLOT_GRANULARITY_MINUTES, TimeInterval


class AvailabilityFilter:
    """
    Filters candidate slot starts against committed appointment intervals.

    Each candidate ``s`` stands for the provisional interval ``[s, s + g)``
    and is dropped if that interval overlaps any booked interval. The whole
    booked interval is compared, so a 45 minute booking at 10:00 removes
    both 10:00 and 10:30:

    Candidates: 09:30, 10:00, 10:30, 11:00
    Booked:     [10:00 - 10:45)
    Result:     09:30, 11:00
    """

    def __init__(self, granularity_minutes: int = SLOT_GRANULARITY_MINUTES):
        self.granularity_minutes = granularity_minutes

    def filter(
        self,
        slot_starts: Iterable[DateTime],
        booked: Iterable[TimeInterval],
    ) -> Iterator[DateTime]:
        """Yield the free slot starts in input order."""
        booked_intervals: List[TimeInterval] = list(booked)

        for slot_start in slot_starts:
            candidate = TimeInterval.from_duration(slot_start, self.granularity_minutes)
            if not any(candidate.overlaps(interval) for interval in booked_intervals):
                yield slot_start

    def free_slots(
        self,
        slot_starts: Iterable[DateTime],
        booked: Iterable[TimeInterval],
    ) -> List[DateTime]:
        """Eager variant of :meth:`filter`."""
        return list(self.filter(slot_starts, booked))
