"""
Tests for domain models.
"""

import pendulum
import pytest
from datetime import time

from slotbooker.domain.exceptions import InvalidWindowError
from slotbooker.domain.models import Appointment, TimeInterval, WorkingHours

TZ = "Europe/Berlin"


def _at(value: str):
    return pendulum.parse(f"2024-11-25 {value}", tz=TZ)


class TestTimeInterval:
    """Tests for TimeInterval model."""

    def test_create_valid_interval(self):
        """Test creating a valid interval."""
        interval = TimeInterval(start=_at("09:00"), end=_at("17:00"))

        assert interval.start == _at("09:00")
        assert interval.end == _at("17:00")
        assert interval.duration_minutes() == 480  # 8 hours

    def test_invalid_interval_raises_error(self):
        """Test that an interval ending before it starts raises ValueError."""
        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeInterval(start=_at("17:00"), end=_at("09:00"))

    def test_empty_interval_raises_error(self):
        with pytest.raises(ValueError):
            TimeInterval(start=_at("09:00"), end=_at("09:00"))

    def test_from_duration(self):
        interval = TimeInterval.from_duration(_at("10:00"), 45)

        assert interval.end == _at("10:45")
        assert interval.duration_minutes() == 45

    def test_overlaps(self):
        """Test overlap detection."""
        morning = TimeInterval(start=_at("09:00"), end=_at("12:00"))
        midday = TimeInterval(start=_at("11:00"), end=_at("14:00"))
        afternoon = TimeInterval(start=_at("14:00"), end=_at("17:00"))

        assert morning.overlaps(midday)
        assert midday.overlaps(morning)
        assert not morning.overlaps(afternoon)

    def test_touching_intervals_do_not_overlap(self):
        """Half-open semantics: ending at 10:30 does not collide with starting at 10:30."""
        first = TimeInterval(start=_at("10:00"), end=_at("10:30"))
        second = TimeInterval(start=_at("10:30"), end=_at("11:00"))

        assert not first.overlaps(second)
        assert not second.overlaps(first)

    def test_nested_intervals_overlap(self):
        outer = TimeInterval(start=_at("09:00"), end=_at("12:00"))
        inner = TimeInterval(start=_at("10:00"), end=_at("10:30"))

        assert outer.overlaps(inner)
        assert inner.overlaps(outer)

    def test_contains(self):
        outer = TimeInterval(start=_at("09:00"), end=_at("12:00"))

        assert outer.contains(TimeInterval(start=_at("09:00"), end=_at("09:30")))
        assert outer.contains(TimeInterval(start=_at("11:30"), end=_at("12:00")))
        assert outer.contains(outer)
        assert not outer.contains(TimeInterval(start=_at("08:30"), end=_at("09:30")))
        assert not outer.contains(TimeInterval(start=_at("11:30"), end=_at("12:30")))

    def test_str(self):
        interval = TimeInterval(start=_at("09:00"), end=_at("09:30"))

        assert str(interval) == "25.11.2024 09:00 - 09:30"


class TestWorkingHours:
    """Tests for WorkingHours model."""

    def test_window_for_day(self):
        """Test getting the working window for a specific day."""
        working_hours = WorkingHours(start_time=time(9, 30), end_time=time(17, 0))

        window = working_hours.window_for(pendulum.date(2024, 11, 25), TZ)

        assert window.start == _at("09:30")
        assert window.end == _at("17:00")
        assert window.start.timezone_name == TZ

    def test_window_start_after_end_is_invalid(self):
        working_hours = WorkingHours(start_time=time(17, 0), end_time=time(9, 0))

        with pytest.raises(InvalidWindowError):
            working_hours.window_for(pendulum.date(2024, 11, 25), TZ)

    def test_window_start_equal_end_is_invalid(self):
        working_hours = WorkingHours(start_time=time(9, 0), end_time=time(9, 0))

        with pytest.raises(InvalidWindowError):
            working_hours.window_for(pendulum.date(2024, 11, 25), TZ)

    def test_str(self):
        assert str(WorkingHours(start_time=time(8, 0), end_time=time(12, 30))) == "08:00 - 12:30"


class TestAppointment:
    """Tests for Appointment model."""

    def test_interval_is_derived_from_start_and_duration(self):
        appointment = Appointment(
            id="a1",
            practitioner_id="dr-weber",
            start=_at("10:00"),
            duration_minutes=60,
            appointment_type="checkup",
            patient_name="Anna Schmidt",
        )

        assert appointment.interval == TimeInterval(start=_at("10:00"), end=_at("11:00"))

    def test_rescheduled_keeps_identity(self):
        appointment = Appointment(
            id="a1",
            practitioner_id="dr-weber",
            start=_at("10:00"),
            duration_minutes=30,
            appointment_type="checkup",
            patient_name="Anna Schmidt",
            notes="first visit",
        )

        moved = appointment.rescheduled(
            TimeInterval(start=_at("14:00"), end=_at("15:00")),
            appointment_type="ultrasound",
            patient_name="Anna Schmidt",
        )

        assert moved.id == "a1"
        assert moved.practitioner_id == "dr-weber"
        assert moved.start == _at("14:00")
        assert moved.duration_minutes == 60
        assert moved.appointment_type == "ultrasound"
        assert moved.notes is None
        assert appointment.start == _at("10:00")
