"""
Tests for the JSON file appointment store.
"""

import asyncio
import json

import pendulum
import pytest

from slotbooker.adapters.json_store import JsonAppointmentStore
from slotbooker.adapters.roster import ConfigPractitionerSource
from slotbooker.config import AppConfig
from slotbooker.domain.exceptions import (
    ConflictError,
    RecordNotFoundError,
    StoreUnavailableError,
    UniqueConflictError,
)
from slotbooker.domain.models import Appointment, TimeInterval
from slotbooker.services.scheduling import SchedulingService

TZ = "Europe/Berlin"


def _appointment(appointment_id="a1", start="10:00", practitioner_id="dr-weber"):
    return Appointment(
        id=appointment_id,
        practitioner_id=practitioner_id,
        start=pendulum.parse(f"2024-11-25 {start}", tz=TZ),
        duration_minutes=30,
        appointment_type="checkup",
        patient_name="Anna Schmidt",
        notes="Ultraschall mitbringen",
    )


def test_missing_file_means_empty_store(tmp_path):
    store = JsonAppointmentStore(tmp_path / "appointments.json", timezone=TZ)

    assert asyncio.run(store.list_appointments()) == []


def test_appointments_survive_reload(tmp_path):
    data_file = tmp_path / "appointments.json"
    asyncio.run(JsonAppointmentStore(data_file, timezone=TZ).insert(_appointment()))

    reloaded = JsonAppointmentStore(data_file, timezone=TZ)
    stored = asyncio.run(reloaded.find_by_id("a1"))

    assert stored == _appointment()
    assert stored.start.timezone_name == TZ


def test_file_format(tmp_path):
    data_file = tmp_path / "appointments.json"
    asyncio.run(JsonAppointmentStore(data_file, timezone=TZ).insert(_appointment()))

    records = json.loads(data_file.read_text(encoding="utf-8"))

    assert records == [
        {
            "id": "a1",
            "practitionerId": "dr-weber",
            "start": "2024-11-25T10:00:00+01:00",
            "duration": 30,
            "appointmentType": "checkup",
            "patientName": "Anna Schmidt",
            "notes": "Ultraschall mitbringen",
        }
    ]


def test_delete_is_persisted(tmp_path):
    data_file = tmp_path / "appointments.json"
    store = JsonAppointmentStore(data_file, timezone=TZ)

    async def scenario():
        await store.insert(_appointment("a1", "10:00"))
        await store.insert(_appointment("a2", "11:00"))
        await store.delete("a1")

    asyncio.run(scenario())

    reloaded = JsonAppointmentStore(data_file, timezone=TZ)
    assert [a.id for a in asyncio.run(reloaded.list_appointments())] == ["a2"]


def test_unique_start_per_practitioner(tmp_path):
    store = JsonAppointmentStore(tmp_path / "appointments.json", timezone=TZ)

    async def scenario():
        await store.insert(_appointment("a1", "10:00"))
        await store.insert(_appointment("other", "10:00", practitioner_id="hebamme-koch"))
        await store.insert(_appointment("a2", "10:00"))

    with pytest.raises(UniqueConflictError) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.existing_id == "a1"


def test_replace_and_delete_unknown_ids(tmp_path):
    store = JsonAppointmentStore(tmp_path / "appointments.json", timezone=TZ)

    with pytest.raises(RecordNotFoundError):
        asyncio.run(store.replace("missing", _appointment("missing")))
    with pytest.raises(RecordNotFoundError):
        asyncio.run(store.delete("missing"))


def test_find_by_range_uses_overlap(tmp_path):
    store = JsonAppointmentStore(tmp_path / "appointments.json", timezone=TZ)
    asyncio.run(store.insert(_appointment("a1", "09:45")))

    def found(start, end):
        time_range = TimeInterval(
            start=pendulum.parse(f"2024-11-25 {start}", tz=TZ),
            end=pendulum.parse(f"2024-11-25 {end}", tz=TZ),
        )
        return [a.id for a in asyncio.run(store.find_by_practitioner_and_range("dr-weber", time_range))]

    assert found("10:00", "10:30") == ["a1"]
    assert found("10:15", "10:45") == []
    assert found("09:00", "09:45") == []


def test_failed_write_rejects_mutation(tmp_path):
    data_file = tmp_path / "appointments.json"
    store = JsonAppointmentStore(data_file, timezone=TZ)
    data_file.mkdir()

    with pytest.raises(StoreUnavailableError):
        asyncio.run(store.insert(_appointment()))

    data_file.rmdir()
    assert asyncio.run(store.find_by_id("a1")) is None
    assert not data_file.exists()


def test_invalid_records_are_skipped(tmp_path):
    data_file = tmp_path / "appointments.json"
    data_file.write_text(
        json.dumps(
            [
                {"id": "broken", "practitionerId": "dr-weber"},
                {
                    "id": "a1",
                    "practitionerId": "dr-weber",
                    "start": "2024-11-25T10:00:00+01:00",
                    "duration": 30,
                },
            ]
        ),
        encoding="utf-8",
    )

    store = JsonAppointmentStore(data_file, timezone=TZ)

    assert [a.id for a in asyncio.run(store.list_appointments())] == ["a1"]


def test_invalid_json(tmp_path):
    data_file = tmp_path / "appointments.json"
    data_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid JSON"):
        JsonAppointmentStore(data_file, timezone=TZ)


@pytest.mark.parametrize("content", ["{}", '{"id": "a1"}', '"a1"'])
def test_root_must_be_a_list(tmp_path, content):
    data_file = tmp_path / "appointments.json"
    data_file.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError, match="list at the root"):
        JsonAppointmentStore(data_file, timezone=TZ)


def _service(data_file):
    """A service with its own store instance, as a separate CLI process would build it."""
    roster = ConfigPractitionerSource(AppConfig(practitioners=[{"id": "dr-weber", "name": "Dr. Julia Weber"}]))
    return SchedulingService(
        roster, JsonAppointmentStore(data_file, timezone=TZ), timezone=TZ, default_timeout=2.0
    )


def _slot(start="10:00"):
    return TimeInterval.from_duration(pendulum.parse(f"2024-11-25 {start}", tz=TZ), 30)


def _stored_ids(data_file):
    return [record["id"] for record in json.loads(data_file.read_text(encoding="utf-8"))]


class TestSharedDataFile:
    """Several store instances writing the same file."""

    def test_second_store_sees_first_stores_booking(self, tmp_path):
        data_file = tmp_path / "appointments.json"
        first, second = _service(data_file), _service(data_file)

        created = asyncio.run(first.create_appointment("dr-weber", _slot(), "checkup", "Anna Schmidt"))
        with pytest.raises(ConflictError) as exc_info:
            asyncio.run(second.create_appointment("dr-weber", _slot(), "checkup", "Lena Braun"))

        assert exc_info.value.conflicting_ids == [created.id]
        assert _stored_ids(data_file) == [created.id]

    def test_concurrent_bookings_keep_exactly_one(self, tmp_path):
        data_file = tmp_path / "appointments.json"
        services = [_service(data_file) for _ in range(3)]

        async def scenario():
            return await asyncio.gather(
                *(
                    service.create_appointment("dr-weber", _slot(), "checkup", f"Patient {i}")
                    for i, service in enumerate(services)
                ),
                return_exceptions=True,
            )

        results = asyncio.run(scenario())
        booked = [r for r in results if isinstance(r, Appointment)]
        conflicts = [r for r in results if isinstance(r, ConflictError)]

        assert len(booked) == 1
        assert len(conflicts) == 2
        assert _stored_ids(data_file) == [booked[0].id]

    def test_writes_from_both_stores_are_kept(self, tmp_path):
        data_file = tmp_path / "appointments.json"
        first, second = _service(data_file), _service(data_file)

        morning = asyncio.run(first.create_appointment("dr-weber", _slot("09:00"), "checkup", "Anna Schmidt"))
        noon = asyncio.run(second.create_appointment("dr-weber", _slot("12:00"), "checkup", "Lena Braun"))
        asyncio.run(first.delete_appointment(noon.id))

        assert _stored_ids(data_file) == [morning.id]
        assert [a.id for a in asyncio.run(second.list_appointments())] == [morning.id]
