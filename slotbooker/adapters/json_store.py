"""
Appointment store persisted to a JSON file.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from filelock import FileLock, Timeout

from ..domain.exceptions import StoreUnavailableError
from ..domain.models import Appointment, TimeInterval
from .memory_store import InMemoryAppointmentStore

logger = logging.getLogger(__name__)


class JsonFileLock:
    """
    Write lock for one data file, shared by processes and coroutines.

    An ``asyncio.Lock`` orders the coroutines of this process, a
    ``filelock.FileLock`` on ``<data_file>.lock`` orders processes. Once
    both are held the store reloads the file, so validation sees commits
    made by other processes.
    """

    def __init__(self, store: "JsonAppointmentStore", lock_file: Path, poll_interval: float = 0.05):
        self._store = store
        self._local = asyncio.Lock()
        self._file_lock = FileLock(str(lock_file))
        self._poll_interval = poll_interval

    def locked(self) -> bool:
        return self._local.locked()

    async def acquire(self) -> bool:
        await self._local.acquire()
        try:
            await self._acquire_file_lock()
            try:
                self._store.refresh()
            except BaseException:
                self._file_lock.release()
                raise
        except BaseException:
            self._local.release()
            raise
        return True

    def release(self) -> None:
        self._file_lock.release()
        self._local.release()

    async def _acquire_file_lock(self) -> None:
        # Non-blocking attempts keep the wait cancellable by the caller's timeout.
        while True:
            try:
                self._file_lock.acquire(timeout=0)
                return
            except Timeout:
                await asyncio.sleep(self._poll_interval)
            except OSError as exc:
                raise StoreUnavailableError(f"Could not lock {self._file_lock.lock_file}: {exc}") from exc


class JsonAppointmentStore(InMemoryAppointmentStore):
    """
    In-memory store that loads from and saves to a JSON file.

    The whole file is rewritten on every mutation; if the write fails the
    mutation is rejected with ``StoreUnavailableError``. Several processes
    may share the file: writes are serialised by one ``JsonFileLock`` for
    all practitioners, and reads outside the lock re-read the file.

    File format:
    [
        {
            "id": "9f1c...",
            "practitionerId": "dr-weber",
            "start": "2024-11-25T10:00:00+01:00",
            "duration": 30,
            "appointmentType": "checkup",
            "patientName": "Anna Schmidt",
            "notes": null
        }
    ]
    """

    def __init__(self, data_file: Path, timezone: str = "Europe/Berlin"):
        self.data_file = data_file
        self.timezone = timezone
        super().__init__(self._load())
        self._write_lock = JsonFileLock(
            self, data_file.with_suffix(data_file.suffix + ".lock")
        )

    async def find_by_practitioner_and_range(
        self,
        practitioner_id: str,
        time_range: TimeInterval,
    ) -> List[Appointment]:
        self._refresh_unless_locked()
        return await super().find_by_practitioner_and_range(practitioner_id, time_range)

    async def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        self._refresh_unless_locked()
        return await super().find_by_id(appointment_id)

    async def list_appointments(self, practitioner_id: Optional[str] = None) -> List[Appointment]:
        self._refresh_unless_locked()
        return await super().list_appointments(practitioner_id)

    def practitioner_lock(self, practitioner_id: str) -> JsonFileLock:
        return self._write_lock

    def refresh(self) -> None:
        """Replace the in-memory state with the file's current content."""
        try:
            appointments = self._load()
        except ValueError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        self._appointments = {a.id: a for a in appointments}

    def _refresh_unless_locked(self) -> None:
        # While this process holds the write lock its state is already current.
        if not self._write_lock.locked():
            self.refresh()

    def _load(self) -> List[Appointment]:
        """Load appointments from the JSON file; a missing file means none."""
        if not self.data_file.exists():
            return []

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                records = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {self.data_file}: {exc}") from exc
        except OSError as exc:
            raise StoreUnavailableError(f"Could not read {self.data_file}: {exc}") from exc

        if not isinstance(records, list):
            raise ValueError(f"{self.data_file} must contain a list at the root level.")

        appointments: List[Appointment] = []
        for record in records:
            try:
                appointments.append(self._from_record(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping invalid appointment record %r: %s", record, e)

        logger.debug("Loaded %d appointments from %s", len(appointments), self.data_file)
        return appointments

    def _persist(self, appointments: Dict[str, Appointment]) -> None:
        records = [self._to_record(a) for a in appointments.values()]
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = self.data_file.with_suffix(self.data_file.suffix + ".tmp")
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            tmp_file.replace(self.data_file)
        except OSError as exc:
            raise StoreUnavailableError(f"Could not write {self.data_file}: {exc}") from exc

    def _from_record(self, record: Dict[str, Any]) -> Appointment:
        return Appointment(
            id=record["id"],
            practitioner_id=record["practitionerId"],
            start=pendulum.parse(record["start"]).in_timezone(self.timezone),
            duration_minutes=int(record["duration"]),
            appointment_type=record.get("appointmentType", ""),
            patient_name=record.get("patientName", ""),
            notes=record.get("notes"),
        )

    @staticmethod
    def _to_record(appointment: Appointment) -> Dict[str, Any]:
        return {
            "id": appointment.id,
            "practitionerId": appointment.practitioner_id,
            "start": appointment.start.to_iso8601_string(),
            "duration": appointment.duration_minutes,
            "appointmentType": appointment.appointment_type,
            "patientName": appointment.patient_name,
            "notes": appointment.notes,
        }
