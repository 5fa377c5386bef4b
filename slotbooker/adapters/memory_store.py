"""
In-memory appointment store.
"""

import asyncio
from typing import Dict, List, Optional

from ..domain.exceptions import RecordNotFoundError, UniqueConflictError
from ..domain.models import Appointment, TimeInterval


class InMemoryAppointmentStore:
    """
    Dict-backed store for tests and single-process use.

    Writes for one practitioner are serialised by a per-practitioner
    ``asyncio.Lock`` handed out through ``practitioner_lock``. Independently
    of the lock, ``insert`` and ``replace`` enforce uniqueness of
    (practitioner_id, start).
    """

    def __init__(self, appointments: Optional[List[Appointment]] = None):
        self._appointments: Dict[str, Appointment] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

        for appointment in appointments or []:
            self._appointments[appointment.id] = appointment

    async def find_by_practitioner_and_range(
        self,
        practitioner_id: str,
        time_range: TimeInterval,
    ) -> List[Appointment]:
        return sorted(
            (
                appointment
                for appointment in self._appointments.values()
                if appointment.practitioner_id == practitioner_id
                and appointment.interval.overlaps(time_range)
            ),
            key=lambda a: a.start,
        )

    async def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        return self._appointments.get(appointment_id)

    async def insert(self, appointment: Appointment) -> Appointment:
        self._ensure_unique_start(appointment)
        self._commit({**self._appointments, appointment.id: appointment})
        return appointment

    async def replace(self, appointment_id: str, appointment: Appointment) -> Appointment:
        if appointment_id not in self._appointments:
            raise RecordNotFoundError(f"Appointment not found: {appointment_id}")

        self._ensure_unique_start(appointment, ignore_id=appointment_id)
        self._commit({**self._appointments, appointment_id: appointment})
        return appointment

    async def delete(self, appointment_id: str) -> None:
        if appointment_id not in self._appointments:
            raise RecordNotFoundError(f"Appointment not found: {appointment_id}")

        remaining = dict(self._appointments)
        del remaining[appointment_id]
        self._commit(remaining)

    async def list_appointments(self, practitioner_id: Optional[str] = None) -> List[Appointment]:
        return sorted(
            (
                appointment
                for appointment in self._appointments.values()
                if practitioner_id is None or appointment.practitioner_id == practitioner_id
            ),
            key=lambda a: a.start,
        )

    def practitioner_lock(self, practitioner_id: str) -> asyncio.Lock:
        lock = self._locks.get(practitioner_id)
        if lock is None:
            lock = self._locks[practitioner_id] = asyncio.Lock()
        return lock

    def _ensure_unique_start(self, appointment: Appointment, ignore_id: Optional[str] = None) -> None:
        for existing in self._appointments.values():
            if existing.id == ignore_id:
                continue
            if (
                existing.practitioner_id == appointment.practitioner_id
                and existing.start == appointment.start
            ):
                raise UniqueConflictError(existing.id)

    def _commit(self, appointments: Dict[str, Appointment]) -> None:
        self._persist(appointments)
        self._appointments = appointments

    def _persist(self, appointments: Dict[str, Appointment]) -> None:
        """Hook for subclasses that write through; the new state is kept only if this succeeds."""
