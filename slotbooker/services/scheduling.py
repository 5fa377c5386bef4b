"""
Application service for listing slots and committing appointments.

The service coordinates the practitioner roster and the appointment store
and delegates slot math to the domain layer (``SlotGenerator`` and
``AvailabilityFilter``) and booking rules to ``BookingValidator``.

Writes for one practitioner are serialised through the store's
practitioner lock, so "validate, then insert" is a single atomic step:
of several concurrent bookings for overlapping time exactly one commits.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date as date_type
from typing import AsyncIterator, List, Optional

from pendulum import DateTime

from ..domain.availability import AvailabilityFilter
from ..domain.exceptions import (
    AppointmentNotFoundError,
    ConflictError,
    PractitionerNotFoundError,
    RecordNotFoundError,
    UniqueConflictError,
)
from ..domain.models import SLOT_GRANULARITY_MINUTES, Appointment, Practitioner, TimeInterval
from ..domain.slot_generator import SlotGenerator
from .booking_validator import BookingValidator
from .ports import AppointmentStoreProtocol, PractitionerSourceProtocol, await_store

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class SchedulingService:
    """
    Orchestrates slot listing and the appointment lifecycle.

    ``Proposed -> Committed`` on create, ``Committed -> Committed`` on
    update (same id), ``Committed -> Deleted`` on delete.
    """

    def __init__(
        self,
        practitioners: PractitionerSourceProtocol,
        store: AppointmentStoreProtocol,
        *,
        timezone: str,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        granularity_minutes: int = SLOT_GRANULARITY_MINUTES,
    ) -> None:
        self._practitioners = practitioners
        self._store = store
        self._timezone = timezone
        self._default_timeout = default_timeout
        self._slot_generator = SlotGenerator(granularity_minutes)
        self._availability_filter = AvailabilityFilter(granularity_minutes)
        self._validator = BookingValidator(store, timezone, granularity_minutes)

    @property
    def timezone(self) -> str:
        return self._timezone

    async def list_available_slots(
        self,
        practitioner_id: str,
        day: date_type,
        *,
        timeout: Optional[float] = None,
    ) -> List[DateTime]:
        """
        Return the free slot starts for a practitioner on ``day``.

        The read takes no lock; a slot reported free may be taken by a
        concurrent booking, which is then rejected at commit time.
        """
        timeout = self._resolve_timeout(timeout)
        practitioner = await self._get_practitioner(practitioner_id, timeout)

        candidates = self._slot_generator.generate(
            practitioner.working_hours, day, self._timezone
        )
        booked = await await_store(
            self._store.find_by_practitioner_and_range(practitioner.id, candidates.window),
            timeout,
            operation="find_by_practitioner_and_range",
        )

        return self._availability_filter.free_slots(
            candidates, [appointment.interval for appointment in booked]
        )

    async def create_appointment(
        self,
        practitioner_id: str,
        interval: TimeInterval,
        appointment_type: str,
        patient_name: str,
        notes: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Appointment:
        """
        Validate and commit a new appointment.

        Raises:
            PractitionerNotFoundError, InvalidDurationError, OutOfHoursError,
            ConflictError, UnavailableError
        """
        timeout = self._resolve_timeout(timeout)
        interval = self._normalize(interval)
        practitioner = await self._get_practitioner(practitioner_id, timeout)

        appointment = Appointment(
            id=uuid.uuid4().hex,
            practitioner_id=practitioner.id,
            start=interval.start,
            duration_minutes=interval.duration_minutes(),
            appointment_type=appointment_type,
            patient_name=patient_name,
            notes=notes,
        )

        async with self._practitioner_guard(practitioner.id, timeout):
            await self._validator.validate(practitioner, interval, timeout=timeout)
            try:
                created = await await_store(
                    self._store.insert(appointment), timeout, operation="insert"
                )
            except UniqueConflictError as exc:
                raise ConflictError([exc.existing_id]) from exc

        logger.info(
            "Booked appointment %s for practitioner %s at %s",
            created.id, practitioner.id, interval,
        )
        return created

    async def update_appointment(
        self,
        appointment_id: str,
        interval: TimeInterval,
        appointment_type: str,
        patient_name: str,
        notes: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Appointment:
        """
        Replace the time and details of an existing appointment.

        The appointment's own current interval is ignored during the
        conflict check, so re-saving it unchanged always succeeds.

        Raises:
            AppointmentNotFoundError, InvalidDurationError, OutOfHoursError,
            ConflictError, UnavailableError
        """
        timeout = self._resolve_timeout(timeout)
        interval = self._normalize(interval)
        existing = await self._get_appointment(appointment_id, timeout)
        practitioner = await self._get_practitioner(existing.practitioner_id, timeout)

        async with self._practitioner_guard(practitioner.id, timeout):
            # Re-read under the lock: a concurrent delete may have won.
            current = await self._get_appointment(appointment_id, timeout)
            await self._validator.validate(
                practitioner,
                interval,
                timeout=timeout,
                exclude_appointment_id=current.id,
            )

            updated = current.rescheduled(interval, appointment_type, patient_name, notes)
            try:
                updated = await await_store(
                    self._store.replace(current.id, updated), timeout, operation="replace"
                )
            except RecordNotFoundError as exc:
                raise AppointmentNotFoundError(appointment_id) from exc
            except UniqueConflictError as exc:
                raise ConflictError([exc.existing_id]) from exc

        logger.info("Updated appointment %s to %s", updated.id, interval)
        return updated

    async def delete_appointment(
        self,
        appointment_id: str,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Remove an appointment. No conflict check is needed.

        The delete runs under the practitioner lock so it is ordered with
        concurrent creates and updates on the same store.
        """
        timeout = self._resolve_timeout(timeout)
        existing = await self._get_appointment(appointment_id, timeout)

        async with self._practitioner_guard(existing.practitioner_id, timeout):
            try:
                await await_store(
                    self._store.delete(appointment_id), timeout, operation="delete"
                )
            except RecordNotFoundError as exc:
                raise AppointmentNotFoundError(appointment_id) from exc

        logger.info("Deleted appointment %s", appointment_id)

    async def get_appointment(
        self,
        appointment_id: str,
        *,
        timeout: Optional[float] = None,
    ) -> Appointment:
        return await self._get_appointment(appointment_id, self._resolve_timeout(timeout))

    async def list_appointments(
        self,
        practitioner_id: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ) -> List[Appointment]:
        """List committed appointments ordered by start time."""
        timeout = self._resolve_timeout(timeout)
        if practitioner_id is not None:
            await self._get_practitioner(practitioner_id, timeout)

        appointments = await await_store(
            self._store.list_appointments(practitioner_id),
            timeout,
            operation="list_appointments",
        )
        return sorted(appointments, key=lambda a: (a.start, a.practitioner_id))

    async def list_practitioners(
        self,
        *,
        timeout: Optional[float] = None,
    ) -> List[Practitioner]:
        return await await_store(
            self._practitioners.list_practitioners(),
            self._resolve_timeout(timeout),
            operation="list_practitioners",
        )

    def _resolve_timeout(self, timeout: Optional[float]) -> float:
        return self._default_timeout if timeout is None else timeout

    def _normalize(self, interval: TimeInterval) -> TimeInterval:
        return TimeInterval(
            start=interval.start.in_timezone(self._timezone),
            end=interval.end.in_timezone(self._timezone),
        )

    async def _get_practitioner(self, practitioner_id: str, timeout: float) -> Practitioner:
        practitioner = await await_store(
            self._practitioners.get_practitioner(practitioner_id),
            timeout,
            operation="get_practitioner",
        )
        if practitioner is None:
            raise PractitionerNotFoundError(practitioner_id)
        return practitioner

    async def _get_appointment(self, appointment_id: str, timeout: float) -> Appointment:
        appointment = await await_store(
            self._store.find_by_id(appointment_id), timeout, operation="find_by_id"
        )
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    @asynccontextmanager
    async def _practitioner_guard(self, practitioner_id: str, timeout: float) -> AsyncIterator[None]:
        """Hold the practitioner's write lock; waiting longer than ``timeout`` is Unavailable."""
        lock = self._store.practitioner_lock(practitioner_id)
        await await_store(lock.acquire(), timeout, operation="practitioner_lock")
        try:
            yield
        finally:
            lock.release()
