"""
Transport-neutral request/response handlers.

These are the shapes exposed to callers (CLI today, an HTTP or RPC layer
tomorrow). Every ``SchedulingError`` raised by the service is recovered
here into an ``ErrorInfo`` with an explicit ``kind``; anything else
propagates.
"""

from __future__ import annotations

import logging
from datetime import date as date_type
from datetime import datetime
from typing import List, Optional

import pendulum
from pydantic import BaseModel, Field

from ..domain.exceptions import ConflictError, SchedulingError
from ..domain.models import Appointment
from .booking_validator import proposed_interval
from .scheduling import SchedulingService

logger = logging.getLogger(__name__)

SLOT_FORMAT = "HH:mm"


class ErrorInfo(BaseModel):
    """Machine-readable failure description."""
    kind: str
    message: str
    conflicting_ids: List[str] = Field(default_factory=list)

    @classmethod
    def from_exception(cls, exc: SchedulingError) -> "ErrorInfo":
        conflicting_ids = exc.conflicting_ids if isinstance(exc, ConflictError) else []
        return cls(kind=exc.kind, message=str(exc), conflicting_ids=conflicting_ids)


class ListSlotsRequest(BaseModel):
    practitioner_id: str
    date: date_type


class SlotsResponse(BaseModel):
    ok: bool
    practitioner_id: str
    date: date_type
    slots: List[str] = Field(default_factory=list)
    error: Optional[ErrorInfo] = None


class CreateAppointmentRequest(BaseModel):
    practitioner_id: str
    start: datetime
    duration_minutes: int
    appointment_type: str
    patient_name: str
    notes: Optional[str] = None


class UpdateAppointmentRequest(BaseModel):
    appointment_id: str
    start: datetime
    duration_minutes: int
    appointment_type: str
    patient_name: str
    notes: Optional[str] = None


class AppointmentResponse(BaseModel):
    ok: bool
    id: Optional[str] = None
    error: Optional[ErrorInfo] = None


class DeleteResponse(BaseModel):
    ok: bool
    error: Optional[ErrorInfo] = None


class BookingHandlers:
    """Maps request models onto ``SchedulingService`` calls."""

    def __init__(self, service: SchedulingService, *, timeout: Optional[float] = None) -> None:
        self._service = service
        self._timeout = timeout

    async def list_slots(self, request: ListSlotsRequest) -> SlotsResponse:
        try:
            slots = await self._service.list_available_slots(
                request.practitioner_id, request.date, timeout=self._timeout
            )
        except SchedulingError as exc:
            return SlotsResponse(
                ok=False,
                practitioner_id=request.practitioner_id,
                date=request.date,
                error=self._error(exc),
            )

        return SlotsResponse(
            ok=True,
            practitioner_id=request.practitioner_id,
            date=request.date,
            slots=[slot.format(SLOT_FORMAT) for slot in slots],
        )

    async def create_appointment(self, request: CreateAppointmentRequest) -> AppointmentResponse:
        try:
            interval = proposed_interval(self._to_local(request.start), request.duration_minutes)
            appointment = await self._service.create_appointment(
                request.practitioner_id,
                interval,
                request.appointment_type,
                request.patient_name,
                request.notes,
                timeout=self._timeout,
            )
        except SchedulingError as exc:
            return AppointmentResponse(ok=False, error=self._error(exc))

        return self._created(appointment)

    async def update_appointment(self, request: UpdateAppointmentRequest) -> AppointmentResponse:
        try:
            interval = proposed_interval(self._to_local(request.start), request.duration_minutes)
            appointment = await self._service.update_appointment(
                request.appointment_id,
                interval,
                request.appointment_type,
                request.patient_name,
                request.notes,
                timeout=self._timeout,
            )
        except SchedulingError as exc:
            return AppointmentResponse(ok=False, error=self._error(exc))

        return self._created(appointment)

    async def delete_appointment(self, appointment_id: str) -> DeleteResponse:
        try:
            await self._service.delete_appointment(appointment_id, timeout=self._timeout)
        except SchedulingError as exc:
            return DeleteResponse(ok=False, error=self._error(exc))

        return DeleteResponse(ok=True)

    def _to_local(self, value: datetime) -> pendulum.DateTime:
        """Naive timestamps are read in the service timezone."""
        return pendulum.instance(value, tz=self._service.timezone).in_timezone(
            self._service.timezone
        )

    @staticmethod
    def _created(appointment: Appointment) -> AppointmentResponse:
        return AppointmentResponse(ok=True, id=appointment.id)

    @staticmethod
    def _error(exc: SchedulingError) -> ErrorInfo:
        logger.debug("Request failed with %s: %s", exc.kind, exc)
        return ErrorInfo.from_exception(exc)
