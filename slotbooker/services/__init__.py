"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_validator import BookingValidator, ConflictCheck, proposed_interval
from .handlers import (
    AppointmentResponse,
    BookingHandlers,
    CreateAppointmentRequest,
    DeleteResponse,
    ErrorInfo,
    ListSlotsRequest,
    SlotsResponse,
    UpdateAppointmentRequest,
)
from .ports import AppointmentStoreProtocol, PractitionerSourceProtocol, await_store
from .scheduling import SchedulingService

__all__ = [
    "AppointmentResponse",
    "AppointmentStoreProtocol",
    "BookingHandlers",
    "BookingValidator",
    "ConflictCheck",
    "CreateAppointmentRequest",
    "DeleteResponse",
    "ErrorInfo",
    "ListSlotsRequest",
    "PractitionerSourceProtocol",
    "SchedulingService",
    "SlotsResponse",
    "UpdateAppointmentRequest",
    "await_store",
    "proposed_interval",
]
