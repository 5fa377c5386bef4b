"""
Protocols for the collaborators consumed by the scheduling services.

Dependency inversion toward these protocols lets the config-backed roster,
the in-memory store and the JSON file store (or a database-backed store)
be swapped without touching the booking logic.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, List, Optional, Protocol, Sequence, TypeVar

from ..domain.exceptions import StoreUnavailableError, UnavailableError
from ..domain.models import Appointment, Practitioner, TimeInterval

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PractitionerSourceProtocol(Protocol):
    """Read-only access to the practitioner roster."""

    async def get_practitioner(self, practitioner_id: str) -> Optional[Practitioner]:
        """Return the practitioner or ``None`` if unknown."""

    async def list_practitioners(self) -> List[Practitioner]:
        """Return all practitioners."""


class PractitionerLock(Protocol):
    """Mutual exclusion scoped to a single practitioner's bookings."""

    async def acquire(self) -> bool:
        ...

    def release(self) -> None:
        ...


class AppointmentStoreProtocol(Protocol):
    """
    Storage of committed appointments.

    ``insert`` must reject a second appointment with the same
    (practitioner_id, start) by raising ``UniqueConflictError``. Transient
    failures are reported as ``StoreUnavailableError``.
    """

    async def find_by_practitioner_and_range(
        self,
        practitioner_id: str,
        time_range: TimeInterval,
    ) -> List[Appointment]:
        """Return appointments of the practitioner overlapping ``time_range``."""

    async def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        """Return the appointment or ``None``."""

    async def insert(self, appointment: Appointment) -> Appointment:
        """Persist a new appointment."""

    async def replace(self, appointment_id: str, appointment: Appointment) -> Appointment:
        """Overwrite an existing appointment. Raises ``RecordNotFoundError``."""

    async def delete(self, appointment_id: str) -> None:
        """Remove an appointment. Raises ``RecordNotFoundError``."""

    async def list_appointments(
        self,
        practitioner_id: Optional[str] = None,
    ) -> Sequence[Appointment]:
        """Return appointments ordered by start, optionally for one practitioner."""

    def practitioner_lock(self, practitioner_id: str) -> PractitionerLock:
        """Return the lock guarding writes for ``practitioner_id``."""


async def await_store(awaitable: Awaitable[T], timeout: float, *, operation: str) -> T:
    """
    Await a store call, bounded by ``timeout`` seconds.

    Timeouts and transient store failures surface as ``UnavailableError``.
    No retry happens here; a retry must re-run the whole validation.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("Store operation %s timed out after %ss", operation, timeout)
        raise UnavailableError(
            f"Store operation '{operation}' timed out after {timeout}s"
        ) from exc
    except StoreUnavailableError as exc:
        logger.warning("Store operation %s failed: %s", operation, exc)
        raise UnavailableError(f"Store operation '{operation}' failed: {exc}") from exc
