import datetime as dt
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from booking.domain.models import Appointment, AppointmentRequest, AppointmentState, Availability
from booking.domain.projections import AppointmentView, BookingConfirmation


class AbstractBookingService(ABC):
    """Abstract base class for appointment booking operations."""

    @abstractmethod
    async def create_appointment(self, request: AppointmentRequest) -> BookingConfirmation:
        """Book a new appointment in the Pending state.

        Args:
            request: The appointment details.

        Returns:
            The booking confirmation carrying the new confirmation code.

        Raises:
            ValidationFailedError: If the request is structurally invalid.
            InvalidTimeRangeError: If the range breaks business hours,
                duration limits or minimum advance notice.
            SlotUnavailableError: If the range overlaps an active appointment.
            StorageUnavailableError: If the storage collaborator fails.
        """

    @abstractmethod
    async def list_appointments(self) -> list[AppointmentView]:
        """Return every stored appointment."""

    @abstractmethod
    async def get_appointment(self, appointment_id: int) -> AppointmentView:
        """Return one appointment.

        Raises:
            AppointmentNotFoundError: If no appointment has this id.
        """

    @abstractmethod
    async def update_appointment(
        self, appointment_id: int, request: AppointmentRequest
    ) -> AppointmentView:
        """Overwrite the descriptive and scheduling fields of an appointment.

        State, confirmation code and creation time are left untouched. The
        overlap check ignores the appointment being updated.

        Raises:
            AppointmentNotFoundError: If no appointment has this id.
            ValidationFailedError, InvalidTimeRangeError, SlotUnavailableError:
                As for ``create_appointment``.
        """

    @abstractmethod
    async def delete_appointment(self, appointment_id: int) -> None:
        """Hard-delete an appointment.

        Raises:
            AppointmentNotFoundError: If no appointment has this id.
        """

    @abstractmethod
    async def get_by_confirmation_code(self, code: str) -> AppointmentView:
        """Raises ``AppointmentNotFoundError`` if no appointment owns ``code``."""

    @abstractmethod
    async def list_by_email(self, email: str) -> list[AppointmentView]:
        """Appointments booked under ``email``, newest date first."""

    @abstractmethod
    async def list_by_state(self, state: AppointmentState) -> list[AppointmentView]:
        """Appointments in ``state``, oldest date first."""

    @abstractmethod
    async def list_by_date(self, date: dt.date) -> list[AppointmentView]:
        """Appointments on ``date`` in any state, by start time."""

    @abstractmethod
    async def get_availability(self, date: dt.date) -> Availability:
        """Partition ``date`` into available and occupied slots."""

    @abstractmethod
    async def confirm_appointment(self, appointment_id: int) -> AppointmentView:
        """Pending → Confirmed."""

    @abstractmethod
    async def cancel_appointment(self, appointment_id: int) -> AppointmentView:
        """Pending or Confirmed → Cancelled."""

    @abstractmethod
    async def complete_appointment(self, appointment_id: int) -> AppointmentView:
        """Confirmed → Completed."""

    @abstractmethod
    async def close(self) -> None:
        """Release resources held by this service."""


class AppointmentStoreProtocol(Protocol):
    """Durable storage for appointment records."""

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Serialise a read-check-write sequence against concurrent writers."""
        ...

    async def save(self, appointment: Appointment) -> Appointment:
        """Insert (no id) or replace (with id); returns the stored record."""
        ...

    async def find_all(self) -> list[Appointment]:
        ...

    async def find_by_id(self, appointment_id: int) -> Appointment | None:
        ...

    async def find_by_confirmation_code(self, code: str) -> Appointment | None:
        ...

    async def exists_by_confirmation_code(self, code: str) -> bool:
        """True for any appointment ever stored with ``code``, whatever its state."""
        ...

    async def delete(self, appointment: Appointment) -> None:
        ...

    async def find_by_email(self, email: str) -> list[Appointment]:
        """Sorted by date, newest first."""
        ...

    async def find_by_state(self, state: AppointmentState) -> list[Appointment]:
        """Sorted by date, oldest first."""
        ...

    async def find_by_date(self, date: dt.date) -> list[Appointment]:
        """Sorted by start time."""
        ...

    async def find_overlapping(
        self, date: dt.date, start_time: dt.time, end_time: dt.time
    ) -> list[Appointment]:
        """Pending/Confirmed appointments on ``date`` intersecting ``[start, end)``."""
        ...

    async def find_active_by_date(self, date: dt.date) -> list[Appointment]:
        """Pending/Confirmed appointments on ``date``, sorted by start time."""
        ...

    async def close(self) -> None:
        ...
