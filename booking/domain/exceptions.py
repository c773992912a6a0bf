import datetime as dt
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from booking.domain.models import AppointmentState, FieldError


class BookingError(Exception):
    """Base exception for all booking business-rule failures."""


class AppointmentNotFoundError(BookingError):
    """Raised when an id or confirmation code resolves to no appointment."""

    def __init__(self, lookup: int | str) -> None:
        self.lookup = lookup
        if isinstance(lookup, int):
            message = f"Appointment with id {lookup} not found"
        else:
            message = f"Appointment with confirmation code {lookup} not found"
        super().__init__(message)


class InvalidTimeRangeError(BookingError):
    """Raised when a time range breaks business hours, duration or advance-notice rules."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class SlotUnavailableError(BookingError):
    """Raised when the requested interval overlaps an active appointment."""

    def __init__(self, date: dt.date, start_time: dt.time, end_time: dt.time) -> None:
        self.date = date
        self.start_time = start_time
        self.end_time = end_time
        super().__init__(
            f"The requested time {start_time:%H:%M} - {end_time:%H:%M} on {date.isoformat()} "
            "is already taken"
        )


class InvalidStateTransitionError(BookingError):
    """Raised when a lifecycle trigger is illegal from the appointment's current state."""

    def __init__(
        self, trigger: str, current_state: "AppointmentState", allowed: list[str] | None = None
    ) -> None:
        self.trigger = trigger
        self.current_state = current_state
        self.allowed = allowed or []
        hint = (
            f"allowed: {', '.join(self.allowed)}" if self.allowed else "no further changes allowed"
        )
        super().__init__(
            f"Cannot {trigger} an appointment in state {current_state.value.upper()} ({hint})"
        )


class ValidationFailedError(BookingError):
    """Raised when a request fails structural field validation."""

    def __init__(self, errors: "list[FieldError]") -> None:
        self.errors = errors
        super().__init__("Request validation failed")

    @property
    def messages(self) -> list[str]:
        return [f"{error.field}: {error.message}" for error in self.errors]


class StorageUnavailableError(Exception):
    """Raised when the storage collaborator fails unexpectedly.

    Not a ``BookingError``: the HTTP layer reports it as an internal failure.
    """
