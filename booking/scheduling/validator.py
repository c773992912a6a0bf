import datetime as dt
import re
from collections.abc import Callable

from loguru import logger

from booking.config import ScheduleConfig
from booking.domain.exceptions import InvalidTimeRangeError, SlotUnavailableError
from booking.domain.models import AppointmentRequest, FieldError
from booking.ports import AppointmentStoreProtocol
from booking.scheduling.time_slots import minutes_between, resolve_timezone

Clock = Callable[[], dt.datetime]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?[0-9\s-]{9,15}$")


def system_clock(timezone: str | None = None) -> Clock:
    """Wall clock in the facility's timezone, as a naive datetime.

    With no timezone the server's local time is used.
    """
    if timezone is None:
        return dt.datetime.now

    tz = resolve_timezone(timezone)
    return lambda: dt.datetime.now(tz).replace(tzinfo=None)


def validate_request(request: AppointmentRequest, today: dt.date) -> list[FieldError]:
    """Check field-level constraints, returning every failure found."""
    errors: list[FieldError] = []

    def fail(field: str, message: str) -> None:
        errors.append(FieldError(field=field, message=message))

    _check_text(request.customer_name, "customer_name", fail, min_len=2, max_len=100)
    _check_text(request.service, "service", fail, min_len=2, max_len=100)

    if not (request.email or "").strip():
        fail("email", "is required")
    elif not _EMAIL_RE.match(request.email.strip()):
        fail("email", "is not a valid e-mail address")

    if not (request.phone or "").strip():
        fail("phone", "is required")
    elif not _PHONE_RE.match(request.phone.strip()):
        fail("phone", "is not a valid phone number")

    if request.date is None:
        fail("date", "is required")
    elif request.date < today:
        fail("date", "cannot be in the past")

    for field in ("start_time", "end_time"):
        value: dt.time | None = getattr(request, field)
        if value is None:
            fail(field, "is required")
        elif value.tzinfo is not None:
            fail(field, "must be a wall-clock time without timezone")
        elif value.second or value.microsecond:
            fail(field, "must be a whole minute (HH:MM)")

    if request.price is None:
        fail("price", "is required")
    elif request.price < 0:
        fail("price", "must be greater than or equal to 0")

    if request.notes is not None and len(request.notes) > 500:
        fail("notes", "cannot exceed 500 characters")

    return errors


def _check_text(
    value: str | None,
    field: str,
    fail: Callable[[str, str], None],
    *,
    min_len: int,
    max_len: int,
) -> None:
    stripped = (value or "").strip()
    if not stripped:
        fail(field, "is required")
    elif not min_len <= len(stripped) <= max_len:
        fail(field, f"must be between {min_len} and {max_len} characters")


class BookingValidator:
    """Business-rule checks a candidate time range must pass before it is stored."""

    def __init__(
        self,
        store: AppointmentStoreProtocol,
        schedule: ScheduleConfig,
        clock: Clock,
    ) -> None:
        self._store = store
        self._schedule = schedule
        self._clock = clock

    async def validate(
        self,
        date: dt.date,
        start_time: dt.time,
        end_time: dt.time,
        exclude_id: int | None = None,
    ) -> None:
        """Run business-hours, overlap and advance-notice checks in that order."""
        self.check_business_hours(start_time, end_time)
        await self.check_no_overlap(date, start_time, end_time, exclude_id)
        self.check_advance_notice(date, start_time)

    def check_business_hours(self, start_time: dt.time, end_time: dt.time) -> None:
        schedule = self._schedule
        if start_time < schedule.opening_time or end_time > schedule.closing_time:
            raise InvalidTimeRangeError(
                f"Appointments must fall between {schedule.opening_time:%H:%M} and "
                f"{schedule.closing_time:%H:%M}. Requested: {start_time:%H:%M} - {end_time:%H:%M}"
            )

        if end_time <= start_time:
            raise InvalidTimeRangeError(
                f"End time {end_time:%H:%M} must be after start time {start_time:%H:%M}"
            )

        duration = minutes_between(start_time, end_time)
        if not schedule.min_duration_minutes <= duration <= schedule.max_duration_minutes:
            raise InvalidTimeRangeError(
                f"Appointment duration must be between {schedule.min_duration_minutes} and "
                f"{schedule.max_duration_minutes} minutes, got {duration}"
            )

    async def check_no_overlap(
        self,
        date: dt.date,
        start_time: dt.time,
        end_time: dt.time,
        exclude_id: int | None = None,
    ) -> None:
        overlapping = await self._store.find_overlapping(date, start_time, end_time)
        conflicts = [a for a in overlapping if exclude_id is None or a.id != exclude_id]
        if conflicts:
            logger.info(
                "Slot {} {}-{} conflicts with appointment(s) {}",
                date,
                start_time,
                end_time,
                [a.id for a in conflicts],
            )
            raise SlotUnavailableError(date, start_time, end_time)

    def check_advance_notice(self, date: dt.date, start_time: dt.time) -> None:
        earliest = self._clock() + dt.timedelta(hours=self._schedule.min_advance_hours)
        if dt.datetime.combine(date, start_time) < earliest:
            raise InvalidTimeRangeError(
                f"Appointments must be booked at least {self._schedule.min_advance_hours} "
                "hours in advance"
            )
