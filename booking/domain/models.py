import datetime as dt
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AppointmentState(str, Enum):
    """Lifecycle states of an appointment."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_STATES = frozenset({AppointmentState.PENDING, AppointmentState.CONFIRMED})


class Appointment(BaseModel):
    """A booked appointment on the shared facility calendar."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    confirmation_code: str
    customer_name: str
    email: str
    phone: str
    service: str
    price: Decimal = Field(ge=0)
    notes: str | None = None
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    state: AppointmentState = AppointmentState.PENDING
    created_at: dt.datetime
    updated_at: dt.datetime

    @property
    def duration_minutes(self) -> int:
        start = dt.datetime.combine(self.date, self.start_time)
        end = dt.datetime.combine(self.date, self.end_time)
        return int((end - start).total_seconds() // 60)

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES


class AppointmentRequest(BaseModel):
    """Create/update input for an appointment.

    Fields are optional at the type level; missing or malformed values are
    reported together by ``booking.scheduling.validator.validate_request``.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str | None = None
    email: str | None = None
    phone: str | None = None
    date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    service: str | None = None
    price: Decimal | None = None
    notes: str | None = None


class FieldError(BaseModel):
    """A single structural validation failure."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class Availability(BaseModel):
    """Partition of a business day into available and occupied slots."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    all_slots: list[str]
    occupied_slots: list[str]
    available_slots: list[str]
    count_available: int
