"""External-facing shapes of the canonical ``Appointment`` record."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from booking.domain.models import Appointment, AppointmentRequest, AppointmentState


class AppointmentView(BaseModel):
    """Full read projection of an appointment."""

    model_config = ConfigDict(frozen=True)

    id: int
    confirmation_code: str
    customer_name: str
    email: str
    phone: str
    service: str
    price: Decimal
    notes: str | None = None
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    duration_minutes: int
    state: AppointmentState
    created_at: dt.datetime
    updated_at: dt.datetime


class BookingConfirmation(BaseModel):
    """Projection returned right after a successful booking."""

    model_config = ConfigDict(frozen=True)

    id: int
    confirmation_code: str
    customer_name: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    service: str
    state: AppointmentState
    message: str


def to_view(appointment: Appointment) -> AppointmentView:
    if appointment.id is None:
        raise ValueError("Cannot project an appointment that has not been stored")
    return AppointmentView(
        id=appointment.id,
        confirmation_code=appointment.confirmation_code,
        customer_name=appointment.customer_name,
        email=appointment.email,
        phone=appointment.phone,
        service=appointment.service,
        price=appointment.price,
        notes=appointment.notes,
        date=appointment.date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        duration_minutes=appointment.duration_minutes,
        state=appointment.state,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


def to_confirmation(appointment: Appointment) -> BookingConfirmation:
    if appointment.id is None:
        raise ValueError("Cannot confirm an appointment that has not been stored")
    return BookingConfirmation(
        id=appointment.id,
        confirmation_code=appointment.confirmation_code,
        customer_name=appointment.customer_name,
        date=appointment.date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        service=appointment.service,
        state=appointment.state,
        message=(
            f"Appointment booked successfully. Confirmation code: "
            f"{appointment.confirmation_code}. Please confirm your attendance."
        ),
    )


def new_appointment(
    request: AppointmentRequest,
    *,
    confirmation_code: str,
    state: AppointmentState,
    now: dt.datetime,
) -> Appointment:
    """Build an unsaved record from a request that already passed validation."""
    return Appointment(
        confirmation_code=confirmation_code,
        state=state,
        created_at=now,
        updated_at=now,
        **_request_fields(request),
    )


def apply_request(
    appointment: Appointment, request: AppointmentRequest, *, now: dt.datetime
) -> Appointment:
    """Overwrite the request-owned fields; id, state, code and ``created_at`` are kept."""
    return appointment.model_copy(update={**_request_fields(request), "updated_at": now})


def _request_fields(request: AppointmentRequest) -> dict[str, object]:
    return {
        "customer_name": (request.customer_name or "").strip(),
        "email": (request.email or "").strip(),
        "phone": (request.phone or "").strip(),
        "service": (request.service or "").strip(),
        "price": request.price,
        "notes": request.notes,
        "date": request.date,
        "start_time": request.start_time,
        "end_time": request.end_time,
    }
