import datetime as dt
from decimal import Decimal
from typing import Any, Callable

import pytest

from booking.config import ScheduleConfig
from booking.domain.models import Appointment, AppointmentRequest, AppointmentState
from booking.service import BookingService
from booking.storage.fake import FakeAppointmentStore

NOW = dt.datetime(2026, 3, 2, 6, 0)
DAY = dt.date(2026, 3, 3)


@pytest.fixture
def schedule() -> ScheduleConfig:
    return ScheduleConfig(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def clock() -> Callable[[], dt.datetime]:
    return lambda: NOW


@pytest.fixture
def fake_store() -> FakeAppointmentStore:
    return FakeAppointmentStore()


@pytest.fixture
def service(
    fake_store: FakeAppointmentStore,
    schedule: ScheduleConfig,
    clock: Callable[[], dt.datetime],
) -> BookingService:
    return BookingService(fake_store, schedule=schedule, clock=clock)


@pytest.fixture
def make_request() -> Callable[..., AppointmentRequest]:
    def _make(**overrides: Any) -> AppointmentRequest:
        fields: dict[str, Any] = {
            "customer_name": "Ana Torres",
            "email": "ana@example.com",
            "phone": "+34 600 123 456",
            "date": DAY,
            "start_time": dt.time(9, 0),
            "end_time": dt.time(10, 0),
            "service": "Haircut",
            "price": Decimal("25.00"),
            "notes": None,
        }
        fields.update(overrides)
        return AppointmentRequest(**fields)

    return _make


@pytest.fixture
def make_appointment() -> Callable[..., Appointment]:
    counter = iter(range(1000, 10000))

    def _make(
        start: dt.time,
        end: dt.time,
        state: AppointmentState = AppointmentState.PENDING,
        **overrides: Any,
    ) -> Appointment:
        fields: dict[str, Any] = {
            "confirmation_code": f"APT-{next(counter)}",
            "customer_name": "Ana Torres",
            "email": "ana@example.com",
            "phone": "+34 600 123 456",
            "service": "Haircut",
            "price": Decimal("25.00"),
            "date": DAY,
            "start_time": start,
            "end_time": end,
            "state": state,
            "created_at": NOW,
            "updated_at": NOW,
        }
        fields.update(overrides)
        return Appointment(**fields)

    return _make
