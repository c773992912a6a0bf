import datetime as dt
from typing import Callable

import pytest

from booking.domain.exceptions import (
    AppointmentNotFoundError,
    InvalidStateTransitionError,
    InvalidTimeRangeError,
    SlotUnavailableError,
    StorageUnavailableError,
    ValidationFailedError,
)
from booking.domain.models import Appointment, AppointmentRequest, AppointmentState
from booking.scheduling.codes import CODE_PATTERN
from booking.service import BookingService
from booking.storage.fake import FakeAppointmentStore

# Fixtures (fake_store, service, make_request, make_appointment) provided by tests/conftest.py

NOW = dt.datetime(2026, 3, 2, 6, 0)
DAY = dt.date(2026, 3, 3)


class TestCreateAppointment:
    @pytest.mark.asyncio
    async def test_books_in_pending_state(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        confirmation = await service.create_appointment(make_request())

        assert confirmation.state == AppointmentState.PENDING
        assert CODE_PATTERN.match(confirmation.confirmation_code)
        assert confirmation.confirmation_code in confirmation.message
        assert confirmation.start_time == dt.time(9, 0)

        (stored,) = fake_store.saved
        assert stored.id == confirmation.id
        assert stored.created_at == stored.updated_at == NOW
        assert stored.duration_minutes == 60
        assert fake_store.transactions == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("start", "end"),
        [
            (dt.time(7, 30), dt.time(8, 30)),
            (dt.time(19, 30), dt.time(20, 30)),
            (dt.time(10, 0), dt.time(10, 0)),
            (dt.time(10, 0), dt.time(9, 0)),
            (dt.time(10, 0), dt.time(10, 14)),
            (dt.time(8, 0), dt.time(16, 30)),
        ],
        ids=["before-opening", "after-closing", "empty", "reversed", "too-short", "too-long"],
    )
    async def test_rejects_invalid_time_range(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
        start: dt.time,
        end: dt.time,
    ) -> None:
        with pytest.raises(InvalidTimeRangeError):
            await service.create_appointment(make_request(start_time=start, end_time=end))

        assert fake_store.saved == []

    @pytest.mark.asyncio
    async def test_rejects_overlap_with_active_appointment(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        await service.create_appointment(make_request())

        with pytest.raises(SlotUnavailableError):
            await service.create_appointment(
                make_request(start_time=dt.time(9, 30), end_time=dt.time(10, 30))
            )

        assert len(fake_store.saved) == 1

    @pytest.mark.asyncio
    async def test_back_to_back_bookings_succeed(
        self, service: BookingService, make_request: Callable[..., AppointmentRequest]
    ) -> None:
        await service.create_appointment(make_request())
        later = await service.create_appointment(
            make_request(start_time=dt.time(10, 0), end_time=dt.time(11, 0))
        )

        assert later.state == AppointmentState.PENDING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [AppointmentState.CANCELLED, AppointmentState.COMPLETED])
    async def test_inactive_appointment_frees_its_slot(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
        make_appointment: Callable[..., Appointment],
        state: AppointmentState,
    ) -> None:
        fake_store.seed(make_appointment(dt.time(9, 0), dt.time(10, 0), state))

        confirmation = await service.create_appointment(make_request())

        assert confirmation.state == AppointmentState.PENDING

    @pytest.mark.asyncio
    async def test_rejects_short_notice(
        self,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        service = BookingService(fake_store, clock=lambda: dt.datetime(2026, 3, 3, 7, 30))

        with pytest.raises(InvalidTimeRangeError, match="in advance"):
            await service.create_appointment(make_request())

    @pytest.mark.asyncio
    async def test_structural_errors_reported_before_business_rules(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        request = make_request(email="nope", start_time=dt.time(6, 0))

        with pytest.raises(ValidationFailedError) as excinfo:
            await service.create_appointment(request)

        assert [e.field for e in excinfo.value.errors] == ["email"]
        assert excinfo.value.messages == ["email: is not a valid e-mail address"]
        assert fake_store.transactions == 0

    @pytest.mark.asyncio
    async def test_rejects_times_carrying_a_timezone(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        request = make_request(
            start_time=dt.time(9, 0, tzinfo=dt.timezone.utc),
            end_time=dt.time(10, 0, tzinfo=dt.timezone.utc),
        )

        with pytest.raises(ValidationFailedError) as excinfo:
            await service.create_appointment(request)

        assert excinfo.value.messages == [
            "start_time: must be a wall-clock time without timezone",
            "end_time: must be a wall-clock time without timezone",
        ]
        assert fake_store.saved == []

    @pytest.mark.asyncio
    async def test_never_reuses_codes_of_inactive_appointments(
        self,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
        make_appointment: Callable[..., Appointment],
    ) -> None:
        fake_store.seed(
            make_appointment(
                dt.time(9, 0),
                dt.time(10, 0),
                AppointmentState.CANCELLED,
                confirmation_code="APT-AAAA",
            )
        )
        tokens = iter(["aaaa", "bbbb"])
        service = BookingService(fake_store, clock=lambda: NOW, token_source=lambda: next(tokens))

        confirmation = await service.create_appointment(make_request())

        assert confirmation.confirmation_code == "APT-BBBB"

    @pytest.mark.asyncio
    async def test_wraps_storage_failure(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        fake_store.save_error = RuntimeError("disk full")

        with pytest.raises(StorageUnavailableError, match="disk full"):
            await service.create_appointment(make_request())


class TestReadOperations:
    @pytest.mark.asyncio
    async def test_get_appointment(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_appointment: Callable[..., Appointment],
    ) -> None:
        (stored,) = fake_store.seed(make_appointment(dt.time(9, 0), dt.time(9, 45)))

        view = await service.get_appointment(stored.id)

        assert view.id == stored.id
        assert view.duration_minutes == 45

    @pytest.mark.asyncio
    async def test_get_missing_appointment(self, service: BookingService) -> None:
        with pytest.raises(AppointmentNotFoundError, match="id 99"):
            await service.get_appointment(99)

    @pytest.mark.asyncio
    async def test_get_by_confirmation_code(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_appointment: Callable[..., Appointment],
    ) -> None:
        fake_store.seed(
            make_appointment(dt.time(9, 0), dt.time(10, 0), confirmation_code="APT-K7M2")
        )

        view = await service.get_by_confirmation_code("APT-K7M2")

        assert view.confirmation_code == "APT-K7M2"

        with pytest.raises(AppointmentNotFoundError, match="APT-0000"):
            await service.get_by_confirmation_code("APT-0000")

    @pytest.mark.asyncio
    async def test_list_filters_and_orderings(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_appointment: Callable[..., Appointment],
    ) -> None:
        next_day = DAY + dt.timedelta(days=1)
        late, early, other_day, other_customer = fake_store.seed(
            make_appointment(dt.time(15, 0), dt.time(16, 0)),
            make_appointment(dt.time(9, 0), dt.time(10, 0), AppointmentState.CONFIRMED),
            make_appointment(dt.time(9, 0), dt.time(10, 0), date=next_day),
            make_appointment(dt.time(11, 0), dt.time(12, 0), email="bob@example.com"),
        )

        assert [v.id for v in await service.list_appointments()] == [
            late.id,
            early.id,
            other_day.id,
            other_customer.id,
        ]
        assert [v.id for v in await service.list_by_date(DAY)] == [
            early.id,
            other_customer.id,
            late.id,
        ]
        assert [v.id for v in await service.list_by_email("ana@example.com")] == [
            other_day.id,
            late.id,
            early.id,
        ]
        assert [v.id for v in await service.list_by_state(AppointmentState.PENDING)] == [
            other_customer.id,
            late.id,
            other_day.id,
        ]

    @pytest.mark.asyncio
    async def test_availability_uses_active_appointments_only(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_appointment: Callable[..., Appointment],
    ) -> None:
        fake_store.seed(
            make_appointment(dt.time(11, 0), dt.time(12, 0), AppointmentState.CONFIRMED),
            make_appointment(dt.time(9, 0), dt.time(10, 0)),
            make_appointment(dt.time(13, 0), dt.time(14, 0), AppointmentState.CANCELLED),
        )

        availability = await service.get_availability(DAY)

        assert availability.occupied_slots == ["09:00 - 10:00", "11:00 - 12:00"]
        assert availability.count_available == 20

    @pytest.mark.asyncio
    async def test_wraps_read_failure(
        self, service: BookingService, fake_store: FakeAppointmentStore
    ) -> None:
        fake_store.read_error = ConnectionError("db gone")

        with pytest.raises(StorageUnavailableError, match="get appointment"):
            await service.get_appointment(1)


class TestUpdateAppointment:
    @pytest.mark.asyncio
    async def test_can_resave_own_range(
        self,
        service: BookingService,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        created = await service.create_appointment(make_request())

        updated = await service.update_appointment(
            created.id, make_request(customer_name="Ana María Torres", notes="Window seat")
        )

        assert updated.customer_name == "Ana María Torres"
        assert updated.notes == "Window seat"
        assert updated.confirmation_code == created.confirmation_code
        assert updated.state == AppointmentState.PENDING

    @pytest.mark.asyncio
    async def test_keeps_state_code_and_created_at(
        self,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
        make_appointment: Callable[..., Appointment],
    ) -> None:
        created_at = NOW - dt.timedelta(days=3)
        (stored,) = fake_store.seed(
            make_appointment(
                dt.time(9, 0),
                dt.time(10, 0),
                AppointmentState.CONFIRMED,
                created_at=created_at,
                updated_at=created_at,
            )
        )
        service = BookingService(fake_store, clock=lambda: NOW)

        updated = await service.update_appointment(
            stored.id, make_request(start_time=dt.time(14, 0), end_time=dt.time(15, 30))
        )

        assert updated.state == AppointmentState.CONFIRMED
        assert updated.confirmation_code == stored.confirmation_code
        assert updated.created_at == created_at
        assert updated.updated_at == NOW
        assert updated.duration_minutes == 90

    @pytest.mark.asyncio
    async def test_rejects_move_onto_another_appointment(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        first = await service.create_appointment(make_request())
        second = await service.create_appointment(
            make_request(start_time=dt.time(11, 0), end_time=dt.time(12, 0))
        )

        with pytest.raises(SlotUnavailableError):
            await service.update_appointment(
                second.id, make_request(start_time=dt.time(9, 30), end_time=dt.time(11, 30))
            )

        unchanged = await service.get_appointment(second.id)
        assert unchanged.start_time == dt.time(11, 0)
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_missing_appointment(
        self, service: BookingService, make_request: Callable[..., AppointmentRequest]
    ) -> None:
        with pytest.raises(AppointmentNotFoundError):
            await service.update_appointment(42, make_request())


class TestDeleteAppointment:
    @pytest.mark.asyncio
    async def test_hard_deletes(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_request: Callable[..., AppointmentRequest],
    ) -> None:
        created = await service.create_appointment(make_request())

        await service.delete_appointment(created.id)

        assert [a.id for a in fake_store.deleted] == [created.id]
        with pytest.raises(AppointmentNotFoundError):
            await service.get_appointment(created.id)

    @pytest.mark.asyncio
    async def test_missing_appointment(self, service: BookingService) -> None:
        with pytest.raises(AppointmentNotFoundError):
            await service.delete_appointment(7)


class TestTransitions:
    @pytest.mark.asyncio
    async def test_full_happy_path(
        self, service: BookingService, make_request: Callable[..., AppointmentRequest]
    ) -> None:
        created = await service.create_appointment(make_request())

        confirmed = await service.confirm_appointment(created.id)
        completed = await service.complete_appointment(created.id)

        assert confirmed.state == AppointmentState.CONFIRMED
        assert completed.state == AppointmentState.COMPLETED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [AppointmentState.PENDING, AppointmentState.CONFIRMED])
    async def test_cancel_from_active_states(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_appointment: Callable[..., Appointment],
        state: AppointmentState,
    ) -> None:
        (stored,) = fake_store.seed(make_appointment(dt.time(9, 0), dt.time(10, 0), state))

        cancelled = await service.cancel_appointment(stored.id)

        assert cancelled.state == AppointmentState.CANCELLED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("state", "operation"),
        [
            (AppointmentState.CONFIRMED, "confirm_appointment"),
            (AppointmentState.CANCELLED, "confirm_appointment"),
            (AppointmentState.COMPLETED, "confirm_appointment"),
            (AppointmentState.CANCELLED, "cancel_appointment"),
            (AppointmentState.COMPLETED, "cancel_appointment"),
            (AppointmentState.PENDING, "complete_appointment"),
            (AppointmentState.CANCELLED, "complete_appointment"),
            (AppointmentState.COMPLETED, "complete_appointment"),
        ],
    )
    async def test_illegal_transitions_leave_record_untouched(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_appointment: Callable[..., Appointment],
        state: AppointmentState,
        operation: str,
    ) -> None:
        (stored,) = fake_store.seed(make_appointment(dt.time(9, 0), dt.time(10, 0), state))

        with pytest.raises(InvalidStateTransitionError):
            await getattr(service, operation)(stored.id)

        assert fake_store.saved == []
        assert (await service.get_appointment(stored.id)).state == state

    @pytest.mark.asyncio
    async def test_transition_touches_only_the_target(
        self,
        service: BookingService,
        fake_store: FakeAppointmentStore,
        make_appointment: Callable[..., Appointment],
    ) -> None:
        target, bystander = fake_store.seed(
            make_appointment(dt.time(9, 0), dt.time(10, 0)),
            make_appointment(dt.time(10, 0), dt.time(11, 0)),
        )

        await service.confirm_appointment(target.id)

        assert [a.id for a in fake_store.saved] == [target.id]
        assert (await service.get_appointment(bystander.id)).state == AppointmentState.PENDING

    @pytest.mark.asyncio
    async def test_missing_appointment(self, service: BookingService) -> None:
        with pytest.raises(AppointmentNotFoundError):
            await service.cancel_appointment(404)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_delegates(
        self, service: BookingService, fake_store: FakeAppointmentStore
    ) -> None:
        await service.close()

        assert fake_store.closed is True
