import datetime as dt
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import cast

from loguru import logger

from booking.config import ScheduleConfig
from booking.domain.exceptions import (
    AppointmentNotFoundError,
    BookingError,
    StorageUnavailableError,
    ValidationFailedError,
)
from booking.domain.models import Appointment, AppointmentRequest, AppointmentState, Availability
from booking.domain.projections import (
    AppointmentView,
    BookingConfirmation,
    apply_request,
    new_appointment,
    to_confirmation,
    to_view,
)
from booking.ports import AbstractBookingService, AppointmentStoreProtocol
from booking.scheduling.availability import compute_availability
from booking.scheduling.codes import generate_confirmation_code, random_token
from booking.scheduling.lifecycle import INITIAL_STATE, Trigger, next_state
from booking.scheduling.validator import BookingValidator, Clock, system_clock, validate_request


class BookingService(AbstractBookingService):
    """Booking service that applies scheduling rules on top of an AppointmentStoreProtocol."""

    def __init__(
        self,
        store: AppointmentStoreProtocol,
        schedule: ScheduleConfig | None = None,
        clock: Clock | None = None,
        token_source: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._schedule = schedule or ScheduleConfig()
        self._clock = clock or system_clock(self._schedule.facility_timezone)
        self._token_source = token_source or random_token
        self._validator = BookingValidator(store, self._schedule, self._clock)

    async def create_appointment(self, request: AppointmentRequest) -> BookingConfirmation:
        date, start_time, end_time = self._validate_structure(request)
        logger.info("Booking request: date={}, start={}, end={}", date, start_time, end_time)

        async with self._unit_of_work("create appointment"):
            await self._validator.validate(date, start_time, end_time)
            code = await self._new_code()
            appointment = new_appointment(
                request, confirmation_code=code, state=INITIAL_STATE, now=self._clock()
            )
            saved = await self._store.save(appointment)

        logger.info("Appointment booked: id={}, code={}", saved.id, saved.confirmation_code)
        return to_confirmation(saved)

    async def list_appointments(self) -> list[AppointmentView]:
        async with self._storage_errors("list appointments"):
            appointments = await self._store.find_all()
        return [to_view(a) for a in appointments]

    async def get_appointment(self, appointment_id: int) -> AppointmentView:
        async with self._storage_errors("get appointment"):
            appointment = self._require(await self._store.find_by_id(appointment_id), appointment_id)
        return to_view(appointment)

    async def update_appointment(
        self, appointment_id: int, request: AppointmentRequest
    ) -> AppointmentView:
        date, start_time, end_time = self._validate_structure(request)
        logger.info("Updating appointment: id={}", appointment_id)

        async with self._unit_of_work("update appointment"):
            existing = self._require(await self._store.find_by_id(appointment_id), appointment_id)
            await self._validator.validate(
                date, start_time, end_time, exclude_id=appointment_id
            )
            updated = await self._store.save(apply_request(existing, request, now=self._clock()))

        return to_view(updated)

    async def delete_appointment(self, appointment_id: int) -> None:
        async with self._unit_of_work("delete appointment"):
            appointment = self._require(await self._store.find_by_id(appointment_id), appointment_id)
            await self._store.delete(appointment)
        logger.info("Appointment deleted: id={}", appointment_id)

    async def get_by_confirmation_code(self, code: str) -> AppointmentView:
        async with self._storage_errors("find by confirmation code"):
            appointment = self._require(await self._store.find_by_confirmation_code(code), code)
        return to_view(appointment)

    async def list_by_email(self, email: str) -> list[AppointmentView]:
        async with self._storage_errors("list by email"):
            appointments = await self._store.find_by_email(email)
        return [to_view(a) for a in appointments]

    async def list_by_state(self, state: AppointmentState) -> list[AppointmentView]:
        async with self._storage_errors("list by state"):
            appointments = await self._store.find_by_state(state)
        return [to_view(a) for a in appointments]

    async def list_by_date(self, date: dt.date) -> list[AppointmentView]:
        async with self._storage_errors("list by date"):
            appointments = await self._store.find_by_date(date)
        return [to_view(a) for a in appointments]

    async def get_availability(self, date: dt.date) -> Availability:
        async with self._storage_errors("get availability"):
            active = await self._store.find_active_by_date(date)
        availability = compute_availability(date, active, self._schedule)
        logger.info("Availability for {}: {} slot(s) free", date, availability.count_available)
        return availability

    async def confirm_appointment(self, appointment_id: int) -> AppointmentView:
        return await self._transition(appointment_id, Trigger.CONFIRM)

    async def cancel_appointment(self, appointment_id: int) -> AppointmentView:
        return await self._transition(appointment_id, Trigger.CANCEL)

    async def complete_appointment(self, appointment_id: int) -> AppointmentView:
        return await self._transition(appointment_id, Trigger.COMPLETE)

    async def close(self) -> None:
        await self._store.close()

    async def _transition(self, appointment_id: int, trigger: Trigger) -> AppointmentView:
        async with self._unit_of_work(f"{trigger.value} appointment"):
            appointment = self._require(await self._store.find_by_id(appointment_id), appointment_id)
            target = next_state(appointment.state, trigger)
            updated = await self._store.save(
                appointment.model_copy(update={"state": target, "updated_at": self._clock()})
            )

        logger.info(
            "Appointment {} moved {} -> {}", appointment_id, appointment.state.value, target.value
        )
        return to_view(updated)

    async def _new_code(self) -> str:
        return await generate_confirmation_code(
            self._store.exists_by_confirmation_code,
            self._token_source,
            prefix=self._schedule.code_prefix,
            length=self._schedule.code_length,
        )

    def _validate_structure(
        self, request: AppointmentRequest
    ) -> tuple[dt.date, dt.time, dt.time]:
        """Raise on field errors; otherwise return the now-guaranteed date and times."""
        errors = validate_request(request, today=self._clock().date())
        if errors:
            logger.info("Rejected request with {} field error(s)", len(errors))
            raise ValidationFailedError(errors)
        return cast(
            tuple[dt.date, dt.time, dt.time], (request.date, request.start_time, request.end_time)
        )

    @staticmethod
    def _require(appointment: Appointment | None, lookup: int | str) -> Appointment:
        if appointment is None:
            raise AppointmentNotFoundError(lookup)
        return appointment

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncIterator[None]:
        """One storage transaction spanning the checks and the write."""
        async with self._storage_errors(operation):
            async with self._store.transaction():
                yield

    @asynccontextmanager
    async def _storage_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except BookingError:
            raise
        except Exception as exc:
            raise StorageUnavailableError(f"Failed to {operation}: {exc}") from exc
