import asyncio
import datetime as dt
import itertools
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from booking.domain.models import Appointment, AppointmentState
from booking.scheduling.time_slots import overlaps


class InMemoryAppointmentStore:
    """Process-local appointment storage.

    ``transaction()`` holds one lock for the whole store, so a booking's
    overlap check and its insert cannot interleave with another booking.
    """

    def __init__(self) -> None:
        self._rows: dict[int, Appointment] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    async def save(self, appointment: Appointment) -> Appointment:
        if appointment.id is None:
            appointment = appointment.model_copy(update={"id": next(self._ids)})
        self._rows[appointment.id] = appointment
        return appointment

    async def find_all(self) -> list[Appointment]:
        return sorted(self._rows.values(), key=lambda a: a.id or 0)

    async def find_by_id(self, appointment_id: int) -> Appointment | None:
        return self._rows.get(appointment_id)

    async def find_by_confirmation_code(self, code: str) -> Appointment | None:
        return next((a for a in self._rows.values() if a.confirmation_code == code), None)

    async def exists_by_confirmation_code(self, code: str) -> bool:
        return await self.find_by_confirmation_code(code) is not None

    async def delete(self, appointment: Appointment) -> None:
        if appointment.id is not None:
            self._rows.pop(appointment.id, None)

    async def find_by_email(self, email: str) -> list[Appointment]:
        matches = [a for a in self._rows.values() if a.email == email]
        return sorted(matches, key=lambda a: (a.date, a.start_time), reverse=True)

    async def find_by_state(self, state: AppointmentState) -> list[Appointment]:
        matches = [a for a in self._rows.values() if a.state == state]
        return sorted(matches, key=lambda a: (a.date, a.start_time))

    async def find_by_date(self, date: dt.date) -> list[Appointment]:
        matches = [a for a in self._rows.values() if a.date == date]
        return sorted(matches, key=lambda a: a.start_time)

    async def find_overlapping(
        self, date: dt.date, start_time: dt.time, end_time: dt.time
    ) -> list[Appointment]:
        return [
            a
            for a in await self.find_active_by_date(date)
            if overlaps(a.start_time, a.end_time, start_time, end_time)
        ]

    async def find_active_by_date(self, date: dt.date) -> list[Appointment]:
        return [a for a in await self.find_by_date(date) if a.is_active]

    async def close(self) -> None:
        self._rows.clear()
