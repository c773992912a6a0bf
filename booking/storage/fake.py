from booking.domain.models import Appointment
from booking.storage.memory import InMemoryAppointmentStore


class FakeAppointmentStore(InMemoryAppointmentStore):
    """In-memory test double for the AppointmentStoreProtocol protocol.

    Pre-load records with ``seed`` to control what the store returns. Set
    ``save_error`` or ``read_error`` to make the corresponding calls raise.

    After calls, inspect ``saved`` and ``deleted`` to verify what was
    written, and ``transactions`` for how many units of work were opened.
    """

    def __init__(self) -> None:
        super().__init__()
        self.saved: list[Appointment] = []
        self.deleted: list[Appointment] = []
        self.transactions: int = 0
        self.closed: bool = False

        self.save_error: Exception | None = None
        self.read_error: Exception | None = None

    def seed(self, *appointments: Appointment) -> list[Appointment]:
        """Store records directly, bypassing error injection and call recording."""
        stored = []
        for appointment in appointments:
            if appointment.id is None:
                appointment = appointment.model_copy(update={"id": next(self._ids)})
            self._rows[appointment.id] = appointment
            stored.append(appointment)
        return stored

    def transaction(self):  # type: ignore[override]
        self.transactions += 1
        return super().transaction()

    async def save(self, appointment: Appointment) -> Appointment:
        if self.save_error:
            raise self.save_error
        stored = await super().save(appointment)
        self.saved.append(stored)
        return stored

    async def find_by_id(self, appointment_id: int) -> Appointment | None:
        if self.read_error:
            raise self.read_error
        return await super().find_by_id(appointment_id)

    async def find_overlapping(self, date, start_time, end_time):  # type: ignore[no-untyped-def]
        if self.read_error:
            raise self.read_error
        return await super().find_overlapping(date, start_time, end_time)

    async def delete(self, appointment: Appointment) -> None:
        self.deleted.append(appointment)
        await super().delete(appointment)

    async def close(self) -> None:
        self.closed = True
