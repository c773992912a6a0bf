"""SQLite storage for appointments.

One table; times are stored as ``HH:MM`` text and dates as ISO text so that
lexical order matches chronological order.
"""

import asyncio
import datetime as dt
import sqlite3
from collections.abc import AsyncIterator, Callable
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from decimal import Decimal
from functools import partial
from typing import Any, TypeVar

from loguru import logger

from booking.domain.models import ACTIVE_STATES, Appointment, AppointmentState

_SCHEMA = """
CREATE TABLE IF NOT EXISTS appointments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    confirmation_code TEXT NOT NULL UNIQUE,
    customer_name TEXT NOT NULL,
    email TEXT NOT NULL,
    phone TEXT NOT NULL,
    service TEXT NOT NULL,
    price TEXT NOT NULL,
    notes TEXT,
    date TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    state TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_appointments_date_start
    ON appointments(date, start_time);
CREATE INDEX IF NOT EXISTS idx_appointments_email
    ON appointments(email);
"""

_COLUMNS = (
    "confirmation_code",
    "customer_name",
    "email",
    "phone",
    "service",
    "price",
    "notes",
    "date",
    "start_time",
    "end_time",
    "state",
    "created_at",
    "updated_at",
)

_ACTIVE = tuple(state.value for state in ACTIVE_STATES)

T = TypeVar("T")


class SQLiteAppointmentStore:
    """Appointment storage backed by a single SQLite file (or ``:memory:``).

    Every statement runs on one dedicated worker thread, so the event loop
    never blocks on disk I/O and the connection is never used concurrently.
    """

    def __init__(self, db_path: str = "bookings.db") -> None:
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = asyncio.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sqlite-store")

    def init_schema(self) -> None:
        """Create tables if they don't exist."""
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        logger.info("SQLite appointment store ready at {}", self.db_path)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            try:
                yield
            except BaseException:
                await self._run(self._conn.rollback)
                raise
            else:
                await self._run(self._conn.commit)

    async def save(self, appointment: Appointment) -> Appointment:
        return await self._run(self._save, appointment, not self._lock.locked())

    async def find_all(self) -> list[Appointment]:
        return await self._query("SELECT * FROM appointments ORDER BY id")

    async def find_by_id(self, appointment_id: int) -> Appointment | None:
        rows = await self._query("SELECT * FROM appointments WHERE id = ?", (appointment_id,))
        return rows[0] if rows else None

    async def find_by_confirmation_code(self, code: str) -> Appointment | None:
        rows = await self._query(
            "SELECT * FROM appointments WHERE confirmation_code = ?", (code,)
        )
        return rows[0] if rows else None

    async def exists_by_confirmation_code(self, code: str) -> bool:
        row = await self._run(
            lambda: self._conn.execute(
                "SELECT 1 FROM appointments WHERE confirmation_code = ?", (code,)
            ).fetchone()
        )
        return row is not None

    async def delete(self, appointment: Appointment) -> None:
        await self._run(self._delete, appointment.id, not self._lock.locked())

    async def find_by_email(self, email: str) -> list[Appointment]:
        return await self._query(
            "SELECT * FROM appointments WHERE email = ? ORDER BY date DESC, start_time DESC",
            (email,),
        )

    async def find_by_state(self, state: AppointmentState) -> list[Appointment]:
        return await self._query(
            "SELECT * FROM appointments WHERE state = ? ORDER BY date ASC, start_time ASC",
            (state.value,),
        )

    async def find_by_date(self, date: dt.date) -> list[Appointment]:
        return await self._query(
            "SELECT * FROM appointments WHERE date = ? ORDER BY start_time ASC",
            (date.isoformat(),),
        )

    async def find_overlapping(
        self, date: dt.date, start_time: dt.time, end_time: dt.time
    ) -> list[Appointment]:
        return await self._query(
            "SELECT * FROM appointments WHERE date = ? AND state IN (?, ?) "
            "AND start_time < ? AND end_time > ? ORDER BY start_time ASC",
            (date.isoformat(), *_ACTIVE, _fmt_time(end_time), _fmt_time(start_time)),
        )

    async def find_active_by_date(self, date: dt.date) -> list[Appointment]:
        return await self._query(
            "SELECT * FROM appointments WHERE date = ? AND state IN (?, ?) "
            "ORDER BY start_time ASC",
            (date.isoformat(), *_ACTIVE),
        )

    async def close(self) -> None:
        await self._run(self._conn.close)
        self._executor.shutdown(wait=True)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(fn, *args))

    async def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[Appointment]:
        return await self._run(self._fetch, sql, params)

    def _fetch(self, sql: str, params: tuple[Any, ...]) -> list[Appointment]:
        return [_from_row(row) for row in self._conn.execute(sql, params).fetchall()]

    def _save(self, appointment: Appointment, autocommit: bool) -> Appointment:
        values = _to_row(appointment)
        if appointment.id is None:
            placeholders = ", ".join("?" for _ in _COLUMNS)
            cursor = self._conn.execute(
                f"INSERT INTO appointments ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                values,
            )
            appointment = appointment.model_copy(update={"id": cursor.lastrowid})
        else:
            assignments = ", ".join(f"{column} = ?" for column in _COLUMNS)
            self._conn.execute(
                f"UPDATE appointments SET {assignments} WHERE id = ?",
                (*values, appointment.id),
            )
        if autocommit:
            self._conn.commit()
        return appointment

    def _delete(self, appointment_id: int | None, autocommit: bool) -> None:
        self._conn.execute("DELETE FROM appointments WHERE id = ?", (appointment_id,))
        if autocommit:
            self._conn.commit()


def _fmt_time(value: dt.time) -> str:
    return value.strftime("%H:%M")


def _to_row(appointment: Appointment) -> tuple[Any, ...]:
    return (
        appointment.confirmation_code,
        appointment.customer_name,
        appointment.email,
        appointment.phone,
        appointment.service,
        str(appointment.price),
        appointment.notes,
        appointment.date.isoformat(),
        _fmt_time(appointment.start_time),
        _fmt_time(appointment.end_time),
        appointment.state.value,
        appointment.created_at.isoformat(),
        appointment.updated_at.isoformat(),
    )


def _from_row(row: sqlite3.Row) -> Appointment:
    return Appointment(
        id=row["id"],
        confirmation_code=row["confirmation_code"],
        customer_name=row["customer_name"],
        email=row["email"],
        phone=row["phone"],
        service=row["service"],
        price=Decimal(row["price"]),
        notes=row["notes"],
        date=dt.date.fromisoformat(row["date"]),
        start_time=dt.time.fromisoformat(row["start_time"]),
        end_time=dt.time.fromisoformat(row["end_time"]),
        state=AppointmentState(row["state"]),
        created_at=dt.datetime.fromisoformat(row["created_at"]),
        updated_at=dt.datetime.fromisoformat(row["updated_at"]),
    )
