from typing import Callable

from loguru import logger

from booking.config import AppConfig, StorageBackend
from booking.ports import AppointmentStoreProtocol
from booking.service import BookingService
from booking.storage.memory import InMemoryAppointmentStore
from booking.storage.sqlite import SQLiteAppointmentStore


def _build_memory(config: AppConfig) -> AppointmentStoreProtocol:
    return InMemoryAppointmentStore()


def _build_sqlite(config: AppConfig) -> AppointmentStoreProtocol:
    store = SQLiteAppointmentStore(config.storage.sqlite_path)
    store.init_schema()
    return store


_BUILDERS: dict[StorageBackend, Callable[[AppConfig], AppointmentStoreProtocol]] = {
    StorageBackend.MEMORY: _build_memory,
    StorageBackend.SQLITE: _build_sqlite,
}


def build_booking_service(config: AppConfig) -> BookingService:
    """Build the booking service on the storage backend named in config."""
    backend = config.storage.backend
    logger.info("Building booking service with storage backend: {}", backend.value)
    return BookingService(_BUILDERS[backend](config), schedule=config.schedule)
