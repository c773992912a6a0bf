import datetime as dt
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageBackend(Enum):
    MEMORY = "memory"
    SQLITE = "sqlite"


class ScheduleConfig(BaseSettings):
    """Business rules of the single shared facility calendar."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULE_", env_file=".env", extra="ignore")

    opening_time: dt.time = dt.time(8, 0)
    closing_time: dt.time = dt.time(20, 0)
    slot_minutes: int = Field(default=30, gt=0)
    min_duration_minutes: int = 15
    max_duration_minutes: int = 480
    min_advance_hours: int = 2
    facility_timezone: str | None = None
    code_prefix: str = "APT-"
    code_length: int = Field(default=4, gt=0, le=32)


class StorageConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STORAGE_", env_file=".env", extra="ignore")

    backend: StorageBackend = StorageBackend.MEMORY
    sqlite_path: str = "bookings.db"


class ApiConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="API_", env_file=".env", extra="ignore")

    title: str = "Appointment Booking API"
    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    schedule: ScheduleConfig = Field(default_factory=lambda: ScheduleConfig())
    storage: StorageConfig = Field(default_factory=lambda: StorageConfig())
    api: ApiConfig = Field(default_factory=lambda: ApiConfig())
