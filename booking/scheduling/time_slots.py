import datetime as dt
from zoneinfo import ZoneInfo

from loguru import logger

_RANGE_SEPARATOR = " - "


def format_range(start: dt.time, end: dt.time) -> str:
    """Format ``time(9, 0), time(9, 30)`` → ``09:00 - 09:30``."""
    return f"{start:%H:%M}{_RANGE_SEPARATOR}{end:%H:%M}"


def parse_range(text: str) -> tuple[dt.time, dt.time]:
    """Parse ``09:00 - 09:30`` back into a ``(start, end)`` pair.

    Raises:
        ValueError: If ``text`` is not two ``HH:MM`` times joined by `` - ``.
    """
    parts = text.split(_RANGE_SEPARATOR)
    if len(parts) != 2:
        raise ValueError(f"Invalid time range: '{text}'. Expected 'HH:MM - HH:MM'.")
    start, end = (dt.datetime.strptime(part, "%H:%M").time() for part in parts)
    return start, end


def overlaps(a_start: dt.time, a_end: dt.time, b_start: dt.time, b_end: dt.time) -> bool:
    """Half-open interval intersection: touching endpoints do not overlap."""
    return a_start < b_end and b_start < a_end


def minutes_between(start: dt.time, end: dt.time) -> int:
    """Signed number of whole minutes from ``start`` to ``end`` on the same day."""
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def add_minutes(time: dt.time, minutes: int) -> dt.time:
    """Shift a wall-clock time, without wrapping past midnight."""
    shifted = dt.datetime.combine(dt.date.min, time) + dt.timedelta(minutes=minutes)
    if shifted.date() != dt.date.min:
        raise ValueError(f"{time:%H:%M} + {minutes} minutes crosses midnight")
    return shifted.time()


def resolve_timezone(name: str) -> dt.tzinfo:
    """Resolve a timezone name, falling back to UTC if invalid."""
    try:
        return ZoneInfo(name)
    except Exception:
        logger.warning("Invalid facility timezone '{}'; defaulting to UTC", name)
        return dt.timezone.utc
