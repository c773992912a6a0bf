import datetime as dt
from collections.abc import Iterable, Iterator

from booking.config import ScheduleConfig
from booking.domain.models import Appointment, Availability
from booking.scheduling.time_slots import add_minutes, format_range, minutes_between, overlaps


def generate_slots(schedule: ScheduleConfig) -> Iterator[tuple[dt.time, dt.time]]:
    """Yield the fixed ``[start, start + slot)`` subdivisions of the business day.

    A trailing remainder shorter than one slot is not reported.
    """
    day_minutes = minutes_between(schedule.opening_time, schedule.closing_time)
    for offset in range(0, day_minutes - schedule.slot_minutes + 1, schedule.slot_minutes):
        start = add_minutes(schedule.opening_time, offset)
        yield start, add_minutes(start, schedule.slot_minutes)


def compute_availability(
    date: dt.date,
    active_appointments: Iterable[Appointment],
    schedule: ScheduleConfig,
) -> Availability:
    """Partition ``date`` into available and occupied slots.

    ``occupied_slots`` reports each active appointment's own range verbatim,
    in the order supplied; appointments are not re-sliced into slots.
    Cancelled and completed appointments are ignored.
    """
    active = [a for a in active_appointments if a.is_active]

    all_slots: list[str] = []
    available_slots: list[str] = []
    for slot_start, slot_end in generate_slots(schedule):
        label = format_range(slot_start, slot_end)
        all_slots.append(label)
        if not any(overlaps(slot_start, slot_end, a.start_time, a.end_time) for a in active):
            available_slots.append(label)

    return Availability(
        date=date,
        all_slots=all_slots,
        occupied_slots=[format_range(a.start_time, a.end_time) for a in active],
        available_slots=available_slots,
        count_available=len(available_slots),
    )
