from enum import Enum

from booking.domain.exceptions import InvalidStateTransitionError
from booking.domain.models import AppointmentState


class Trigger(str, Enum):
    """Lifecycle operations a caller can request on an appointment."""

    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"


INITIAL_STATE = AppointmentState.PENDING

_TRANSITIONS: dict[tuple[AppointmentState, Trigger], AppointmentState] = {
    (AppointmentState.PENDING, Trigger.CONFIRM): AppointmentState.CONFIRMED,
    (AppointmentState.PENDING, Trigger.CANCEL): AppointmentState.CANCELLED,
    (AppointmentState.CONFIRMED, Trigger.CANCEL): AppointmentState.CANCELLED,
    (AppointmentState.CONFIRMED, Trigger.COMPLETE): AppointmentState.COMPLETED,
}


def next_state(current: AppointmentState, trigger: Trigger) -> AppointmentState:
    """Return the state ``trigger`` moves an appointment to from ``current``.

    Raises:
        InvalidStateTransitionError: If the pair is not in the transition table.
            The error lists the triggers that are legal from ``current``.
    """
    try:
        return _TRANSITIONS[(current, trigger)]
    except KeyError:
        allowed = [t.value for t in allowed_triggers(current)]
        raise InvalidStateTransitionError(trigger.value, current, allowed) from None


def allowed_triggers(current: AppointmentState) -> list[Trigger]:
    return [trigger for (state, trigger) in _TRANSITIONS if state == current]
