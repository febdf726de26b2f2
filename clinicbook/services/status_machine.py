"""
Appointment status lifecycle.

SCHEDULED is the only state with outgoing edges; COMPLETED, CANCELLED and
NO_SHOW are terminal. Requests naming the current status are rejected too.
"""
from typing import Union

from ..core.exceptions import InvalidArgumentError, InvalidTransitionError
from ..models.appointment import Appointment, AppointmentStatus

TRANSITIONS = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

# Integer codes used by older clients
_LEGACY_CODES = {
    0: AppointmentStatus.SCHEDULED,
    1: AppointmentStatus.COMPLETED,
    2: AppointmentStatus.CANCELLED,
    3: AppointmentStatus.NO_SHOW,
}


def parse_status(value: Union[AppointmentStatus, str, int]) -> AppointmentStatus:
    """Accept an enum member, its name, its value or a legacy integer code."""
    if isinstance(value, AppointmentStatus):
        return value
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Unknown appointment status: {value!r}")
    if isinstance(value, int):
        if value in _LEGACY_CODES:
            return _LEGACY_CODES[value]
        raise InvalidArgumentError(f"Unknown appointment status: {value!r}")
    if isinstance(value, str):
        normalized = value.strip()
        if normalized.isdigit():
            return parse_status(int(normalized))
        try:
            return AppointmentStatus(normalized.lower())
        except ValueError:
            pass
        try:
            return AppointmentStatus[normalized.upper()]
        except KeyError:
            pass
    raise InvalidArgumentError(f"Unknown appointment status: {value!r}")


def is_terminal(current: AppointmentStatus) -> bool:
    return not TRANSITIONS[current]


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in TRANSITIONS[current]


def transition(appointment: Appointment, target: AppointmentStatus) -> Appointment:
    """Move ``appointment`` to ``target`` or raise without touching it."""
    current = appointment.status
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change appointment status from {current.value} to {target.value}"
        )
    appointment.status = target
    return appointment
