from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union
from sqlalchemy.orm import Session

from ..core.exceptions import InvalidArgumentError
from ..models.appointment import Appointment, ACTIVE_STATUSES
from .directory import get_doctor


def parse_date(value: Union[date, str]) -> date:
    """Parse a ``YYYY-MM-DD`` day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise InvalidArgumentError(f"Invalid date: {value!r}. Expected YYYY-MM-DD") from exc


def day_bounds(day: date):
    """Half-open ``[day 00:00, day+1 00:00)`` range."""
    start_of_day = datetime.combine(day, time.min)
    return start_of_day, start_of_day + timedelta(days=1)


def slot_start(label: str) -> Optional[time]:
    """Leading time-of-day of a label such as ``"09:00-10:00"``."""
    head = label.split("-", 1)[0].strip()
    try:
        return time.fromisoformat(head)
    except ValueError:
        return None


def free_slots(db: Session, doctor_id: int, day: Union[date, str]) -> List[str]:
    """Slot labels of ``doctor_id`` still free on ``day``, in configured order.

    Unknown doctors get an empty list rather than an error.
    """
    day = parse_date(day)

    doctor = get_doctor(db, doctor_id)
    if doctor is None or not doctor.slot_labels:
        return []

    start_of_day, end_of_day = day_bounds(day)
    booked_times = {
        start_time.time()
        for (start_time,) in db.query(Appointment.start_time).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.start_time >= start_of_day,
            Appointment.start_time < end_of_day,
            Appointment.status.in_(ACTIVE_STATUSES)
        )
    }

    slots = []
    seen = set()
    for label in doctor.slot_labels:
        if label in seen:
            continue
        seen.add(label)
        if slot_start(label) in booked_times:
            continue
        slots.append(label)
    return slots
