from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from ..models.appointment import Appointment, ACTIVE_STATUSES
from .directory import get_doctor


def is_available(
    db: Session,
    doctor_id: int,
    start_time: datetime,
    exclude_appointment_id: Optional[int] = None
) -> bool:
    """Check whether ``doctor_id`` can take an appointment at ``start_time``.

    Conflicts are exact start-time matches against scheduled or completed
    appointments. This is a pre-check only: the partial unique index on
    ``appointments`` decides races between concurrent writers.
    """
    if get_doctor(db, doctor_id) is None:
        return False

    query = db.query(Appointment.id).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.start_time == start_time,
        Appointment.status.in_(ACTIVE_STATUSES)
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return query.first() is None
