from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Union
from zoneinfo import ZoneInfo
import logging

from ..core.config import settings
from ..core.exceptions import (
    CancellationWindowExpiredError, ImmutableError, InternalError,
    InvalidArgumentError, InvalidTransitionError, NotFoundError,
    SlotUnavailableError, UnauthorizedError
)
from ..core.security import Claims, Role
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..models.patient import Patient
from . import availability, status_machine
from .authorization import AuthorizationGuard
from .conflict_guard import is_available

logger = logging.getLogger(__name__)

# Patient-facing history filters
CONDITION_STATUSES = {
    "past": AppointmentStatus.COMPLETED,
    "future": AppointmentStatus.SCHEDULED,
}

# Outcomes only the treating doctor records
DOCTOR_ONLY_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW)

def clinic_now() -> datetime:
    """Current wall-clock time in the clinic's timezone, naive."""
    return datetime.now(ZoneInfo(settings.CLINIC_TIMEZONE)).replace(tzinfo=None)

def to_clinic_time(value: Union[datetime, str]) -> datetime:
    """Coerce a start time into a naive clinic-local datetime."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidArgumentError(f"Invalid date/time: {value!r}") from exc
    if not isinstance(value, datetime):
        raise InvalidArgumentError(f"Invalid date/time: {value!r}")
    if value.tzinfo is not None:
        value = value.astimezone(ZoneInfo(settings.CLINIC_TIMEZONE)).replace(tzinfo=None)
    return value

class BookingService:
    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or clinic_now
        self.guard = AuthorizationGuard(db)

    def free_slots(self, doctor_id: int, day: Union[date, str]) -> List[str]:
        """Remaining slot labels of a doctor on a day."""
        return availability.free_slots(self.db, doctor_id, day)

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).first()

        if not appointment:
            raise NotFoundError("Appointment not found")

        return appointment

    def book(
        self,
        claims: Optional[Claims],
        doctor_id: int,
        start_time: Union[datetime, str]
    ) -> Appointment:
        """Book ``doctor_id`` at ``start_time`` for the calling patient."""
        self.guard.authorize(claims, Role.PATIENT)
        patient = self.guard.resolve_patient(claims)

        start_time = to_clinic_time(start_time)
        self._require_future(start_time)

        if not is_available(self.db, doctor_id, start_time):
            logger.warning(f"Slot taken: doctor={doctor_id} start={start_time}")
            raise SlotUnavailableError()

        appointment = Appointment(
            doctor_id=doctor_id,
            patient_id=patient.id,
            start_time=start_time,
            status=AppointmentStatus.SCHEDULED
        )

        self.db.add(appointment)
        self._commit()
        self.db.refresh(appointment)

        logger.info(
            f"Appointment {appointment.id} booked: doctor={doctor_id} "
            f"patient={patient.id} start={start_time}"
        )
        return appointment

    def update(
        self,
        appointment_id: int,
        claims: Optional[Claims],
        new_doctor_id: int,
        new_start_time: Union[datetime, str],
        new_status: Optional[Union[AppointmentStatus, str, int]] = None
    ) -> Appointment:
        """Move an appointment and/or change its status on behalf of its owner.

        ``new_status`` of None keeps the stored status. Patients may only
        cancel through this path, and only inside the cancellation window.
        """
        self.guard.authorize(claims, Role.PATIENT)
        caller = self.guard.resolve_patient(claims)

        appointment = self.get_appointment(appointment_id)

        if appointment.patient_id != caller.id:
            raise UnauthorizedError()

        if appointment.status == AppointmentStatus.COMPLETED:
            raise ImmutableError()

        new_start_time = to_clinic_time(new_start_time)
        if new_status is None:
            new_status = appointment.status
        else:
            new_status = status_machine.parse_status(new_status)

        time_changed = new_start_time != appointment.start_time
        if time_changed:
            self._require_future(new_start_time)

        if time_changed or new_doctor_id != appointment.doctor_id:
            if not is_available(
                self.db, new_doctor_id, new_start_time,
                exclude_appointment_id=appointment.id
            ):
                logger.warning(
                    f"Slot taken on update of appointment {appointment.id}: "
                    f"doctor={new_doctor_id} start={new_start_time}"
                )
                raise SlotUnavailableError()

        if new_status != appointment.status:
            if new_status in DOCTOR_ONLY_STATUSES:
                raise InvalidTransitionError(
                    f"Only the doctor can mark an appointment as {new_status.value}"
                )
            if new_status == AppointmentStatus.CANCELLED:
                self._require_cancellable(appointment)
            status_machine.transition(appointment, new_status)

        appointment.doctor_id = new_doctor_id
        appointment.start_time = new_start_time

        self._commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} updated by patient {caller.id}")
        return appointment

    def cancel(self, appointment_id: int, claims: Optional[Claims]) -> Appointment:
        """Cancel an appointment; the row is kept with status CANCELLED."""
        self.guard.authorize(claims, Role.PATIENT)

        appointment = self.get_appointment(appointment_id)
        self.guard.authorize(claims, Role.PATIENT, owner_patient_id=appointment.patient_id)

        self._require_cancellable(appointment)
        status_machine.transition(appointment, AppointmentStatus.CANCELLED)

        self._commit()
        self.db.refresh(appointment)

        logger.info(f"Appointment {appointment.id} cancelled")
        return appointment

    def change_status(
        self,
        appointment_id: int,
        new_status: Union[AppointmentStatus, str, int],
        claims: Optional[Claims]
    ) -> Appointment:
        """Doctor-side status change, validated by the status machine only."""
        self.guard.authorize(claims, Role.DOCTOR)

        appointment = self.get_appointment(appointment_id)
        new_status = status_machine.parse_status(new_status)

        previous = appointment.status
        status_machine.transition(appointment, new_status)

        self._commit()
        self.db.refresh(appointment)

        logger.info(
            f"Appointment {appointment.id} status {previous.value} -> {new_status.value}"
        )
        return appointment

    def list_for_doctor(
        self,
        doctor_id: int,
        day: Union[date, str],
        patient_name: Optional[str] = None
    ) -> List[Appointment]:
        """Appointments of a doctor within one day, optionally by patient name."""
        start_of_day, end_of_day = availability.day_bounds(availability.parse_date(day))

        query = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.start_time >= start_of_day,
            Appointment.start_time < end_of_day
        )

        if patient_name and patient_name.strip():
            query = query.join(Patient, Appointment.patient_id == Patient.id).filter(
                func.lower(Patient.name).contains(patient_name.strip().lower(), autoescape=True)
            )

        return query.order_by(Appointment.start_time).all()

    def list_for_patient(
        self,
        claims: Optional[Claims],
        condition: Optional[str] = None,
        doctor_name: Optional[str] = None
    ) -> List[Appointment]:
        """The caller's own appointments, filtered by condition and doctor name."""
        self.guard.authorize(claims, Role.PATIENT)
        patient = self.guard.resolve_patient(claims)

        query = self.db.query(Appointment).filter(Appointment.patient_id == patient.id)

        if condition:
            wanted = CONDITION_STATUSES.get(condition.strip().lower())
            if wanted is None:
                raise InvalidArgumentError("Invalid condition. Use 'past' or 'future'")
            query = query.filter(Appointment.status == wanted)

        if doctor_name and doctor_name.strip():
            query = query.join(Doctor, Appointment.doctor_id == Doctor.id).filter(
                func.lower(Doctor.name).contains(doctor_name.strip().lower(), autoescape=True)
            )

        return query.order_by(Appointment.start_time).all()

    def _require_future(self, start_time: datetime):
        if start_time <= self.clock():
            raise InvalidArgumentError("Appointment time must be in the future")

    def _require_cancellable(self, appointment: Appointment):
        lead_time = timedelta(hours=settings.CANCELLATION_LEAD_HOURS)
        if self.clock() + lead_time > appointment.start_time:
            raise CancellationWindowExpiredError(
                f"Appointments can only be cancelled at least "
                f"{settings.CANCELLATION_LEAD_HOURS} hours before they start"
            )

    def _commit(self):
        """Commit the unit of work, translating storage failures."""
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(f"Booking constraint violated: {exc.orig}")
            raise SlotUnavailableError() from exc
        except StaleDataError as exc:
            self.db.rollback()
            logger.warning("Appointment changed by a concurrent request")
            raise InvalidTransitionError(
                "Appointment was modified by a concurrent request"
            ) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Failed to save appointment: {str(exc)}")
            raise InternalError("Failed to save appointment") from exc
