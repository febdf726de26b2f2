from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from ...api.deps import get_claims, get_booking_service, rate_limit_check
from ...core.security import Claims, Role
from ...services.availability import parse_date
from ...services.booking_service import BookingService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentUpdate, StatusChange, AppointmentResponse,
    AvailabilityResponse, DoctorAppointmentsResponse, PatientAppointmentsResponse
)

router = APIRouter(tags=["Appointments"])

@router.get("/doctors/{doctor_id}/availability", response_model=AvailabilityResponse)
async def doctor_availability(
    doctor_id: int,
    date: str = Query(..., description="Day in YYYY-MM-DD format"),
    service: BookingService = Depends(get_booking_service)
):
    """Free slots of a doctor on a given day."""
    slots = service.free_slots(doctor_id, date)
    return AvailabilityResponse(doctor_id=doctor_id, date=parse_date(date), slots=slots)

@router.post(
    "/appointments",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED
)
async def book_appointment(
    booking: AppointmentCreate,
    claims: Optional[Claims] = Depends(get_claims),
    service: BookingService = Depends(get_booking_service),
    _: None = Depends(rate_limit_check)
):
    """Book an appointment for the calling patient."""
    appointment = service.book(claims, booking.doctor_id, booking.start_time)
    return AppointmentResponse.model_validate(appointment)

@router.get("/appointments", response_model=DoctorAppointmentsResponse)
async def list_doctor_appointments(
    date: str = Query(..., description="Day in YYYY-MM-DD format"),
    patient_name: Optional[str] = None,
    claims: Optional[Claims] = Depends(get_claims),
    service: BookingService = Depends(get_booking_service)
):
    """The calling doctor's appointments for a day."""
    service.guard.authorize(claims, Role.DOCTOR)
    doctor = service.guard.resolve_doctor(claims)

    appointments = service.list_for_doctor(doctor.id, date, patient_name)
    return DoctorAppointmentsResponse(
        appointments=[AppointmentResponse.model_validate(a) for a in appointments],
        count=len(appointments),
        date=parse_date(date),
        doctor_id=doctor.id
    )

@router.get("/appointments/mine", response_model=PatientAppointmentsResponse)
async def list_my_appointments(
    condition: Optional[str] = None,
    doctor_name: Optional[str] = None,
    claims: Optional[Claims] = Depends(get_claims),
    service: BookingService = Depends(get_booking_service)
):
    """The calling patient's appointments."""
    appointments = service.list_for_patient(claims, condition, doctor_name)
    return PatientAppointmentsResponse(
        appointments=[AppointmentResponse.model_validate(a) for a in appointments],
        count=len(appointments)
    )

@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    claims: Optional[Claims] = Depends(get_claims),
    service: BookingService = Depends(get_booking_service)
):
    """Single appointment, visible to its patient or any doctor."""
    if claims is not None and claims.role == Role.DOCTOR:
        service.guard.authorize(claims, Role.DOCTOR)
        return AppointmentResponse.model_validate(service.get_appointment(appointment_id))

    service.guard.authorize(claims, Role.PATIENT)
    appointment = service.get_appointment(appointment_id)
    service.guard.authorize(claims, Role.PATIENT, owner_patient_id=appointment.patient_id)
    return AppointmentResponse.model_validate(appointment)

@router.put("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    changes: AppointmentUpdate,
    claims: Optional[Claims] = Depends(get_claims),
    service: BookingService = Depends(get_booking_service)
):
    """Reschedule or change the status of one's own appointment."""
    appointment = service.update(
        appointment_id, claims, changes.doctor_id, changes.start_time, changes.status
    )
    return AppointmentResponse.model_validate(appointment)

@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    claims: Optional[Claims] = Depends(get_claims),
    service: BookingService = Depends(get_booking_service)
):
    """Cancel one's own appointment."""
    appointment = service.cancel(appointment_id, claims)
    return AppointmentResponse.model_validate(appointment)

@router.put("/appointments/{appointment_id}/status", response_model=AppointmentResponse)
async def change_appointment_status(
    appointment_id: int,
    change: StatusChange,
    claims: Optional[Claims] = Depends(get_claims),
    service: BookingService = Depends(get_booking_service)
):
    """Doctor-side status change."""
    appointment = service.change_status(appointment_id, change.status, claims)
    return AppointmentResponse.model_validate(appointment)
