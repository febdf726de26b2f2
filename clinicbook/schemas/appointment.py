from pydantic import BaseModel, ConfigDict
from datetime import date, datetime
from typing import List, Optional, Union

from ..models.appointment import AppointmentStatus

class AppointmentCreate(BaseModel):
    doctor_id: int
    start_time: datetime

class AppointmentUpdate(BaseModel):
    doctor_id: int
    start_time: datetime
    status: Optional[Union[AppointmentStatus, int, str]] = None

class StatusChange(BaseModel):
    status: Union[AppointmentStatus, int, str]

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    patient_id: int
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus

class DoctorAppointmentsResponse(BaseModel):
    appointments: List[AppointmentResponse]
    count: int
    date: date
    doctor_id: int

class PatientAppointmentsResponse(BaseModel):
    appointments: List[AppointmentResponse]
    count: int

class AvailabilityResponse(BaseModel):
    doctor_id: int
    date: date
    slots: List[str]
