from sqlalchemy import Column, Integer, ForeignKey, DateTime, Index, text, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import timedelta
import enum

from ..core.config import settings
from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

# Statuses that hold a doctor's slot
ACTIVE_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED)

# Enum columns store member names
_ACTIVE_STATUS_CLAUSE = text("status IN ('SCHEDULED', 'COMPLETED')")

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)

    # Appointment details
    start_time = Column(DateTime, nullable=False, index=True)
    status = Column(SQLEnum(AppointmentStatus), nullable=False, default=AppointmentStatus.SCHEDULED)

    # Tracking
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index(
            "uq_appointments_doctor_start_active",
            "doctor_id",
            "start_time",
            unique=True,
            postgresql_where=_ACTIVE_STATUS_CLAUSE,
            sqlite_where=_ACTIVE_STATUS_CLAUSE,
        ),
    )

    @property
    def end_time(self):
        if self.start_time is None:
            return None
        return self.start_time + timedelta(minutes=settings.APPOINTMENT_DURATION_MINUTES)

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, start='{self.start_time}', status='{self.status}')>"
