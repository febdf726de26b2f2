"""Doctor and patient lookups used by the scheduling services."""
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.doctor import Doctor
from ..models.patient import Patient


def get_doctor(db: Session, doctor_id: int) -> Optional[Doctor]:
    return db.query(Doctor).filter(Doctor.id == doctor_id).first()


def get_doctor_by_identity(db: Session, identifier: str) -> Optional[Doctor]:
    return db.query(Doctor).filter(
        func.lower(Doctor.email) == identifier.strip().lower()
    ).first()


def get_patient_by_identity(db: Session, identifier: str) -> Optional[Patient]:
    return db.query(Patient).filter(
        func.lower(Patient.email) == identifier.strip().lower()
    ).first()
