from typing import Optional
from sqlalchemy.orm import Session

from ..core.exceptions import UnauthorizedError
from ..core.security import Claims, Role
from ..models.doctor import Doctor
from ..models.patient import Patient
from .directory import get_doctor_by_identity, get_patient_by_identity


class AuthorizationGuard:
    """Role and ownership checks for scheduling operations.

    Every failure raises the same UnauthorizedError, whether the token was
    missing, carried another role, or belongs to someone else.
    """

    def __init__(self, db: Session):
        self.db = db

    def authorize(
        self,
        claims: Optional[Claims],
        required_role: Role,
        owner_patient_id: Optional[int] = None
    ) -> Claims:
        if claims is None or claims.role != required_role:
            raise UnauthorizedError()

        if owner_patient_id is not None:
            patient = self.resolve_patient(claims)
            if patient.id != owner_patient_id:
                raise UnauthorizedError()

        return claims

    def resolve_patient(self, claims: Claims) -> Patient:
        patient = get_patient_by_identity(self.db, claims.identifier)
        if patient is None:
            raise UnauthorizedError()
        return patient

    def resolve_doctor(self, claims: Claims) -> Doctor:
        doctor = get_doctor_by_identity(self.db, claims.identifier)
        if doctor is None:
            raise UnauthorizedError()
        return doctor
