import pytest

from clinicbook.core.exceptions import UnauthorizedError
from clinicbook.core.security import Claims, Role, create_access_token, resolve_claims
from clinicbook.services.authorization import AuthorizationGuard
from datetime import timedelta


class TestAuthorizationGuard:

    def test_matching_role_passes(self, db, patient_claims):
        guard = AuthorizationGuard(db)

        assert guard.authorize(patient_claims, Role.PATIENT) is patient_claims

    def test_missing_claims_are_rejected(self, db, test_db):
        with pytest.raises(UnauthorizedError):
            AuthorizationGuard(db).authorize(None, Role.PATIENT)

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.DOCTOR])
    def test_wrong_role_is_rejected(self, db, patient, role):
        claims = Claims(identifier=patient.email, role=role)

        with pytest.raises(UnauthorizedError):
            AuthorizationGuard(db).authorize(claims, Role.PATIENT)

    def test_owner_passes_ownership_check(self, db, patient, patient_claims):
        guard = AuthorizationGuard(db)

        guard.authorize(patient_claims, Role.PATIENT, owner_patient_id=patient.id)

    def test_non_owner_is_rejected(self, db, patient, other_patient_claims):
        with pytest.raises(UnauthorizedError):
            AuthorizationGuard(db).authorize(
                other_patient_claims, Role.PATIENT, owner_patient_id=patient.id
            )

    def test_unknown_identity_is_rejected_on_ownership(self, db, patient):
        claims = Claims(identifier="ghost@example.com", role=Role.PATIENT)

        with pytest.raises(UnauthorizedError):
            AuthorizationGuard(db).authorize(claims, Role.PATIENT, owner_patient_id=patient.id)

    def test_identity_lookup_ignores_case(self, db, patient):
        claims = Claims(identifier="ALICE@Example.com", role=Role.PATIENT)

        assert AuthorizationGuard(db).resolve_patient(claims).id == patient.id

    def test_failures_are_indistinguishable(self, db, patient, other_patient_claims):
        guard = AuthorizationGuard(db)
        wrong_role = Claims(identifier=patient.email, role=Role.DOCTOR)
        messages = []

        for claims, owner in [(None, None), (wrong_role, None), (other_patient_claims, patient.id)]:
            with pytest.raises(UnauthorizedError) as exc_info:
                guard.authorize(claims, Role.PATIENT, owner_patient_id=owner)
            messages.append(exc_info.value.to_dict())

        assert messages[0] == messages[1] == messages[2]


class TestResolveClaims:

    def test_valid_token_resolves(self):
        token = create_access_token("alice@example.com", Role.PATIENT)

        claims = resolve_claims(token)

        assert claims == Claims(identifier="alice@example.com", role=Role.PATIENT)

    def test_expired_token_is_none(self):
        token = create_access_token("alice@example.com", Role.PATIENT, timedelta(minutes=-5))

        assert resolve_claims(token) is None

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    def test_garbage_is_none(self, token):
        assert resolve_claims(token) is None

    def test_foreign_signature_is_none(self):
        from jose import jwt

        token = jwt.encode(
            {"sub": "alice@example.com", "role": "patient", "token_type": "access"},
            "some-other-secret",
            algorithm="HS256"
        )

        assert resolve_claims(token) is None

    def test_unknown_role_is_none(self):
        from jose import jwt
        from clinicbook.core.config import settings

        token = jwt.encode(
            {"sub": "alice@example.com", "role": "nurse", "token_type": "access"},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM
        )

        assert resolve_claims(token) is None
