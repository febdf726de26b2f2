from datetime import datetime

import pytest

from clinicbook.models.appointment import AppointmentStatus
from clinicbook.services.conflict_guard import is_available

NINE = datetime(2025, 6, 10, 9, 0)


class TestConflictGuard:

    def test_free_time_is_available(self, db, doctor):
        assert is_available(db, doctor.id, NINE)

    def test_unknown_doctor_is_never_available(self, db, test_db):
        assert not is_available(db, 4242, NINE)

    @pytest.mark.parametrize("status", [AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED])
    def test_active_appointment_blocks_exact_time(self, db, doctor, patient, make_appointment, status):
        make_appointment(doctor, patient, NINE, status=status)

        assert not is_available(db, doctor.id, NINE)

    @pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW])
    def test_released_appointment_does_not_block(self, db, doctor, patient, make_appointment, status):
        make_appointment(doctor, patient, NINE, status=status)

        assert is_available(db, doctor.id, NINE)

    def test_overlapping_but_different_start_is_allowed(self, db, doctor, patient, make_appointment):
        make_appointment(doctor, patient, NINE)

        assert is_available(db, doctor.id, datetime(2025, 6, 10, 9, 30))
        assert is_available(db, doctor.id, datetime(2025, 6, 10, 10, 0))

    def test_other_doctor_is_unaffected(self, db, doctor, other_doctor, patient, make_appointment):
        make_appointment(doctor, patient, NINE)

        assert is_available(db, other_doctor.id, NINE)

    def test_excluded_appointment_is_ignored(self, db, doctor, patient, make_appointment):
        appointment = make_appointment(doctor, patient, NINE)

        assert is_available(db, doctor.id, NINE, exclude_appointment_id=appointment.id)
