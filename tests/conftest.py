import os
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set testing environment before the app is imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from clinicbook.main import app  # noqa: E402
from clinicbook.api.deps import get_booking_service  # noqa: E402
from clinicbook.core.database import Base, get_db, get_redis  # noqa: E402
from clinicbook.core.security import Claims, Role, create_access_token  # noqa: E402
from clinicbook.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from clinicbook.models.doctor import Doctor  # noqa: E402
from clinicbook.models.patient import Patient  # noqa: E402
from clinicbook.services.booking_service import BookingService  # noqa: E402

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed "now" for every service built in tests
NOW = datetime(2025, 6, 9, 8, 0)


class FakeRedis:
    """In-memory stand-in for the few redis commands the rate limiter uses."""

    def __init__(self):
        self.data = {}

    def setex(self, key, seconds, value):
        self.data[key] = str(value)
        return True

    def get(self, key):
        return self.data.get(key)

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory(test_db):
    """Hand out extra independent sessions, closed at teardown."""
    sessions = []

    def make():
        session = TestingSessionLocal()
        sessions.append(session)
        return session

    yield make
    for session in sessions:
        session.close()


@pytest.fixture
def doctor(db):
    doctor = Doctor(
        name="Gregory House",
        specialty="Diagnostics",
        email="house@clinic.test",
        slot_labels=["09:00-10:00", "10:00-11:00"]
    )
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


@pytest.fixture
def other_doctor(db):
    doctor = Doctor(
        name="Lisa Cuddy",
        specialty="Endocrinology",
        email="cuddy@clinic.test",
        slot_labels=["09:00-10:00", "11:00-12:00"]
    )
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


@pytest.fixture
def patient(db):
    patient = Patient(name="Alice Walker", email="alice@example.com")
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


@pytest.fixture
def other_patient(db):
    patient = Patient(name="Bob Stone", email="bob@example.com")
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


@pytest.fixture
def patient_claims(patient):
    return Claims(identifier=patient.email, role=Role.PATIENT)


@pytest.fixture
def other_patient_claims(other_patient):
    return Claims(identifier=other_patient.email, role=Role.PATIENT)


@pytest.fixture
def doctor_claims(doctor):
    return Claims(identifier=doctor.email, role=Role.DOCTOR)


@pytest.fixture
def service(db):
    return BookingService(db, clock=lambda: NOW)


@pytest.fixture
def make_appointment(db):
    """Insert an appointment directly, bypassing the booking checks."""
    def make(doctor, patient, start_time, status=AppointmentStatus.SCHEDULED):
        appointment = Appointment(
            doctor_id=doctor.id,
            patient_id=patient.id,
            start_time=start_time,
            status=status
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment
    return make


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def client(test_db, fake_redis):
    def override_get_db():
        try:
            session = TestingSessionLocal()
            yield session
        finally:
            session.close()

    def override_get_booking_service():
        session = TestingSessionLocal()
        try:
            yield BookingService(session, clock=lambda: NOW)
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_booking_service] = override_get_booking_service

    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def make(identifier: str, role: Role) -> dict:
        token = create_access_token(identifier, role)
        return {"Authorization": f"Bearer {token}"}
    return make
