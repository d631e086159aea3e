"""
Test configuration and shared fixtures for the Clinic Scheduler test suite.

Each test gets its own database: an in-memory SQLite database by default,
or the database named by TEST_DATABASE_URL (tables are created before and
dropped after each test).

Builder helpers at the bottom create clinics, staff, patients and
appointments with sensible defaults; tests import them from tests.conftest.
"""

import os
from datetime import date, datetime, time, timedelta
from typing import Generator, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base
from services.settings_service import ClinicSettingsCache
from utils.datetime_utils import CLINIC_TZ, clinic_today, day_of_week_index

# Import all models to ensure they're registered with SQLAlchemy before any relationships are resolved
from models import Appointment, BusinessHours, Clinic, ClinicSettings, Holiday, Patient, Staff


# Test database URL
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")

# Fixed clock for deterministic validation tests: Friday 2024-12-20 08:00 clinic time
FIXED_NOW = datetime(2024, 12, 20, 8, 0, tzinfo=CLINIC_TZ)
MONDAY = date(2024, 12, 23)
SUNDAY = date(2024, 12, 22)
NEW_YEARS_DAY = date(2025, 1, 1)  # Wednesday

# day_of_week (0=Sunday) -> (open, close); None means closed
STANDARD_WEEK = {
    0: None,
    1: (time(9, 0), time(18, 0)),
    2: (time(9, 0), time(18, 0)),
    3: (time(9, 0), time(18, 0)),
    4: (time(9, 0), time(18, 0)),
    5: (time(9, 0), time(18, 0)),
    6: (time(9, 0), time(13, 0)),
}


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # One shared connection so the in-memory database survives across sessions
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {}


@pytest.fixture(scope="function")
def db_engine():
    """Create a database engine with a fresh schema for one test."""
    engine = create_engine(TEST_DATABASE_URL, echo=False, **_engine_kwargs(TEST_DATABASE_URL))
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session for a test."""
    TestSession = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = TestSession()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def settings_cache() -> ClinicSettingsCache:
    return ClinicSettingsCache(ttl_seconds=300)


@pytest.fixture
def clinic(db_session) -> Clinic:
    """A clinic with the standard week, default settings and no holidays."""
    return create_clinic(db_session)


@pytest.fixture
def staff(db_session, clinic) -> Staff:
    return create_staff(db_session, clinic, name="Dr. Tanaka")


@pytest.fixture
def patient(db_session, clinic) -> Patient:
    return create_patient(db_session, clinic)


# ===== Builders =====

def create_clinic(
    db: Session,
    name: str = "Test Dental Clinic",
    week: Optional[dict] = None,
    chairs_count: Optional[int] = 3,
    booking_advance_days: int = 60,
    default_staff_capacity: Optional[int] = None
) -> Clinic:
    """
    Create a clinic with business hours and settings.

    Pass chairs_count=None to create the clinic without a settings row.
    """
    clinic = Clinic(name=name)
    db.add(clinic)
    db.flush()

    for day_of_week, hours in (week if week is not None else STANDARD_WEEK).items():
        if hours is None:
            db.add(BusinessHours(clinic_id=clinic.id, day_of_week=day_of_week, is_closed=True))
        else:
            db.add(BusinessHours(
                clinic_id=clinic.id,
                day_of_week=day_of_week,
                open_time=hours[0],
                close_time=hours[1],
                is_closed=False,
            ))

    if chairs_count is not None:
        db.add(ClinicSettings(
            clinic_id=clinic.id,
            chairs_count=chairs_count,
            booking_advance_days=booking_advance_days,
            booking_buffer_minutes=15,
            default_staff_capacity=default_staff_capacity,
        ))

    db.commit()
    return clinic


def create_staff(
    db: Session,
    clinic: Clinic,
    name: str = "Staff",
    role: str = "doctor",
    max_concurrent_appointments: Optional[int] = None
) -> Staff:
    staff = Staff(
        clinic_id=clinic.id,
        name=name,
        role=role,
        max_concurrent_appointments=max_concurrent_appointments,
    )
    db.add(staff)
    db.commit()
    return staff


def create_patient(db: Session, clinic: Clinic, name: str = "山田 花子", phone: str = "090-1234-5678") -> Patient:
    patient = Patient(clinic_id=clinic.id, name=name, phone=phone)
    db.add(patient)
    db.commit()
    return patient


def create_appointment(
    db: Session,
    clinic: Clinic,
    staff: Staff,
    patient: Patient,
    appointment_date: date,
    start: str,
    end: str,
    status: str = "confirmed",
    chair_number: Optional[int] = None,
    treatment_type: str = "定期検診"
) -> Appointment:
    """Insert an appointment directly, bypassing validation."""
    start_hour, start_minute = map(int, start.split(":"))
    end_hour, end_minute = map(int, end.split(":"))
    appointment = Appointment(
        clinic_id=clinic.id,
        patient_id=patient.id,
        staff_id=staff.id,
        chair_number=chair_number,
        date=appointment_date,
        start_time=time(start_hour, start_minute),
        end_time=time(end_hour, end_minute),
        treatment_type=treatment_type,
        status=status,
    )
    db.add(appointment)
    db.commit()
    return appointment


def create_holiday(db: Session, clinic: Clinic, holiday_date: date, reason: Optional[str] = None) -> Holiday:
    holiday = Holiday(clinic_id=clinic.id, date=holiday_date, reason=reason)
    db.add(holiday)
    db.commit()
    return holiday


def upcoming_weekday(day_of_week: int, min_days_ahead: int = 1) -> date:
    """Next date (on the real clinic clock) falling on day_of_week (0=Sunday), at least min_days_ahead away."""
    candidate = clinic_today() + timedelta(days=min_days_ahead)
    while day_of_week_index(candidate) != day_of_week:
        candidate += timedelta(days=1)
    return candidate
