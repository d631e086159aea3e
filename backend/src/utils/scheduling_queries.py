"""
Storage queries used by the scheduling engine.

Each function wraps one read the validators, the conflict check or the risk
score need, so that filtering rules (clinic scoping, cancelled exclusion,
excluding the appointment being edited) are applied identically everywhere.
Database errors propagate to the caller, which decides how lenient to be.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from core.constants import CANCELLED_STATUS
from models import Appointment, BusinessHours, ClinicSettings, Holiday, Staff


def find_business_hours(db: Session, clinic_id: int, day_of_week: int) -> Optional[BusinessHours]:
    """
    Get the business hours row for one weekday.

    Args:
        db: Database session
        clinic_id: Clinic ID
        day_of_week: 0=Sunday ... 6=Saturday

    Returns:
        BusinessHours row, or None if the weekday is not configured
    """
    return db.query(BusinessHours).filter(
        BusinessHours.clinic_id == clinic_id,
        BusinessHours.day_of_week == day_of_week
    ).first()


def find_holiday(db: Session, clinic_id: int, target_date: date) -> Optional[Holiday]:
    """Get the holiday row for an exact date, if any."""
    return db.query(Holiday).filter(
        Holiday.clinic_id == clinic_id,
        Holiday.date == target_date
    ).first()


def find_clinic_settings(db: Session, clinic_id: int) -> Optional[ClinicSettings]:
    return db.query(ClinicSettings).filter(ClinicSettings.clinic_id == clinic_id).first()


def find_staff_capacity(db: Session, staff_id: int) -> Optional[int]:
    """
    Get a staff member's declared concurrency.

    Returns:
        max_concurrent_appointments, or None if the staff member does not exist
        or has not declared one (callers fall back to the clinic default)
    """
    row = db.query(Staff.max_concurrent_appointments).filter(Staff.id == staff_id).first()
    if row is None:
        return None
    return row[0]


def find_appointments(
    db: Session,
    clinic_id: int,
    target_date: date,
    staff_id: Optional[int] = None,
    chair_number: Optional[int] = None,
    exclude_cancelled: bool = True,
    exclude_appointment_id: Optional[int] = None
) -> List[Appointment]:
    """
    Get appointments of a clinic on one date.

    Args:
        db: Database session
        clinic_id: Clinic ID
        target_date: Appointment date
        staff_id: Only this staff member's appointments, if given
        chair_number: Only appointments on this chair, if given
        exclude_cancelled: Skip cancelled appointments (default: True)
        exclude_appointment_id: Skip this appointment (used when revalidating an update)

    Returns:
        Appointments ordered by start time
    """
    query = db.query(Appointment).filter(
        Appointment.clinic_id == clinic_id,
        Appointment.date == target_date
    )

    if staff_id is not None:
        query = query.filter(Appointment.staff_id == staff_id)
    if chair_number is not None:
        query = query.filter(Appointment.chair_number == chair_number)
    if exclude_cancelled:
        query = query.filter(Appointment.status != CANCELLED_STATUS)
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return query.order_by(Appointment.start_time, Appointment.id).all()


def find_appointment_history(db: Session, patient_id: int, clinic_id: Optional[int] = None) -> List[Appointment]:
    """
    Get every appointment a patient ever made, in any status.

    Args:
        db: Database session
        patient_id: Patient ID
        clinic_id: Restrict to one clinic, if given
    """
    query = db.query(Appointment).filter(Appointment.patient_id == patient_id)
    if clinic_id is not None:
        query = query.filter(Appointment.clinic_id == clinic_id)
    return query.order_by(Appointment.date, Appointment.start_time).all()


def get_appointment_by_id(db: Session, appointment_id: int, clinic_id: Optional[int] = None) -> Optional[Appointment]:
    query = db.query(Appointment).filter(Appointment.id == appointment_id)
    if clinic_id is not None:
        query = query.filter(Appointment.clinic_id == clinic_id)
    return query.first()


def list_appointments_by_date(db: Session, clinic_id: int, target_date: date) -> List[Appointment]:
    """All appointments of a clinic on a date, cancelled ones included, for the calendar view."""
    return find_appointments(db, clinic_id, target_date, exclude_cancelled=False)
