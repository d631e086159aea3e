"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import date as date_type, datetime
from typing import List, Optional

from pydantic import BaseModel

from models import Appointment
from utils.datetime_utils import format_time


class AppointmentResponse(BaseModel):
    """Response model for an appointment record."""
    id: int
    clinic_id: int
    patient_id: int
    staff_id: int
    chair_number: Optional[int] = None
    date: date_type
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    treatment_type: str
    status: str
    notes: Optional[str] = None
    patient_name: Optional[str] = None
    staff_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            clinic_id=appointment.clinic_id,
            patient_id=appointment.patient_id,
            staff_id=appointment.staff_id,
            chair_number=appointment.chair_number,
            date=appointment.date,
            start_time=format_time(appointment.start_time),
            end_time=format_time(appointment.end_time),
            treatment_type=appointment.treatment_type,
            status=appointment.status,
            notes=appointment.notes,
            patient_name=appointment.patient.name if appointment.patient else None,
            staff_name=appointment.staff.name if appointment.staff else None,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class AppointmentEnvelope(BaseModel):
    """Single appointment wrapped in ``data``."""
    data: AppointmentResponse


class AppointmentListResponse(BaseModel):
    """Appointments of one date wrapped in ``data``."""
    data: List[AppointmentResponse]


class ClinicSettingsResponse(BaseModel):
    """Response model for clinic booking settings."""
    clinic_id: int
    chairs_count: int
    booking_advance_days: int
    booking_buffer_minutes: int
    default_staff_capacity: int
