# pyright: reportMissingTypeStubs=false
"""
Appointment API endpoints.

Booking validation, the capacity-aware booking preview, and the reservation
records themselves (list, create, update, cancel).
"""

import logging
from datetime import date as date_type
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from api.dependencies import get_clinic_id, get_settings_cache
from api.responses import AppointmentEnvelope, AppointmentListResponse, AppointmentResponse
from core.constants import MAX_NOTES_LENGTH
from core.database import get_db
from services.appointment_service import NULLABLE_FIELDS, AppointmentService
from services.appointment_validation_service import AppointmentValidationService
from services.conflict_check_service import ConflictCheckService
from services.settings_service import ClinicSettingsCache
from shared_types.validation import (
    HH_MM_PATTERN,
    AppointmentValidationInput,
    ConflictCheckResult,
    ValidationResult,
)
from utils.datetime_utils import parse_date_string

logger = logging.getLogger(__name__)

router = APIRouter()

AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled", "no_show"]


# ===== Request Models =====

class ValidateAppointmentRequest(BaseModel):
    """Request model for validating a proposed booking."""
    date: date_type
    start_time: str = Field(..., pattern=HH_MM_PATTERN)
    end_time: str = Field(..., pattern=HH_MM_PATTERN)
    staff_id: int
    chair_number: Optional[int] = Field(None, ge=1)
    exclude_appointment_id: Optional[int] = None


class CheckConflictRequest(BaseModel):
    """Request model for the booking preview."""
    date: date_type
    start_time: str = Field(..., pattern=HH_MM_PATTERN)
    end_time: str = Field(..., pattern=HH_MM_PATTERN)
    staff_id: int
    chair_number: Optional[int] = Field(None, ge=1)
    exclude_id: Optional[int] = None


class ReservationPatient(BaseModel):
    """New patient registered together with a reservation."""
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None


class ReservationCreateRequest(BaseModel):
    """Request model for creating a reservation."""
    patient_id: Optional[int] = None
    patient: Optional[ReservationPatient] = None
    staff_id: int
    date: date_type
    start_time: str = Field(..., pattern=HH_MM_PATTERN)
    end_time: str = Field(..., pattern=HH_MM_PATTERN)
    treatment_type: str = Field(..., min_length=1)
    status: Optional[AppointmentStatus] = None
    chair_number: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)

    @model_validator(mode='after')
    def require_patient(self) -> "ReservationCreateRequest":
        if self.patient_id is None and self.patient is None:
            raise ValueError("patient_id または患者情報を指定してください")
        return self


class ReservationUpdateRequest(BaseModel):
    """
    Request model for a partial reservation update.

    Omitted fields are left unchanged. An explicit null clears chair_number or
    notes and is rejected for every other field (a null patient is ignored).
    """
    patient_id: Optional[int] = None
    patient: Optional[ReservationPatient] = None
    staff_id: Optional[int] = None
    date: Optional[date_type] = None
    start_time: Optional[str] = Field(None, pattern=HH_MM_PATTERN)
    end_time: Optional[str] = Field(None, pattern=HH_MM_PATTERN)
    treatment_type: Optional[str] = Field(None, min_length=1)
    status: Optional[AppointmentStatus] = None
    chair_number: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)

    @model_validator(mode='after')
    def check_fields(self) -> "ReservationUpdateRequest":
        provided = set(self.model_fields_set)
        if self.patient is None:
            provided.discard("patient")
        if not provided:
            raise ValueError("少なくとも1項目を指定してください")

        cleared = sorted(
            field for field in provided
            if field not in NULLABLE_FIELDS and getattr(self, field) is None
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} にnullは指定できません")
        return self


# ===== Validation and preview =====

@router.post("/appointments/validate", summary="Validate a proposed booking")
async def validate_appointment(
    request: ValidateAppointmentRequest,
    clinic_id: int = Depends(get_clinic_id),
    settings_cache: ClinicSettingsCache = Depends(get_settings_cache),
    db: Session = Depends(get_db)
) -> ValidationResult:
    """Run every booking rule and return all violations."""
    return AppointmentValidationService.validate_appointment(
        db,
        AppointmentValidationInput(clinic_id=clinic_id, **request.model_dump()),
        settings_cache=settings_cache,
    )


@router.post("/appointments/check-conflict", summary="Preview whether a slot can be booked")
async def check_conflict(
    request: CheckConflictRequest,
    clinic_id: int = Depends(get_clinic_id),
    settings_cache: ClinicSettingsCache = Depends(get_settings_cache),
    db: Session = Depends(get_db)
) -> ConflictCheckResult:
    """Return the staff member's remaining capacity and whether the slot is free."""
    return ConflictCheckService.check_conflict(
        db,
        clinic_id=clinic_id,
        appointment_date=request.date,
        start_time=request.start_time,
        end_time=request.end_time,
        staff_id=request.staff_id,
        chair_number=request.chair_number,
        exclude_appointment_id=request.exclude_id,
        settings_cache=settings_cache,
    )


# ===== Reservations =====

@router.get("/reservations", summary="List reservations of a date")
async def list_reservations(
    date: str = Query(..., description="YYYY-MM-DD"),
    clinic_id: int = Depends(get_clinic_id),
    db: Session = Depends(get_db)
) -> AppointmentListResponse:
    try:
        target_date = parse_date_string(date)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="無効な日付形式です（YYYY-MM-DD を使用してください）"
        )

    try:
        appointments = AppointmentService.list_appointments_by_date(db, clinic_id, target_date)
        return AppointmentListResponse(data=[AppointmentResponse.from_model(a) for a in appointments])
    except Exception as e:
        logger.exception(f"Failed to fetch reservations for {target_date}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="予約データの取得に失敗しました"
        )


@router.post("/reservations", summary="Create a reservation", status_code=status.HTTP_201_CREATED)
async def create_reservation(
    request: ReservationCreateRequest,
    clinic_id: int = Depends(get_clinic_id),
    settings_cache: ClinicSettingsCache = Depends(get_settings_cache),
    db: Session = Depends(get_db)
) -> AppointmentEnvelope:
    """Validate and create a reservation, registering a new patient if needed."""
    appointment = AppointmentService.create_appointment(
        db,
        clinic_id=clinic_id,
        staff_id=request.staff_id,
        appointment_date=request.date,
        start_time=request.start_time,
        end_time=request.end_time,
        treatment_type=request.treatment_type,
        patient_id=request.patient_id,
        patient_data=request.patient.model_dump() if request.patient else None,
        status_value=request.status,
        chair_number=request.chair_number,
        notes=request.notes,
        settings_cache=settings_cache,
    )
    return AppointmentEnvelope(data=AppointmentResponse.from_model(appointment))


@router.patch("/reservations/{appointment_id}", summary="Update a reservation")
async def update_reservation(
    appointment_id: int,
    request: ReservationUpdateRequest,
    clinic_id: int = Depends(get_clinic_id),
    settings_cache: ClinicSettingsCache = Depends(get_settings_cache),
    db: Session = Depends(get_db)
) -> AppointmentEnvelope:
    """Apply the given fields; schedule changes are revalidated."""
    updates: dict[str, Any] = request.model_dump(exclude_unset=True, exclude={"patient"})
    appointment = AppointmentService.update_appointment(
        db,
        clinic_id=clinic_id,
        appointment_id=appointment_id,
        updates=updates,
        patient_data=request.patient.model_dump() if request.patient else None,
        settings_cache=settings_cache,
    )
    return AppointmentEnvelope(data=AppointmentResponse.from_model(appointment))


@router.delete("/reservations/{appointment_id}", summary="Cancel a reservation")
async def cancel_reservation(
    appointment_id: int,
    clinic_id: int = Depends(get_clinic_id),
    db: Session = Depends(get_db)
) -> AppointmentEnvelope:
    """Cancel (not delete) a reservation."""
    appointment = AppointmentService.cancel_appointment(db, clinic_id, appointment_id)
    return AppointmentEnvelope(data=AppointmentResponse.from_model(appointment))
