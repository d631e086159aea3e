"""
Appointment service for appointment record management.

Creates, updates and cancels appointment records. Every write that can
change the schedule runs validation and the write in one transaction, after
taking a row lock on the clinic, so two concurrent bookings for the same
clinic cannot both pass validation against the same state. On PostgreSQL
an exclusion constraint on staff time ranges backs this up; its violation
surfaces as IntegrityError and is reported as a conflict.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import CANCELLED_STATUS, DEFAULT_APPOINTMENT_STATUS
from models import Appointment, Clinic, Staff
from services.appointment_validation_service import AppointmentValidationService
from services.patient_service import PatientService
from services.settings_service import ClinicSettingsCache
from shared_types.validation import AppointmentValidationInput
from utils.datetime_utils import format_time, parse_time_string
from utils.scheduling_queries import get_appointment_by_id, list_appointments_by_date

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ("date", "start_time", "end_time", "staff_id")
UPDATABLE_FIELDS = (
    "patient_id", "staff_id", "date", "start_time", "end_time",
    "treatment_type", "status", "chair_number", "notes",
)
NULLABLE_FIELDS = ("chair_number", "notes")


class AppointmentService:
    """
    Service class for appointment operations.

    Contains business logic for appointment management that is shared
    across different API endpoints.
    """

    @staticmethod
    def list_appointments_by_date(db: Session, clinic_id: int, target_date: date) -> List[Appointment]:
        """List a clinic's appointments on a date, cancelled ones included."""
        return list_appointments_by_date(db, clinic_id, target_date)

    @staticmethod
    def get_appointment(db: Session, clinic_id: int, appointment_id: int) -> Appointment:
        """
        Get one appointment of a clinic.

        Raises:
            HTTPException: 404 if not found
        """
        appointment = get_appointment_by_id(db, appointment_id, clinic_id)
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="予約が見つかりません"
            )
        return appointment

    @staticmethod
    def _lock_clinic(db: Session, clinic_id: int) -> Clinic:
        # Serializes validate-then-write for the whole clinic (the chair pool is clinic-wide)
        clinic = db.query(Clinic).filter(Clinic.id == clinic_id).with_for_update().first()
        if not clinic:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="クリニックが見つかりません"
            )
        return clinic

    @staticmethod
    def _ensure_staff(db: Session, clinic_id: int, staff_id: int) -> Staff:
        staff = db.query(Staff).filter(Staff.id == staff_id, Staff.clinic_id == clinic_id).first()
        if not staff:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="スタッフが見つかりません"
            )
        return staff

    @staticmethod
    def _ensure_valid(
        db: Session,
        data: AppointmentValidationInput,
        now: Optional[datetime],
        settings_cache: Optional[ClinicSettingsCache]
    ) -> None:
        """
        Run the validation pipeline and reject the write if any rule fails.

        Raises:
            HTTPException: 409 with every violation in the detail
        """
        result = AppointmentValidationService.validate_appointment(
            db, data, now=now, settings_cache=settings_cache
        )
        if result.valid:
            return

        logger.warning(
            f"Rejected booking for staff {data.staff_id} on {data.date} "
            f"{data.start_time}-{data.end_time}: {result.error_codes}"
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "validation_failed",
                "message": "; ".join(error.message for error in result.errors),
                "errors": [error.model_dump(mode="json") for error in result.errors],
            }
        )

    @staticmethod
    def create_appointment(
        db: Session,
        clinic_id: int,
        staff_id: int,
        appointment_date: date,
        start_time: str,
        end_time: str,
        treatment_type: str,
        patient_id: Optional[int] = None,
        patient_data: Optional[Dict[str, Any]] = None,
        status_value: Optional[str] = None,
        chair_number: Optional[int] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
        settings_cache: Optional[ClinicSettingsCache] = None
    ) -> Appointment:
        """
        Create a new appointment after validating it.

        Args:
            db: Database session
            clinic_id: Clinic ID
            staff_id: Staff member running the appointment
            appointment_date: Appointment date
            start_time: Start time (HH:MM)
            end_time: End time (HH:MM)
            treatment_type: Treatment descriptor
            patient_id: Existing patient, or None to create one from patient_data
            patient_data: New patient's name, phone and email
            status_value: Initial status (default: confirmed)
            chair_number: Specific chair, if any
            notes: Free-text notes
            now: Current time for the past-time rule (defaults to the clinic clock)
            settings_cache: Clinic settings cache to read through, if any

        Returns:
            The created Appointment

        Raises:
            HTTPException: 404 for unknown clinic/staff/patient, 409 when
                validation fails or the slot was taken concurrently, 500 otherwise
        """
        try:
            AppointmentService._lock_clinic(db, clinic_id)
            AppointmentService._ensure_staff(db, clinic_id, staff_id)
            resolved_patient_id = PatientService.ensure_patient_id(db, clinic_id, patient_id, patient_data)

            AppointmentService._ensure_valid(
                db,
                AppointmentValidationInput(
                    clinic_id=clinic_id,
                    date=appointment_date,
                    start_time=start_time,
                    end_time=end_time,
                    staff_id=staff_id,
                    chair_number=chair_number,
                ),
                now,
                settings_cache,
            )

            appointment = Appointment(
                clinic_id=clinic_id,
                patient_id=resolved_patient_id,
                staff_id=staff_id,
                chair_number=chair_number,
                date=appointment_date,
                start_time=parse_time_string(start_time),
                end_time=parse_time_string(end_time),
                treatment_type=treatment_type,
                status=status_value or DEFAULT_APPOINTMENT_STATUS,
                notes=notes,
            )
            db.add(appointment)
            db.commit()
            db.refresh(appointment)

            logger.info(
                f"Created appointment {appointment.id} for patient {resolved_patient_id} "
                f"with staff {staff_id} on {appointment_date} {appointment.time_range_label}"
            )
            return appointment

        except HTTPException:
            db.rollback()
            raise
        except IntegrityError as e:
            logger.warning(f"Appointment booking conflict: {e}")
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="この時間帯は既に予約が入っています。別の時間を選択してください。"
            )
        except Exception as e:
            logger.exception(f"Failed to create appointment: {e}")
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="予約の作成に失敗しました"
            )

    @staticmethod
    def _needs_revalidation(appointment: Appointment, updates: Dict[str, Any]) -> bool:
        """
        Whether an update can change the schedule.

        True when date, time or staff change, or when a cancelled appointment
        is moved back to an active status. An update that leaves the
        appointment cancelled is never revalidated.
        """
        if updates.get("status", appointment.status) == CANCELLED_STATUS:
            return False
        if any(field in updates for field in SCHEDULE_FIELDS):
            return True
        return appointment.is_cancelled

    @staticmethod
    def update_appointment(
        db: Session,
        clinic_id: int,
        appointment_id: int,
        updates: Dict[str, Any],
        patient_data: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
        settings_cache: Optional[ClinicSettingsCache] = None
    ) -> Appointment:
        """
        Apply a partial update to an appointment.

        Only keys present in ``updates`` are changed; a None value clears one of
        the NULLABLE_FIELDS. Schedule changes are revalidated against everything
        except the appointment itself.

        Args:
            db: Database session
            clinic_id: Clinic ID
            appointment_id: Appointment to update
            updates: Field values to change (see UPDATABLE_FIELDS)
            patient_data: New patient to create and assign, if given
            now: Current time for the past-time rule (defaults to the clinic clock)
            settings_cache: Clinic settings cache to read through, if any

        Raises:
            HTTPException: 404 if not found, 409 when validation fails, 500 otherwise
            ValueError: On unknown fields, or None for a field that cannot be cleared
        """
        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown appointment fields: {sorted(unknown)}")
        cleared = sorted(field for field, value in updates.items() if value is None and field not in NULLABLE_FIELDS)
        if cleared:
            raise ValueError(f"Appointment fields cannot be cleared: {cleared}")

        try:
            AppointmentService._lock_clinic(db, clinic_id)
            appointment = AppointmentService.get_appointment(db, clinic_id, appointment_id)

            changes = dict(updates)
            if patient_data is not None:
                changes["patient_id"] = PatientService.ensure_patient_id(
                    db, clinic_id, changes.get("patient_id"), patient_data
                )
            elif changes.get("patient_id") is not None:
                PatientService.get_patient(db, changes["patient_id"], clinic_id)

            if "staff_id" in changes:
                AppointmentService._ensure_staff(db, clinic_id, changes["staff_id"])

            if AppointmentService._needs_revalidation(appointment, changes):
                AppointmentService._ensure_valid(
                    db,
                    AppointmentValidationInput(
                        clinic_id=clinic_id,
                        date=changes.get("date", appointment.date),
                        start_time=changes.get("start_time") or format_time(appointment.start_time),
                        end_time=changes.get("end_time") or format_time(appointment.end_time),
                        staff_id=changes.get("staff_id", appointment.staff_id),
                        chair_number=changes.get("chair_number", appointment.chair_number),
                        exclude_appointment_id=appointment.id,
                    ),
                    now,
                    settings_cache,
                )

            for field, value in changes.items():
                if field in ("start_time", "end_time") and isinstance(value, str):
                    value = parse_time_string(value)
                setattr(appointment, field, value)

            db.commit()
            db.refresh(appointment)

            logger.info(f"Updated appointment {appointment_id}: {sorted(changes)}")
            return appointment

        except HTTPException:
            db.rollback()
            raise
        except IntegrityError as e:
            logger.warning(f"Appointment update conflict: {e}")
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="この時間帯は既に予約が入っています。別の時間を選択してください。"
            )
        except Exception as e:
            logger.exception(f"Failed to update appointment {appointment_id}: {e}")
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="予約の更新に失敗しました"
            )

    @staticmethod
    def cancel_appointment(db: Session, clinic_id: int, appointment_id: int) -> Appointment:
        """
        Cancel an appointment by moving it to the cancelled status.

        The record is kept for history. This method is idempotent: cancelling
        an already cancelled appointment returns it unchanged.

        Raises:
            HTTPException: 404 if not found, 500 on storage errors
        """
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.clinic_id == clinic_id
        ).with_for_update().first()

        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="予約が見つかりません"
            )

        if appointment.is_cancelled:
            logger.info(f"Appointment {appointment_id} already cancelled, returning success")
            db.commit()
            return appointment

        try:
            appointment.status = CANCELLED_STATUS
            db.commit()
            db.refresh(appointment)
        except Exception as e:
            logger.exception(f"Failed to cancel appointment {appointment_id}: {e}")
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="予約のキャンセルに失敗しました"
            )

        logger.info(f"Cancelled appointment {appointment_id}")
        return appointment
