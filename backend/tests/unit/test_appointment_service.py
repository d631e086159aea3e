"""
Unit tests for AppointmentService.

Covers validated creation, partial updates with revalidation, and
idempotent cancellation. Writes use the fixed clock from conftest so the
past-time and booking-window rules are deterministic.
"""

import pytest
from datetime import time
from fastapi import HTTPException, status

from models import Appointment, Patient
from services.appointment_service import AppointmentService
from tests.conftest import (
    FIXED_NOW,
    MONDAY,
    SUNDAY,
    create_appointment,
    create_clinic,
    create_staff,
)


def book(db_session, clinic, staff, patient=None, start="10:00", end="10:30", **kwargs):
    return AppointmentService.create_appointment(
        db_session,
        clinic_id=clinic.id,
        staff_id=staff.id,
        appointment_date=kwargs.pop("appointment_date", MONDAY),
        start_time=start,
        end_time=end,
        treatment_type=kwargs.pop("treatment_type", "定期検診"),
        patient_id=patient.id if patient is not None else None,
        now=FIXED_NOW,
        **kwargs,
    )


def error_codes(exc_info) -> list:
    return [error["code"] for error in exc_info.value.detail["errors"]]


class TestCreateAppointment:
    """Validated creation."""

    def test_creates_confirmed_appointment(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient, chair_number=1, notes="右下奥歯")

        assert appointment.id is not None
        assert appointment.status == "confirmed"
        assert appointment.start_time == time(10, 0)
        assert appointment.end_time == time(10, 30)
        assert appointment.chair_number == 1
        assert appointment.notes == "右下奥歯"

    def test_explicit_status(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient, status_value="pending")

        assert appointment.status == "pending"

    def test_creates_new_patient(self, db_session, clinic, staff):
        appointment = book(
            db_session, clinic, staff,
            patient_data={"name": "佐藤 次郎", "phone": "080-0000-1111"},
        )

        patient = db_session.query(Patient).filter(Patient.id == appointment.patient_id).one()
        assert patient.name == "佐藤 次郎"
        assert patient.clinic_id == clinic.id
        assert patient.patient_number.startswith("P")

    def test_missing_patient_information(self, db_session, clinic, staff):
        with pytest.raises(HTTPException) as exc_info:
            book(db_session, clinic, staff)

        assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_patient(self, db_session, clinic, staff):
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.create_appointment(
                db_session, clinic.id, staff.id, MONDAY, "10:00", "10:30", "定期検診",
                patient_id=9999, now=FIXED_NOW,
            )

        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND

    def test_staff_of_other_clinic(self, db_session, clinic, patient):
        other_clinic = create_clinic(db_session, name="Other")
        outsider = create_staff(db_session, other_clinic)

        with pytest.raises(HTTPException) as exc_info:
            book(db_session, clinic, outsider, patient)

        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND

    def test_unknown_clinic(self, db_session, staff, patient):
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.create_appointment(
                db_session, 9999, staff.id, MONDAY, "10:00", "10:30", "定期検診",
                patient_id=patient.id, now=FIXED_NOW,
            )

        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND

    def test_double_booking_rejected(self, db_session, clinic, staff, patient):
        book(db_session, clinic, staff, patient)

        with pytest.raises(HTTPException) as exc_info:
            book(db_session, clinic, staff, patient, start="10:15", end="10:45")

        assert exc_info.value.status_code == status.HTTP_409_CONFLICT
        assert exc_info.value.detail["error"] == "validation_failed"
        assert error_codes(exc_info) == ["STAFF_CONFLICT"]
        assert db_session.query(Appointment).count() == 1

    def test_every_violation_reported(self, db_session, clinic, staff, patient):
        with pytest.raises(HTTPException) as exc_info:
            book(db_session, clinic, staff, patient, appointment_date=SUNDAY, start="10:00", end="10:05")

        assert error_codes(exc_info) == ["DURATION_TOO_SHORT", "CLINIC_CLOSED"]
        assert ";" in exc_info.value.detail["message"]

    def test_rejected_booking_does_not_create_patient(self, db_session, clinic, staff):
        with pytest.raises(HTTPException):
            book(
                db_session, clinic, staff,
                appointment_date=SUNDAY,
                patient_data={"name": "佐藤 次郎", "phone": "080-0000-1111"},
            )

        assert db_session.query(Patient).count() == 0

    def test_back_to_back_bookings(self, db_session, clinic, staff, patient):
        book(db_session, clinic, staff, patient, start="10:00", end="10:30")
        second = book(db_session, clinic, staff, patient, start="10:30", end="11:00")

        assert second.id is not None


class TestUpdateAppointment:
    """Partial updates."""

    def test_reschedule(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient)

        updated = AppointmentService.update_appointment(
            db_session, clinic.id, appointment.id,
            {"start_time": "14:00", "end_time": "15:00"},
            now=FIXED_NOW,
        )

        assert updated.start_time == time(14, 0)
        assert updated.end_time == time(15, 0)

    def test_overlap_with_itself_is_allowed(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient)

        updated = AppointmentService.update_appointment(
            db_session, clinic.id, appointment.id, {"end_time": "10:45"}, now=FIXED_NOW
        )

        assert updated.end_time == time(10, 45)

    def test_reschedule_into_taken_slot(self, db_session, clinic, staff, patient):
        book(db_session, clinic, staff, patient, start="10:00", end="10:30")
        later = book(db_session, clinic, staff, patient, start="11:00", end="11:30")

        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.update_appointment(
                db_session, clinic.id, later.id, {"start_time": "10:15", "end_time": "10:45"}, now=FIXED_NOW
            )

        assert exc_info.value.status_code == status.HTTP_409_CONFLICT
        assert error_codes(exc_info) == ["STAFF_CONFLICT"]
        db_session.refresh(later)
        assert later.start_time == time(11, 0)

    def test_reassign_to_busy_staff(self, db_session, clinic, staff, patient):
        colleague = create_staff(db_session, clinic, name="Dr. Sato")
        book(db_session, clinic, colleague, patient)
        appointment = book(db_session, clinic, staff, patient)

        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.update_appointment(
                db_session, clinic.id, appointment.id, {"staff_id": colleague.id}, now=FIXED_NOW
            )

        assert error_codes(exc_info) == ["STAFF_CONFLICT"]

    def test_non_schedule_fields_skip_validation(self, db_session, clinic, staff, patient):
        # Dated in the past on the real clock; editing notes must still work
        appointment = create_appointment(db_session, clinic, staff, patient, MONDAY, "10:00", "10:30")

        updated = AppointmentService.update_appointment(
            db_session, clinic.id, appointment.id, {"notes": "来院済み", "status": "completed"}
        )

        assert updated.notes == "来院済み"
        assert updated.status == "completed"

    def test_reactivating_cancelled_appointment_is_revalidated(self, db_session, clinic, staff, patient):
        cancelled = create_appointment(db_session, clinic, staff, patient, MONDAY, "10:00", "10:30", status="cancelled")
        book(db_session, clinic, staff, patient, start="10:00", end="10:30")

        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.update_appointment(
                db_session, clinic.id, cancelled.id, {"status": "confirmed"}, now=FIXED_NOW
            )

        assert error_codes(exc_info) == ["STAFF_CONFLICT"]

    def test_cancelling_with_resent_schedule_skips_validation(self, db_session, clinic, staff, patient):
        # Dated in the past on the real clock
        appointment = create_appointment(db_session, clinic, staff, patient, MONDAY, "10:00", "10:30")

        updated = AppointmentService.update_appointment(
            db_session, clinic.id, appointment.id,
            {"status": "cancelled", "date": MONDAY, "start_time": "10:00", "end_time": "10:30"},
        )

        assert updated.status == "cancelled"

    def test_editing_cancelled_appointment_skips_validation(self, db_session, clinic, staff, patient):
        cancelled = create_appointment(db_session, clinic, staff, patient, MONDAY, "10:00", "10:30", status="cancelled")
        book(db_session, clinic, staff, patient, start="10:00", end="10:30")

        updated = AppointmentService.update_appointment(
            db_session, clinic.id, cancelled.id, {"start_time": "10:15", "end_time": "10:45"}, now=FIXED_NOW
        )

        assert updated.start_time == time(10, 15)
        assert updated.status == "cancelled"

    def test_clears_chair_and_notes(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient, chair_number=2, notes="右下奥歯")

        updated = AppointmentService.update_appointment(
            db_session, clinic.id, appointment.id, {"chair_number": None, "notes": None}
        )

        assert updated.chair_number is None
        assert updated.notes is None

    def test_required_field_cannot_be_cleared(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient)

        with pytest.raises(ValueError):
            AppointmentService.update_appointment(db_session, clinic.id, appointment.id, {"start_time": None})

        db_session.refresh(appointment)
        assert appointment.start_time == time(10, 0)

        assert error_codes(exc_info) == ["STAFF_CONFLICT"]

    def test_unknown_field(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient)

        with pytest.raises(ValueError):
            AppointmentService.update_appointment(db_session, clinic.id, appointment.id, {"clinic_id": 2})

    def test_not_found(self, db_session, clinic):
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.update_appointment(db_session, clinic.id, 9999, {"notes": "x"})

        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND


class TestCancelAppointment:
    """Soft cancellation."""

    def test_cancel(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient)

        cancelled = AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)

        assert cancelled.status == "cancelled"
        assert db_session.query(Appointment).count() == 1

    def test_cancel_is_idempotent(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient)

        AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)
        again = AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)

        assert again.status == "cancelled"

    def test_cancel_frees_the_slot(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient)
        AppointmentService.cancel_appointment(db_session, clinic.id, appointment.id)

        rebooked = book(db_session, clinic, staff, patient)

        assert rebooked.id != appointment.id

    def test_cancel_other_clinics_appointment(self, db_session, clinic, staff, patient):
        appointment = book(db_session, clinic, staff, patient)
        other_clinic = create_clinic(db_session, name="Other")

        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.cancel_appointment(db_session, other_clinic.id, appointment.id)

        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND


class TestListAppointments:
    """Day listing."""

    def test_lists_day_in_order_including_cancelled(self, db_session, clinic, staff, patient):
        create_appointment(db_session, clinic, staff, patient, MONDAY, "11:00", "11:30")
        create_appointment(db_session, clinic, staff, patient, MONDAY, "09:00", "09:30", status="cancelled")
        create_appointment(db_session, clinic, staff, patient, SUNDAY, "10:00", "10:30")

        appointments = AppointmentService.list_appointments_by_date(db_session, clinic.id, MONDAY)

        assert [apt.start_time for apt in appointments] == [time(9, 0), time(11, 0)]
        assert appointments[0].status == "cancelled"

    def test_get_appointment_not_found(self, db_session, clinic):
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.get_appointment(db_session, clinic.id, 9999)

        assert exc_info.value.status_code == status.HTTP_404_NOT_FOUND
