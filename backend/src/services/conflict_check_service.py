"""
Conflict check service for the booking preview.

A read-only, capacity-aware check the UI calls on every form change to show
whether a slot is bookable and how many parallel slots the staff member has
left. Unlike the strict staff rule in AppointmentValidationService, a staff
member may hold up to their declared capacity of overlapping appointments.
A specific chair, when given, may never be double-booked.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from core.constants import DEFAULT_STAFF_CAPACITY
from services.settings_service import ClinicSettingsCache, SettingsService
from shared_types.validation import ConflictCheckResult
from utils.datetime_utils import WallClock, intervals_overlap, time_to_minutes
from utils.scheduling_queries import find_appointments, find_staff_capacity

logger = logging.getLogger(__name__)


class ConflictCheckService:
    """Service class for the booking preview."""

    @staticmethod
    def resolve_staff_capacity(
        db: Session,
        clinic_id: int,
        staff_id: int,
        settings_cache: Optional[ClinicSettingsCache] = None
    ) -> int:
        """
        Get how many overlapping appointments a staff member may hold.

        Falls back to the clinic's default staff capacity, then to 1.
        """
        capacity = find_staff_capacity(db, staff_id)
        if capacity:
            return capacity

        settings = SettingsService.get_clinic_settings(db, clinic_id, cache=settings_cache)
        if settings is not None and settings.default_staff_capacity:
            return settings.default_staff_capacity

        return DEFAULT_STAFF_CAPACITY

    @staticmethod
    def check_conflict(
        db: Session,
        clinic_id: int,
        appointment_date: date,
        start_time: WallClock,
        end_time: WallClock,
        staff_id: int,
        chair_number: Optional[int] = None,
        exclude_appointment_id: Optional[int] = None,
        settings_cache: Optional[ClinicSettingsCache] = None
    ) -> ConflictCheckResult:
        """
        Preview whether a slot can be booked.

        Args:
            db: Database session
            clinic_id: Clinic ID
            appointment_date: Appointment date
            start_time: Start time (HH:MM)
            end_time: End time (HH:MM)
            staff_id: Staff member to book
            chair_number: Specific chair to book, if any
            exclude_appointment_id: Appointment being edited, ignored in counts
            settings_cache: Clinic settings cache to read through, if any

        Returns:
            ConflictCheckResult. Never raises: internal failures come back as
            can_book=False with a generic message.
        """
        try:
            start = time_to_minutes(start_time)
            end = time_to_minutes(end_time)

            staff_appointments = find_appointments(
                db, clinic_id, appointment_date,
                staff_id=staff_id,
                exclude_appointment_id=exclude_appointment_id,
            )
            staff_overlap_count = sum(
                1 for apt in staff_appointments
                if intervals_overlap(start, end, time_to_minutes(apt.start_time), time_to_minutes(apt.end_time))
            )

            chair_overlap_count = 0
            if chair_number is not None:
                chair_appointments = find_appointments(
                    db, clinic_id, appointment_date,
                    chair_number=chair_number,
                    exclude_appointment_id=exclude_appointment_id,
                )
                chair_overlap_count = sum(
                    1 for apt in chair_appointments
                    if intervals_overlap(start, end, time_to_minutes(apt.start_time), time_to_minutes(apt.end_time))
                )

            staff_capacity = ConflictCheckService.resolve_staff_capacity(
                db, clinic_id, staff_id, settings_cache
            )
            remaining_capacity = max(0, staff_capacity - staff_overlap_count)

            message = None
            if chair_overlap_count > 0:
                message = f"診察台{chair_number}番はこの時間帯に既に使用されています"
            elif staff_overlap_count >= staff_capacity:
                message = "このスタッフはこの時間帯に予約を受け付けられません"

            return ConflictCheckResult(
                can_book=message is None,
                staff_overlap_count=staff_overlap_count,
                chair_overlap_count=chair_overlap_count,
                staff_capacity=staff_capacity,
                remaining_capacity=remaining_capacity,
                message=message,
            )
        except Exception as e:
            logger.exception(f"Conflict check failed for staff {staff_id} on {appointment_date}: {e}")
            return ConflictCheckResult(
                can_book=False,
                message="予約可否の確認中にエラーが発生しました",
            )
