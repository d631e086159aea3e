"""
Appointment validation service.

Decides whether a proposed booking may be accepted. Each clinic rule is a
separate static method returning either a violation or None, and
``validate_appointment`` runs all of them in a fixed order, collecting every
violation so the caller sees all reasons for a rejection in one response.

Rule order:
1. Time logic (range and duration bounds)
2. Booking window (not in the past, not beyond the advance window)
3. Business hours and holiday
4. Staff availability (strict: any overlap for the same staff member)
5. Chair capacity (clinic-wide chair pool)

The staff rule here is stricter than the capacity-aware booking preview in
ConflictCheckService; the two policies are kept separate.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.constants import MAX_APPOINTMENT_DURATION_MINUTES, MIN_APPOINTMENT_DURATION_MINUTES
from services.settings_service import ClinicSettingsCache, ClinicSettingsSnapshot, SettingsService
from shared_types.validation import (
    AppointmentInPastViolation,
    AppointmentValidationInput,
    BookingTooFarAheadViolation,
    BookingWindowDetails,
    BusinessHoursInvalidViolation,
    BusinessHoursNotConfiguredViolation,
    ChairCapacityDetails,
    ChairCapacityExceededViolation,
    ClinicClosedViolation,
    DurationDetails,
    DurationTooLongViolation,
    DurationTooShortViolation,
    HolidayDetails,
    HolidayViolation,
    InvalidTimeRangeViolation,
    OutsideBusinessHoursDetails,
    OutsideBusinessHoursViolation,
    RuleViolation,
    SettingsNotFoundViolation,
    StaffConflictViolation,
    ValidationFailureDetails,
    ValidationFailureViolation,
    ValidationResult,
)
from utils.datetime_utils import (
    WallClock,
    clinic_now,
    combine_clinic_datetime,
    day_of_week_index,
    ensure_clinic_tz,
    format_time,
    intervals_overlap,
    time_to_minutes,
)
from utils.scheduling_queries import find_appointments, find_business_hours, find_holiday

logger = logging.getLogger(__name__)

CLOSED_DAY_MESSAGE = "この日は休診日です"


class AppointmentValidationService:
    """
    Service class for appointment validation.

    All methods are static; storage access goes through the given session.
    """

    @staticmethod
    def validate_time_logic(start_time: WallClock, end_time: WallClock) -> Optional[RuleViolation]:
        """
        Check the time range and duration bounds.

        Only the first failing check is reported: a reversed range has no
        meaningful duration.
        """
        start = time_to_minutes(start_time)
        end = time_to_minutes(end_time)

        if start >= end:
            return InvalidTimeRangeViolation(
                message="終了時刻は開始時刻より後である必要があります",
                field="time",
            )

        duration = end - start
        if duration < MIN_APPOINTMENT_DURATION_MINUTES:
            return DurationTooShortViolation(
                message=f"予約時間は{MIN_APPOINTMENT_DURATION_MINUTES}分以上である必要があります",
                field="time",
                details=DurationDetails(
                    duration_minutes=duration,
                    limit_minutes=MIN_APPOINTMENT_DURATION_MINUTES,
                ),
            )

        if duration > MAX_APPOINTMENT_DURATION_MINUTES:
            return DurationTooLongViolation(
                message=f"予約時間は{MAX_APPOINTMENT_DURATION_MINUTES // 60}時間以内である必要があります",
                field="time",
                details=DurationDetails(
                    duration_minutes=duration,
                    limit_minutes=MAX_APPOINTMENT_DURATION_MINUTES,
                ),
            )

        return None

    @staticmethod
    def validate_not_in_past(
        appointment_date: date,
        start_time: WallClock,
        now: datetime
    ) -> Optional[RuleViolation]:
        """Reject appointments whose start has already passed on the clinic clock."""
        starts_at = combine_clinic_datetime(appointment_date, start_time)
        if starts_at < ensure_clinic_tz(now):
            return AppointmentInPastViolation(
                message="過去の日時には予約できません",
                field="date",
            )
        return None

    @staticmethod
    def validate_booking_window(
        appointment_date: date,
        settings: Optional[ClinicSettingsSnapshot],
        now: datetime
    ) -> Optional[RuleViolation]:
        """
        Reject appointments beyond the clinic's booking advance window.

        Skipped (returns None) when settings could not be loaded.
        """
        if settings is None:
            logger.warning("Clinic settings unavailable, skipping booking window check")
            return None

        advance_days = settings.booking_advance_days
        max_date = ensure_clinic_tz(now).date() + timedelta(days=advance_days)
        if appointment_date > max_date:
            return BookingTooFarAheadViolation(
                message=f"予約は{advance_days}日先まで可能です",
                field="date",
                details=BookingWindowDetails(advance_days=advance_days, max_date=max_date),
            )
        return None

    @staticmethod
    def validate_business_hours(
        db: Session,
        clinic_id: int,
        appointment_date: date,
        start_time: WallClock,
        end_time: WallClock
    ) -> Optional[RuleViolation]:
        """Check the weekday's opening hours. A weekday without a row cannot be booked."""
        hours = find_business_hours(db, clinic_id, day_of_week_index(appointment_date))

        if hours is None:
            return BusinessHoursNotConfiguredViolation(
                message="診療時間が設定されていません",
                field="date",
            )

        if hours.is_closed:
            return ClinicClosedViolation(message=CLOSED_DAY_MESSAGE, field="date")

        if hours.open_time is None or hours.close_time is None:
            return BusinessHoursInvalidViolation(
                message="診療時間が不正です",
                field="date",
            )

        if (time_to_minutes(start_time) < time_to_minutes(hours.open_time)
                or time_to_minutes(end_time) > time_to_minutes(hours.close_time)):
            open_label = format_time(hours.open_time)
            close_label = format_time(hours.close_time)
            return OutsideBusinessHoursViolation(
                message=f"診療時間外です（診療時間: {open_label} - {close_label}）",
                field="time",
                details=OutsideBusinessHoursDetails(
                    open_time=open_label,
                    close_time=close_label,
                    start_time=format_time(start_time),
                    end_time=format_time(end_time),
                ),
            )

        return None

    @staticmethod
    def validate_holiday(db: Session, clinic_id: int, appointment_date: date) -> Optional[RuleViolation]:
        """
        Reject holidays. The stored reason, if any, becomes the message.

        A failed holiday lookup is logged and treated as "not a holiday". The
        lookup runs in a savepoint so the failure leaves the session usable.
        """
        try:
            with db.begin_nested():
                holiday = find_holiday(db, clinic_id, appointment_date)
        except SQLAlchemyError as e:
            logger.warning(f"Holiday lookup failed for clinic {clinic_id} on {appointment_date}: {e}")
            return None

        if holiday is None:
            return None

        return HolidayViolation(
            message=holiday.reason or CLOSED_DAY_MESSAGE,
            field="date",
            details=HolidayDetails(date=holiday.date, reason=holiday.reason),
        )

    @staticmethod
    def validate_staff_availability(
        db: Session,
        clinic_id: int,
        appointment_date: date,
        start_time: WallClock,
        end_time: WallClock,
        staff_id: int,
        exclude_appointment_id: Optional[int] = None
    ) -> Optional[RuleViolation]:
        """
        Reject any overlap with the staff member's other non-cancelled appointments.

        Declared staff capacity is not consulted: a staff member is never
        double-booked by this rule.
        """
        appointments = find_appointments(
            db, clinic_id, appointment_date,
            staff_id=staff_id,
            exclude_appointment_id=exclude_appointment_id,
        )

        start = time_to_minutes(start_time)
        end = time_to_minutes(end_time)
        conflict = any(
            intervals_overlap(start, end, time_to_minutes(apt.start_time), time_to_minutes(apt.end_time))
            for apt in appointments
        )

        if conflict:
            return StaffConflictViolation(
                message="このスタッフは既に予約が入っています",
                field="staff_id",
            )
        return None

    @staticmethod
    def validate_chair_capacity(
        db: Session,
        clinic_id: int,
        appointment_date: date,
        start_time: WallClock,
        end_time: WallClock,
        settings: Optional[ClinicSettingsSnapshot],
        exclude_appointment_id: Optional[int] = None
    ) -> Optional[RuleViolation]:
        """
        Reject when every chair in the clinic-wide pool is already taken.

        Counts all non-cancelled appointments of the clinic (any staff) that
        overlap the proposed interval; a count at or above ``chairs_count``
        is a violation.
        """
        if settings is None:
            return SettingsNotFoundViolation(message="クリニック設定が見つかりません")

        chairs_count = settings.chairs_count
        appointments = find_appointments(
            db, clinic_id, appointment_date,
            exclude_appointment_id=exclude_appointment_id,
        )

        start = time_to_minutes(start_time)
        end = time_to_minutes(end_time)
        overlapping_count = sum(
            1 for apt in appointments
            if intervals_overlap(start, end, time_to_minutes(apt.start_time), time_to_minutes(apt.end_time))
        )

        if overlapping_count >= chairs_count:
            return ChairCapacityExceededViolation(
                message=f"この時間帯は予約が満席です（診察台数: {chairs_count}）",
                field="time",
                details=ChairCapacityDetails(
                    chairs_count=chairs_count,
                    overlapping_count=overlapping_count,
                ),
            )
        return None

    @staticmethod
    def validate_appointment(
        db: Session,
        data: AppointmentValidationInput,
        now: Optional[datetime] = None,
        settings_cache: Optional[ClinicSettingsCache] = None
    ) -> ValidationResult:
        """
        Run every rule against a proposed booking.

        No rule short-circuits another. Any unexpected failure (typically a
        storage error) is reported as a single VALIDATION_ERROR instead of
        being raised.

        Args:
            db: Database session
            data: Proposed booking
            now: Current time (defaults to the clinic clock)
            settings_cache: Clinic settings cache to read through, if any

        Returns:
            ValidationResult listing every violated rule in rule order
        """
        current = now or clinic_now()
        errors: List[RuleViolation] = []

        try:
            settings = SettingsService.get_clinic_settings(db, data.clinic_id, cache=settings_cache)

            violations = [
                AppointmentValidationService.validate_time_logic(data.start_time, data.end_time),
                AppointmentValidationService.validate_not_in_past(data.date, data.start_time, current),
                AppointmentValidationService.validate_booking_window(data.date, settings, current),
                AppointmentValidationService.validate_business_hours(
                    db, data.clinic_id, data.date, data.start_time, data.end_time
                ),
                AppointmentValidationService.validate_holiday(db, data.clinic_id, data.date),
                AppointmentValidationService.validate_staff_availability(
                    db, data.clinic_id, data.date, data.start_time, data.end_time,
                    data.staff_id, data.exclude_appointment_id
                ),
                AppointmentValidationService.validate_chair_capacity(
                    db, data.clinic_id, data.date, data.start_time, data.end_time,
                    settings, data.exclude_appointment_id
                ),
            ]
            errors = [violation for violation in violations if violation is not None]
        except Exception as e:
            logger.exception(f"Appointment validation failed for clinic {data.clinic_id}: {e}")
            return ValidationResult.from_errors([
                ValidationFailureViolation(
                    message="予約検証中にエラーが発生しました",
                    details=ValidationFailureDetails(error=str(e)),
                )
            ])

        if errors:
            logger.debug(
                f"Appointment validation rejected for clinic {data.clinic_id} on {data.date} "
                f"{data.start_time}-{data.end_time}: {[error.code.value for error in errors]}"
            )
        return ValidationResult.from_errors(errors)
