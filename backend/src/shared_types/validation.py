"""
Result types for appointment validation and conflict checks.

Every rule violation has its own model, discriminated by ``code``, so each
code carries exactly the structured details that belong to it. Callers map
the codes to localized text; ``message`` is the default Japanese text shown
when no mapping exists (or the holiday reason, when one is stored).
"""

from datetime import date as date_type
from enum import Enum
from typing import Annotated, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

HH_MM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ValidationErrorCode(str, Enum):
    """Stable identifiers of every rule the validation pipeline can report."""
    INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
    DURATION_TOO_SHORT = "DURATION_TOO_SHORT"
    DURATION_TOO_LONG = "DURATION_TOO_LONG"
    APPOINTMENT_IN_PAST = "APPOINTMENT_IN_PAST"
    BOOKING_TOO_FAR_AHEAD = "BOOKING_TOO_FAR_AHEAD"
    BUSINESS_HOURS_NOT_CONFIGURED = "BUSINESS_HOURS_NOT_CONFIGURED"
    BUSINESS_HOURS_INVALID = "BUSINESS_HOURS_INVALID"
    CLINIC_CLOSED = "CLINIC_CLOSED"
    OUTSIDE_BUSINESS_HOURS = "OUTSIDE_BUSINESS_HOURS"
    HOLIDAY = "HOLIDAY"
    STAFF_CONFLICT = "STAFF_CONFLICT"
    CHAIR_CAPACITY_EXCEEDED = "CHAIR_CAPACITY_EXCEEDED"
    SETTINGS_NOT_FOUND = "SETTINGS_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# Details payloads

class DurationDetails(BaseModel):
    duration_minutes: int
    limit_minutes: int


class BookingWindowDetails(BaseModel):
    advance_days: int
    max_date: date_type


class OutsideBusinessHoursDetails(BaseModel):
    """Configured opening window, for client-side display."""
    open_time: str
    close_time: str
    start_time: str
    end_time: str


class HolidayDetails(BaseModel):
    date: date_type
    reason: Optional[str] = None


class ChairCapacityDetails(BaseModel):
    chairs_count: int
    overlapping_count: int


class ValidationFailureDetails(BaseModel):
    error: str


# Violations

class _Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    field: Optional[str] = None  # "date", "time" or "staff_id"


class InvalidTimeRangeViolation(_Violation):
    code: Literal[ValidationErrorCode.INVALID_TIME_RANGE] = ValidationErrorCode.INVALID_TIME_RANGE


class DurationTooShortViolation(_Violation):
    code: Literal[ValidationErrorCode.DURATION_TOO_SHORT] = ValidationErrorCode.DURATION_TOO_SHORT
    details: DurationDetails


class DurationTooLongViolation(_Violation):
    code: Literal[ValidationErrorCode.DURATION_TOO_LONG] = ValidationErrorCode.DURATION_TOO_LONG
    details: DurationDetails


class AppointmentInPastViolation(_Violation):
    code: Literal[ValidationErrorCode.APPOINTMENT_IN_PAST] = ValidationErrorCode.APPOINTMENT_IN_PAST


class BookingTooFarAheadViolation(_Violation):
    code: Literal[ValidationErrorCode.BOOKING_TOO_FAR_AHEAD] = ValidationErrorCode.BOOKING_TOO_FAR_AHEAD
    details: BookingWindowDetails


class BusinessHoursNotConfiguredViolation(_Violation):
    code: Literal[ValidationErrorCode.BUSINESS_HOURS_NOT_CONFIGURED] = ValidationErrorCode.BUSINESS_HOURS_NOT_CONFIGURED


class BusinessHoursInvalidViolation(_Violation):
    code: Literal[ValidationErrorCode.BUSINESS_HOURS_INVALID] = ValidationErrorCode.BUSINESS_HOURS_INVALID


class ClinicClosedViolation(_Violation):
    code: Literal[ValidationErrorCode.CLINIC_CLOSED] = ValidationErrorCode.CLINIC_CLOSED


class OutsideBusinessHoursViolation(_Violation):
    code: Literal[ValidationErrorCode.OUTSIDE_BUSINESS_HOURS] = ValidationErrorCode.OUTSIDE_BUSINESS_HOURS
    details: OutsideBusinessHoursDetails


class HolidayViolation(_Violation):
    code: Literal[ValidationErrorCode.HOLIDAY] = ValidationErrorCode.HOLIDAY
    details: HolidayDetails


class StaffConflictViolation(_Violation):
    code: Literal[ValidationErrorCode.STAFF_CONFLICT] = ValidationErrorCode.STAFF_CONFLICT


class ChairCapacityExceededViolation(_Violation):
    code: Literal[ValidationErrorCode.CHAIR_CAPACITY_EXCEEDED] = ValidationErrorCode.CHAIR_CAPACITY_EXCEEDED
    details: ChairCapacityDetails


class SettingsNotFoundViolation(_Violation):
    code: Literal[ValidationErrorCode.SETTINGS_NOT_FOUND] = ValidationErrorCode.SETTINGS_NOT_FOUND


class ValidationFailureViolation(_Violation):
    """Unexpected storage failure while validating."""
    code: Literal[ValidationErrorCode.VALIDATION_ERROR] = ValidationErrorCode.VALIDATION_ERROR
    details: ValidationFailureDetails


RuleViolation = Annotated[
    Union[
        InvalidTimeRangeViolation,
        DurationTooShortViolation,
        DurationTooLongViolation,
        AppointmentInPastViolation,
        BookingTooFarAheadViolation,
        BusinessHoursNotConfiguredViolation,
        BusinessHoursInvalidViolation,
        ClinicClosedViolation,
        OutsideBusinessHoursViolation,
        HolidayViolation,
        StaffConflictViolation,
        ChairCapacityExceededViolation,
        SettingsNotFoundViolation,
        ValidationFailureViolation,
    ],
    Field(discriminator="code"),
]


class ValidationResult(BaseModel):
    """
    Outcome of the validation pipeline.

    ``valid`` is True exactly when ``errors`` is empty; any other combination
    is rejected. ``from_errors`` derives ``valid`` from the errors.
    """
    valid: bool
    errors: List[RuleViolation] = []

    @model_validator(mode="after")
    def valid_iff_no_errors(self) -> "ValidationResult":
        if self.valid != (len(self.errors) == 0):
            raise ValueError("valid must be True exactly when errors is empty")
        return self

    @classmethod
    def from_errors(cls, errors: Sequence[RuleViolation]) -> "ValidationResult":
        return cls(valid=len(errors) == 0, errors=list(errors))

    @property
    def error_codes(self) -> List[str]:
        """Codes of all violations, in pipeline order."""
        return [error.code.value for error in self.errors]


class AppointmentValidationInput(BaseModel):
    """A proposed booking to validate; ``exclude_appointment_id`` is set when revalidating an update."""
    clinic_id: int
    date: date_type
    start_time: str = Field(..., pattern=HH_MM_PATTERN, description="Start time (HH:MM)")
    end_time: str = Field(..., pattern=HH_MM_PATTERN, description="End time (HH:MM)")
    staff_id: int
    chair_number: Optional[int] = Field(None, ge=1)
    exclude_appointment_id: Optional[int] = None


class ConflictCheckResult(BaseModel):
    """Capacity summary returned by the booking preview."""
    can_book: bool
    staff_overlap_count: int = 0
    chair_overlap_count: int = 0
    staff_capacity: int = 1
    remaining_capacity: int = 0
    message: Optional[str] = None
