"""
Appointment model representing a booking of a patient with a staff member.

Appointments are never physically deleted: cancelling an appointment moves it
to the 'cancelled' status so the booking history stays auditable. Cancelled
appointments never take part in conflict or capacity checks.
"""

from datetime import date as date_type, datetime, time
from typing import Optional

from sqlalchemy import String, ForeignKey, Index, TIMESTAMP, Date, Time, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import (
    APPOINTMENT_STATUSES,
    CANCELLED_STATUS,
    DEFAULT_APPOINTMENT_STATUS,
    MAX_NOTES_LENGTH,
    MAX_STRING_LENGTH,
)
from utils.datetime_utils import format_time


class Appointment(Base):
    """
    Appointment entity for one patient, one staff member and one time range.

    Times are naive wall-clock values on the clinic clock. The interval is
    half-open: an appointment ending at 10:00 does not overlap one starting
    at 10:00.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the appointment."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"))
    """Reference to the owning clinic."""

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id", ondelete="CASCADE"))
    """Reference to the patient who booked this appointment."""

    staff_id: Mapped[int] = mapped_column(ForeignKey("staff.id"))
    """Reference to the staff member running the appointment."""

    chair_number: Mapped[Optional[int]] = mapped_column(nullable=True)
    """Optional treatment chair (shared resource) number."""

    date: Mapped[date_type] = mapped_column(Date)
    """Calendar date of the appointment."""

    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

    treatment_type: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Treatment descriptor, e.g. '定期検診'."""

    status: Mapped[str] = mapped_column(String(20), default=DEFAULT_APPOINTMENT_STATUS)
    """One of 'pending', 'confirmed', 'completed', 'cancelled', 'no_show'."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="appointments")
    patient = relationship("Patient", back_populates="appointments")
    staff = relationship("Staff", back_populates="appointments")

    __table_args__ = (
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in APPOINTMENT_STATUSES) + ")",
            name="check_valid_appointment_status",
        ),
        CheckConstraint("start_time < end_time", name="check_appointment_time_range"),
        CheckConstraint(f"length(notes) <= {MAX_NOTES_LENGTH}", name="check_appointment_notes_length"),
        CheckConstraint("chair_number IS NULL OR chair_number >= 1", name="check_chair_number_positive"),
        # Conflict queries: same clinic and day, optionally the same staff member
        Index("idx_appointments_clinic_date", "clinic_id", "date"),
        Index("idx_appointments_clinic_date_staff", "clinic_id", "date", "staff_id"),
        Index("idx_appointments_patient", "patient_id"),
        Index("idx_appointments_status", "status"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED_STATUS

    @property
    def time_range_label(self) -> str:
        return f"{format_time(self.start_time)}-{format_time(self.end_time)}"

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, staff_id={self.staff_id}, date={self.date}, "
            f"time={self.time_range_label}, status={self.status})>"
        )
