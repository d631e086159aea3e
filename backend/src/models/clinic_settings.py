"""
Clinic settings model for per-clinic booking policy.

Settings are optional: when a clinic has no row, the settings service falls
back to the defaults in core.constants.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import TIMESTAMP, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import (
    DEFAULT_BOOKING_ADVANCE_DAYS,
    DEFAULT_BOOKING_BUFFER_MINUTES,
    DEFAULT_CHAIRS_COUNT,
)


class ClinicSettings(Base):
    """
    Booking policy for one clinic.

    - ``chairs_count``: number of treatment chairs shared by all staff.
    - ``booking_advance_days``: how many days ahead bookings may be made.
    - ``booking_buffer_minutes``: stored for display; not enforced by validation.
    - ``default_staff_capacity``: concurrency used for staff without their own
      ``max_concurrent_appointments``.
    """

    __tablename__ = "clinic_settings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"), unique=True)
    """Reference to the clinic. One settings row per clinic."""

    chairs_count: Mapped[int] = mapped_column(default=DEFAULT_CHAIRS_COUNT)
    booking_advance_days: Mapped[int] = mapped_column(default=DEFAULT_BOOKING_ADVANCE_DAYS)
    booking_buffer_minutes: Mapped[int] = mapped_column(default=DEFAULT_BOOKING_BUFFER_MINUTES)
    default_staff_capacity: Mapped[Optional[int]] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    clinic = relationship("Clinic", back_populates="settings")

    __table_args__ = (
        CheckConstraint("chairs_count >= 0", name="check_chairs_count_non_negative"),
        CheckConstraint("booking_advance_days >= 0", name="check_booking_advance_days_non_negative"),
        CheckConstraint("booking_buffer_minutes >= 0", name="check_booking_buffer_non_negative"),
        CheckConstraint(
            "default_staff_capacity IS NULL OR default_staff_capacity >= 1",
            name="check_default_staff_capacity_positive",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ClinicSettings(clinic_id={self.clinic_id}, chairs_count={self.chairs_count}, "
            f"booking_advance_days={self.booking_advance_days})>"
        )
