"""
Business hours model for the clinic's weekly opening schedule.

Each clinic has at most one row per day of week. A day can be marked closed
outright, or carry open/close times; a day with no row at all is treated as
closed by the booking rules.
"""

from datetime import time, datetime
from typing import Optional

from sqlalchemy import Time, TIMESTAMP, ForeignKey, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class BusinessHours(Base):
    """
    Weekly opening hours for one day of the week.

    The clinic is open on that day only if ``is_closed`` is false and both
    ``open_time`` and ``close_time`` are set.
    """

    __tablename__ = "business_hours"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the business hours record."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"))
    """Reference to the clinic."""

    day_of_week: Mapped[int] = mapped_column()
    """
    Day of the week (0=Sunday, 1=Monday, ..., 6=Saturday).
    """

    open_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    """Opening time. NULL means no opening time is configured."""

    close_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    """Closing time. NULL means no closing time is configured."""

    is_closed: Mapped[bool] = mapped_column(default=False)
    """Whether the clinic is closed all day."""

    # Metadata
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="business_hours")

    __table_args__ = (
        UniqueConstraint("clinic_id", "day_of_week", name="uq_business_hours_clinic_day"),
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="check_business_hours_day_of_week"),
        Index("idx_business_hours_clinic_day", "clinic_id", "day_of_week"),
    )

    @property
    def is_open(self) -> bool:
        """True if the clinic accepts bookings on this day."""
        return not self.is_closed and self.open_time is not None and self.close_time is not None

    def __repr__(self) -> str:
        if not self.is_open:
            return f"<BusinessHours(clinic_id={self.clinic_id}, day_of_week={self.day_of_week}, closed)>"
        return (
            f"<BusinessHours(clinic_id={self.clinic_id}, day_of_week={self.day_of_week}, "
            f"open={self.open_time}, close={self.close_time})>"
        )
