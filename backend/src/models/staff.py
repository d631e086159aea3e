"""
Staff model representing clinicians and other bookable clinic staff.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, ForeignKey, TIMESTAMP, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Staff(Base):
    """
    Staff member who can be assigned to appointments.

    Each staff member may declare how many appointments they can run in
    parallel (e.g. a dentist working two chairs). NULL means "use the clinic
    default", which itself defaults to exclusive booking.
    """

    __tablename__ = "staff"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the staff member."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"))
    """Reference to the clinic employing this staff member."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    role: Mapped[str] = mapped_column(String(50))
    """Role label, e.g. 'doctor', 'hygienist', 'receptionist'."""

    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    max_concurrent_appointments: Mapped[Optional[int]] = mapped_column(nullable=True)
    """
    Maximum number of appointments this staff member may hold at overlapping times.

    Only the conflict-check preview honours values above 1; the strict
    validation pipeline always treats staff bookings as exclusive.
    """

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="staff")
    appointments = relationship("Appointment", back_populates="staff")

    __table_args__ = (
        CheckConstraint(
            "max_concurrent_appointments IS NULL OR max_concurrent_appointments >= 1",
            name="check_staff_capacity_positive",
        ),
        Index("idx_staff_clinic_id", "clinic_id"),
    )

    def __repr__(self) -> str:
        return f"<Staff(id={self.id}, name={self.name}, role={self.role})>"
