"""
Clinic model representing a single dental clinic.

A clinic is the top-level entity that owns its staff, patients, appointments
and scheduling configuration (business hours, holidays, settings).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Clinic(Base):
    """
    Clinic entity.

    The clinic row doubles as the lock target for bookings: the appointment
    service takes a row lock on it before validating and writing, so that
    concurrent bookings in one clinic are serialized.
    """

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the clinic."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the clinic."""

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    staff = relationship("Staff", back_populates="clinic", cascade="all, delete-orphan")
    patients = relationship("Patient", back_populates="clinic", cascade="all, delete-orphan")
    appointments = relationship("Appointment", back_populates="clinic", cascade="all, delete-orphan")
    business_hours = relationship("BusinessHours", back_populates="clinic", cascade="all, delete-orphan")
    holidays = relationship("Holiday", back_populates="clinic", cascade="all, delete-orphan")
    settings = relationship("ClinicSettings", back_populates="clinic", uselist=False, cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Clinic(id={self.id}, name={self.name})>"
