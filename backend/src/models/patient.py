"""
Patient model representing people who book appointments at the clinic.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, ForeignKey, TIMESTAMP, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Patient(Base):
    """
    Patient entity.

    Patients belong to a single clinic. Their appointment history (any status)
    feeds the reliability risk score.
    """

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the patient."""

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"))
    """Reference to the clinic this patient is registered with."""

    patient_number: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)
    """Clinic-facing patient number (診察券番号)."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    name_kana: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    clinic = relationship("Clinic", back_populates="patients")
    appointments = relationship("Appointment", back_populates="patient")

    __table_args__ = (
        Index("idx_patients_clinic_id", "clinic_id"),
        Index("idx_patients_clinic_phone", "clinic_id", "phone"),
    )

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, patient_number={self.patient_number})>"
