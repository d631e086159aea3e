"""
Holiday model for dates on which the clinic does not accept bookings.
"""

from datetime import date as date_type, datetime
from typing import Optional

from sqlalchemy import Date, String, TIMESTAMP, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Holiday(Base):
    """A closed date for one clinic, with an optional human-readable reason."""

    __tablename__ = "holidays"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"))
    """Reference to the clinic."""

    date: Mapped[date_type] = mapped_column(Date)
    """The closed date."""

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Optional reason shown to users, e.g. '年末年始休業'."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    clinic = relationship("Clinic", back_populates="holidays")

    __table_args__ = (
        UniqueConstraint("clinic_id", "date", name="uq_holidays_clinic_date"),
    )

    def __repr__(self) -> str:
        return f"<Holiday(clinic_id={self.clinic_id}, date={self.date}, reason={self.reason})>"
