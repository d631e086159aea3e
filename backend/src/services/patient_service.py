"""
Patient service for the patient lookups and creation that bookings need.
"""

import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from models import Patient
from utils.datetime_utils import clinic_today

logger = logging.getLogger(__name__)


def generate_patient_number() -> str:
    """Generate a clinic-facing patient number, e.g. 'P20250101-3F9A2C'."""
    return f"P{clinic_today():%Y%m%d}-{secrets.token_hex(3).upper()}"


class PatientService:
    """
    Service class for patient operations.

    Contains business logic for patient management that is shared
    across different API endpoints.
    """

    @staticmethod
    def get_patient(db: Session, patient_id: int, clinic_id: int) -> Patient:
        """
        Get a patient of a clinic.

        Raises:
            HTTPException: 404 if the patient does not exist in the clinic
        """
        patient = db.query(Patient).filter(
            Patient.id == patient_id,
            Patient.clinic_id == clinic_id
        ).first()

        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="患者が見つかりません"
            )
        return patient

    @staticmethod
    def create_patient(
        db: Session,
        clinic_id: int,
        name: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        name_kana: Optional[str] = None,
        commit: bool = True
    ) -> Patient:
        """
        Create a new patient with a generated patient number.

        Args:
            db: Database session
            clinic_id: Clinic ID the patient belongs to
            name: Patient name
            phone: Phone number
            email: Email address
            name_kana: Name reading in kana
            commit: Commit immediately; pass False to only flush when the
                caller writes more rows in the same transaction

        Returns:
            Created Patient object
        """
        patient = Patient(
            clinic_id=clinic_id,
            patient_number=generate_patient_number(),
            name=name,
            name_kana=name_kana,
            phone=phone,
            email=email,
        )
        db.add(patient)
        if commit:
            db.commit()
            db.refresh(patient)
        else:
            db.flush()

        logger.info(f"Created patient {patient.id} for clinic {clinic_id}")
        return patient

    @staticmethod
    def ensure_patient_id(
        db: Session,
        clinic_id: int,
        patient_id: Optional[int] = None,
        patient_data: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Resolve the patient for a booking.

        An existing patient ID is verified against the clinic. Otherwise a new
        patient is created (flushed, not committed) from ``patient_data``
        with ``name``, ``phone`` and optional ``email``.

        Raises:
            HTTPException: 404 if patient_id is unknown, 400 if neither is given
        """
        if patient_id is not None:
            return PatientService.get_patient(db, patient_id, clinic_id).id

        if not patient_data:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="患者情報が不足しています"
            )

        patient = PatientService.create_patient(
            db,
            clinic_id=clinic_id,
            name=patient_data["name"],
            phone=patient_data.get("phone"),
            email=patient_data.get("email"),
            commit=False,
        )
        return patient.id
