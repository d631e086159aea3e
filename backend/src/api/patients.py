# pyright: reportMissingTypeStubs=false
"""
Patient API endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.dependencies import get_clinic_id
from core.database import get_db
from services.patient_risk_service import PatientRiskService
from services.patient_service import PatientService
from shared_types.risk import RiskScore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/patients/{patient_id}/risk-score", summary="Get a patient's reliability risk score")
async def get_patient_risk_score(
    patient_id: int,
    clinic_id: int = Depends(get_clinic_id),
    db: Session = Depends(get_db)
) -> RiskScore:
    """Score derived from the patient's cancellations and no-shows at this clinic."""
    PatientService.get_patient(db, patient_id, clinic_id)
    return PatientRiskService.get_patient_risk_score(db, patient_id, clinic_id)
