"""
Patient risk score service.

Scores a patient's booking reliability from their appointment history.
Cancellations and no-shows raise the score; no-shows weigh twice as much.
Scoring is best-effort: a failed read yields a zero score instead of an error.
"""

import logging
import math
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from core.constants import (
    CANCELLED_STATUS,
    NO_SHOW_STATUS,
    RISK_CANCELLATION_WEIGHT,
    RISK_HIGH_THRESHOLD,
    RISK_MEDIUM_THRESHOLD,
    RISK_NO_SHOW_WEIGHT,
    RISK_SCORE_MAX,
    RISK_SCORE_MIN,
    RISK_SCORE_SCALE,
)
from shared_types.risk import RiskScore, RiskTier
from utils.scheduling_queries import find_appointment_history

logger = logging.getLogger(__name__)


def risk_tier_for_score(score: int) -> RiskTier:
    if score < RISK_MEDIUM_THRESHOLD:
        return RiskTier.LOW
    if score < RISK_HIGH_THRESHOLD:
        return RiskTier.MEDIUM
    return RiskTier.HIGH


class PatientRiskService:
    """Service class for patient reliability scoring."""

    @staticmethod
    def calculate_risk_score(statuses: Iterable[str]) -> RiskScore:
        """
        Compute the risk score from appointment statuses.

        score = round((cancellation_rate * 50 + no_show_rate * 100) * 100),
        rounded half up and clamped to [0, 100]. No history scores 0 (low).
        """
        status_list = list(statuses)
        total = len(status_list)
        cancellation_count = sum(1 for s in status_list if s == CANCELLED_STATUS)
        no_show_count = sum(1 for s in status_list if s == NO_SHOW_STATUS)

        if total == 0:
            return RiskScore(score=0, tier=RiskTier.LOW)

        cancellation_rate = cancellation_count / total
        no_show_rate = no_show_count / total
        raw = (cancellation_rate * RISK_CANCELLATION_WEIGHT + no_show_rate * RISK_NO_SHOW_WEIGHT) * RISK_SCORE_SCALE
        score = min(RISK_SCORE_MAX, max(RISK_SCORE_MIN, math.floor(raw + 0.5)))

        return RiskScore(
            score=score,
            tier=risk_tier_for_score(score),
            total_appointments=total,
            cancellation_count=cancellation_count,
            no_show_count=no_show_count,
        )

    @staticmethod
    def get_patient_risk_score(db: Session, patient_id: int, clinic_id: Optional[int] = None) -> RiskScore:
        """
        Get the risk score of a patient from their full appointment history.

        Args:
            db: Database session
            patient_id: Patient ID
            clinic_id: Only count appointments at this clinic, if given

        Returns:
            RiskScore; a zero, low-tier score if the history could not be read
        """
        try:
            history = find_appointment_history(db, patient_id, clinic_id)
        except Exception as e:
            logger.warning(f"Failed to load appointment history for patient {patient_id}, returning zero risk: {e}")
            return RiskScore(score=0, tier=RiskTier.LOW)

        return PatientRiskService.calculate_risk_score(apt.status for apt in history)
