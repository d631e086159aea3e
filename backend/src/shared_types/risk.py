"""
Types for the patient reliability (risk) score.
"""

from enum import Enum

from pydantic import BaseModel, Field


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskScore(BaseModel):
    """Derived reliability score with the raw counts it was computed from."""
    score: int = Field(..., ge=0, le=100)
    tier: RiskTier
    total_appointments: int = 0
    cancellation_count: int = 0
    no_show_count: int = 0
