"""
Shared type definitions for the clinic scheduler backend.

This module contains the pydantic result types used across services and the API.
"""

from shared_types.risk import RiskScore, RiskTier
from shared_types.validation import (
    AppointmentValidationInput,
    ConflictCheckResult,
    RuleViolation,
    ValidationErrorCode,
    ValidationResult,
)

__all__ = [
    "AppointmentValidationInput",
    "ConflictCheckResult",
    "RiskScore",
    "RiskTier",
    "RuleViolation",
    "ValidationErrorCode",
    "ValidationResult",
]
