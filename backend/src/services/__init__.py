"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across multiple API endpoints.
"""

from .settings_service import SettingsService, ClinicSettingsCache
from .patient_service import PatientService
from .appointment_validation_service import AppointmentValidationService
from .conflict_check_service import ConflictCheckService
from .patient_risk_service import PatientRiskService
from .appointment_service import AppointmentService

__all__ = [
    "SettingsService",
    "ClinicSettingsCache",
    "PatientService",
    "AppointmentValidationService",
    "ConflictCheckService",
    "PatientRiskService",
    "AppointmentService",
]
