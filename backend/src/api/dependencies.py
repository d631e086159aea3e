"""
Shared FastAPI dependencies for the scheduling API.
"""

from fastapi import Request

from core.config import DEFAULT_CLINIC_ID
from services.settings_service import ClinicSettingsCache


def get_clinic_id() -> int:
    """Clinic the request operates on (single-tenant deployments use the configured clinic)."""
    return DEFAULT_CLINIC_ID


def get_settings_cache(request: Request) -> ClinicSettingsCache:
    """The application's clinic settings cache."""
    return request.app.state.clinic_settings_cache
