# pyright: reportMissingTypeStubs=false
"""
Clinic settings API endpoints.
"""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.dependencies import get_clinic_id, get_settings_cache
from api.responses import ClinicSettingsResponse
from core.database import get_db
from services.settings_service import ClinicSettingsCache, SettingsService

logger = logging.getLogger(__name__)

router = APIRouter()


class ClinicSettingsUpdateRequest(BaseModel):
    """Request model for updating clinic settings. Omitted fields are unchanged."""
    chairs_count: Optional[int] = Field(None, ge=1)
    booking_advance_days: Optional[int] = Field(None, ge=1)
    booking_buffer_minutes: Optional[int] = Field(None, ge=0)
    default_staff_capacity: Optional[int] = Field(None, ge=1)


@router.get("/clinic-settings", summary="Get clinic booking settings")
async def get_clinic_settings(
    clinic_id: int = Depends(get_clinic_id),
    settings_cache: ClinicSettingsCache = Depends(get_settings_cache),
    db: Session = Depends(get_db)
) -> ClinicSettingsResponse:
    snapshot = SettingsService.get_clinic_settings(db, clinic_id, cache=settings_cache)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="クリニック設定を取得できませんでした"
        )
    return ClinicSettingsResponse(**asdict(snapshot))


@router.put("/clinic-settings", summary="Update clinic booking settings")
async def update_clinic_settings(
    request: ClinicSettingsUpdateRequest,
    clinic_id: int = Depends(get_clinic_id),
    settings_cache: ClinicSettingsCache = Depends(get_settings_cache),
    db: Session = Depends(get_db)
) -> ClinicSettingsResponse:
    """Update the settings and drop the clinic's cached copy."""
    snapshot = SettingsService.update_clinic_settings(
        db,
        clinic_id,
        cache=settings_cache,
        **request.model_dump(exclude_none=True),
    )
    return ClinicSettingsResponse(**asdict(snapshot))
