"""
Settings service for clinic booking policy.

Clinic settings are read on every validation, so they are served through a
short-lived in-process cache. The cache is an explicit object owned by the
application (``app.state.clinic_settings_cache``) and passed into the
services that need it; writes through this service invalidate it.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import CLINIC_SETTINGS_CACHE_TTL_SECONDS
from core.constants import (
    DEFAULT_BOOKING_ADVANCE_DAYS,
    DEFAULT_BOOKING_BUFFER_MINUTES,
    DEFAULT_CHAIRS_COUNT,
    DEFAULT_STAFF_CAPACITY,
)
from models import Clinic, ClinicSettings
from utils.scheduling_queries import find_clinic_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClinicSettingsSnapshot:
    """Immutable view of a clinic's booking policy, with defaults applied."""
    clinic_id: int
    chairs_count: int = DEFAULT_CHAIRS_COUNT
    booking_advance_days: int = DEFAULT_BOOKING_ADVANCE_DAYS
    booking_buffer_minutes: int = DEFAULT_BOOKING_BUFFER_MINUTES
    default_staff_capacity: int = DEFAULT_STAFF_CAPACITY

    @classmethod
    def from_row(cls, row: ClinicSettings) -> "ClinicSettingsSnapshot":
        # Empty or zero values fall back to the defaults
        return cls(
            clinic_id=row.clinic_id,
            chairs_count=row.chairs_count or DEFAULT_CHAIRS_COUNT,
            booking_advance_days=row.booking_advance_days or DEFAULT_BOOKING_ADVANCE_DAYS,
            booking_buffer_minutes=row.booking_buffer_minutes or DEFAULT_BOOKING_BUFFER_MINUTES,
            default_staff_capacity=row.default_staff_capacity or DEFAULT_STAFF_CAPACITY,
        )


class ClinicSettingsCache:
    """
    In-process TTL cache of clinic settings snapshots, keyed by clinic ID.

    Args:
        ttl_seconds: How long an entry stays fresh
        clock: Monotonic clock in seconds (injectable for tests)
    """

    def __init__(
        self,
        ttl_seconds: float = CLINIC_SETTINGS_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[int, Tuple[float, ClinicSettingsSnapshot]] = {}
        self._lock = threading.Lock()

    def get(self, clinic_id: int) -> Optional[ClinicSettingsSnapshot]:
        """Get a fresh cached snapshot, or None on a miss or an expired entry."""
        with self._lock:
            entry = self._entries.get(clinic_id)
            if entry is None:
                return None
            stored_at, snapshot = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[clinic_id]
                logger.debug(f"Clinic settings cache expired for clinic {clinic_id}")
                return None
            return snapshot

    def set(self, clinic_id: int, snapshot: ClinicSettingsSnapshot) -> None:
        with self._lock:
            self._entries[clinic_id] = (self._clock(), snapshot)

    def invalidate(self, clinic_id: Optional[int] = None) -> None:
        """Drop one clinic's entry, or every entry when clinic_id is None."""
        with self._lock:
            if clinic_id is None:
                self._entries.clear()
            else:
                self._entries.pop(clinic_id, None)
        logger.debug(f"Clinic settings cache invalidated (clinic_id={clinic_id})")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SettingsService:
    """
    Service class for clinic settings operations.

    Provides cached, default-filled access to the booking policy used by the
    validation engine and the conflict check.
    """

    @staticmethod
    def get_clinic_settings(
        db: Session,
        clinic_id: int,
        cache: Optional[ClinicSettingsCache] = None
    ) -> Optional[ClinicSettingsSnapshot]:
        """
        Get the booking policy of a clinic.

        Args:
            db: Database session
            clinic_id: Clinic ID
            cache: Settings cache to read through, if any

        Returns:
            Snapshot of the clinic's settings. A clinic without a settings row
            gets the defaults (not cached, so a later insert is seen at once).
            None if the settings could not be read.
        """
        if cache is not None:
            cached = cache.get(clinic_id)
            if cached is not None:
                return cached

        # Savepoint: a failed read must not abort the caller's transaction
        try:
            with db.begin_nested():
                row = find_clinic_settings(db, clinic_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load clinic settings for clinic {clinic_id}: {e}")
            return None

        if row is None:
            return ClinicSettingsSnapshot(clinic_id=clinic_id)

        snapshot = ClinicSettingsSnapshot.from_row(row)
        if cache is not None:
            cache.set(clinic_id, snapshot)
        return snapshot

    @staticmethod
    def update_clinic_settings(
        db: Session,
        clinic_id: int,
        chairs_count: Optional[int] = None,
        booking_advance_days: Optional[int] = None,
        booking_buffer_minutes: Optional[int] = None,
        default_staff_capacity: Optional[int] = None,
        cache: Optional[ClinicSettingsCache] = None
    ) -> ClinicSettingsSnapshot:
        """
        Create or update a clinic's settings. Only the given values are changed.

        Raises:
            HTTPException: 404 if the clinic does not exist, 500 on storage errors
        """
        clinic = db.query(Clinic).filter(Clinic.id == clinic_id).first()
        if not clinic:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="クリニックが見つかりません"
            )

        try:
            row = find_clinic_settings(db, clinic_id)
            if row is None:
                row = ClinicSettings(
                    clinic_id=clinic_id,
                    chairs_count=DEFAULT_CHAIRS_COUNT,
                    booking_advance_days=DEFAULT_BOOKING_ADVANCE_DAYS,
                    booking_buffer_minutes=DEFAULT_BOOKING_BUFFER_MINUTES,
                )
                db.add(row)

            if chairs_count is not None:
                row.chairs_count = chairs_count
            if booking_advance_days is not None:
                row.booking_advance_days = booking_advance_days
            if booking_buffer_minutes is not None:
                row.booking_buffer_minutes = booking_buffer_minutes
            if default_staff_capacity is not None:
                row.default_staff_capacity = default_staff_capacity

            db.commit()
            db.refresh(row)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Failed to update clinic settings for clinic {clinic_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="クリニック設定の更新に失敗しました"
            )
        finally:
            if cache is not None:
                cache.invalidate(clinic_id)

        logger.info(f"Updated clinic settings for clinic {clinic_id}")
        return ClinicSettingsSnapshot.from_row(row)
