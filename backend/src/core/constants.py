"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_NOTES_LENGTH = 1000  # Free-text appointment notes

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite) - localhost
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Appointment duration policy (not configurable per clinic)
MIN_APPOINTMENT_DURATION_MINUTES = 15
MAX_APPOINTMENT_DURATION_MINUTES = 240  # 4 hours

# Clinic settings defaults, used when a clinic has no settings row
# or a stored value is empty
DEFAULT_CHAIRS_COUNT = 3
DEFAULT_BOOKING_ADVANCE_DAYS = 60
DEFAULT_BOOKING_BUFFER_MINUTES = 15

# Staff capacity: how many appointments one staff member may hold at the same time
DEFAULT_STAFF_CAPACITY = 1  # Exclusive booking

# Appointment statuses
APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled", "no_show")
CANCELLED_STATUS = "cancelled"
NO_SHOW_STATUS = "no_show"
DEFAULT_APPOINTMENT_STATUS = "confirmed"

# Patient risk score
# No-shows weigh twice as much as cancellations
RISK_CANCELLATION_WEIGHT = 50
RISK_NO_SHOW_WEIGHT = 100
RISK_SCORE_SCALE = 100
RISK_SCORE_MIN = 0
RISK_SCORE_MAX = 100
RISK_MEDIUM_THRESHOLD = 30  # score >= 30 is medium
RISK_HIGH_THRESHOLD = 60    # score >= 60 is high
