# Package initialization
# Import all models to ensure relationships are properly established
from .clinic import Clinic
from .staff import Staff
from .patient import Patient
from .appointment import Appointment
from .business_hours import BusinessHours
from .holiday import Holiday
from .clinic_settings import ClinicSettings

__all__ = [
    "Clinic",
    "Staff",
    "Patient",
    "Appointment",
    "BusinessHours",
    "Holiday",
    "ClinicSettings",
]
