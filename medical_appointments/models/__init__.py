"""Database models."""

from medical_appointments.models.appointments import appointments
from medical_appointments.models.regional_appointments import regional_appointments

__all__ = [
    "appointments",
    "regional_appointments",
]
