from .patient import Patient
from .caregiver import Caregiver
from .vaccine import Vaccine
from .availability import Availability
from .appointment import Appointment

__all__ = ["Patient", "Caregiver", "Vaccine", "Availability", "Appointment"]
