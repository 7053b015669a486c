# Database Models
from whatif.models.admission import Admission
from whatif.models.base import Base, TimestampMixin
from whatif.models.lab import Lab
from whatif.models.patient import Patient
from whatif.models.treatment import Treatment

__all__ = [
    "Admission",
    "Base",
    "Lab",
    "Patient",
    "TimestampMixin",
    "Treatment",
]
