# Business Logic Services
from whatif.services.clinical_store import (
    ClinicalStore,
    PatientHistory,
    SqlClinicalStore,
    load_patient_history,
)
from whatif.services.forecast_client import ForecastModel, ForecastModelClient
from whatif.services.whatif_forecast import ForecastResult, run_what_if

__all__ = [
    "ClinicalStore",
    "ForecastModel",
    "ForecastModelClient",
    "ForecastResult",
    "PatientHistory",
    "SqlClinicalStore",
    "load_patient_history",
    "run_what_if",
]
