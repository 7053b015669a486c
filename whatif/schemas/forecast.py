"""What-if forecast API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from whatif.core.forecasting.errors import ForecastErrorKind, WarningKind
from whatif.core.forecasting.models import SimulatedTreatment


class PredictRequest(BaseModel):
    """Request body for ``POST /api/predict``.

    Both fields are optional at the schema level so a missing one is
    reported as a ``validation_error`` with a specific message.
    """

    patient_id: str | None = Field(None, description="Patient to forecast for")
    treatment: SimulatedTreatment | None = Field(
        None, description="Hypothetical medication to simulate"
    )
    admission_id: str | None = Field(
        None, description="Restrict history to this admission (used as hadm_id)"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "patient_id": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
                "treatment": {
                    "medication_name": "Insulin",
                    "dose": 10,
                    "unit": "units",
                    "route": "SC",
                },
            }
        }
    }


class ForecastWarningResponse(BaseModel):
    kind: WarningKind
    message: str


class ForecastResponse(BaseModel):
    """Corrected forecast plus the echoed treatment for chart legends."""

    hadm_id: str
    horizon: int = Field(..., description="Number of hourly forecast steps")
    units: str = Field(..., description="Unit of predictions_real")
    predictions_real: list[float] = Field(
        ..., description="Hourly glucose forecast, clamped to 40-400 mg/dL"
    )
    treatment: SimulatedTreatment
    reference_time: datetime = Field(
        ..., description="Latest clinical record time; forecast step 0 is one hour later"
    )
    warnings: list[ForecastWarningResponse] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    kind: ForecastErrorKind
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail


class FeatureCatalogResponse(BaseModel):
    """Medications and lab features the forecasting model understands."""

    medications: list[str]
    medication_keys: list[str]
    lab_types: dict[str, list[str]]
    lab_keys: list[str]


class GlucosePoint(BaseModel):
    timestamp: datetime
    value: float = Field(..., description="Glucose in mg/dL")
    admission_id: str | None = None


class GlucoseHistoryResponse(BaseModel):
    patient_id: str
    readings: list[GlucosePoint]
    count: int = Field(..., description="Number of readings returned")
