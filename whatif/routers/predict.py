"""What-if glucose prediction router."""

from fastapi import APIRouter, Depends

from whatif.core.forecasting.tables import ForecastTables, get_forecast_tables
from whatif.schemas.forecast import (
    ErrorResponse,
    FeatureCatalogResponse,
    ForecastResponse,
    ForecastWarningResponse,
    PredictRequest,
)
from whatif.services.clinical_store import ClinicalStore, get_clinical_store
from whatif.services.forecast_client import ForecastModel, get_forecast_model
from whatif.services.whatif_forecast import run_what_if

router = APIRouter(prefix="/api/predict", tags=["forecast"])


@router.post(
    "",
    response_model=ForecastResponse,
    responses={
        200: {"description": "Corrected 24-hour glucose forecast"},
        400: {"model": ErrorResponse, "description": "Missing or invalid request fields"},
        404: {"model": ErrorResponse, "description": "Patient not found"},
        502: {"model": ErrorResponse, "description": "Clinical store or model failure"},
        504: {"model": ErrorResponse, "description": "Forecasting model timed out"},
    },
)
async def predict(
    body: PredictRequest,
    store: ClinicalStore = Depends(get_clinical_store),
    model: ForecastModel = Depends(get_forecast_model),
    tables: ForecastTables = Depends(get_forecast_tables),
) -> ForecastResponse:
    """Forecast the patient's glucose as if the treatment were given now.

    The forecast is experimental: it is anchored on the patient's latest
    recorded data point, not the request time, and is corrected towards
    the patient's own glucose baseline.
    """
    result = await run_what_if(
        patient_id=body.patient_id,
        treatment=body.treatment,
        store=store,
        model=model,
        tables=tables,
        admission_id=body.admission_id,
    )
    return ForecastResponse(
        hadm_id=result.hadm_id,
        horizon=result.horizon,
        units=result.units,
        predictions_real=result.predictions_real,
        treatment=result.treatment,
        reference_time=result.reference_time,
        warnings=[
            ForecastWarningResponse(kind=w.kind, message=w.message)
            for w in result.warnings
        ],
    )


@router.get("/features", response_model=FeatureCatalogResponse)
async def list_features(
    tables: ForecastTables = Depends(get_forecast_tables),
) -> FeatureCatalogResponse:
    """Medications that can be simulated and the lab features the model reads."""
    registry = tables.registry
    return FeatureCatalogResponse(
        medications=list(registry.medications),
        medication_keys=list(registry.medication_keys),
        lab_types={cat: list(subs) for cat, subs in registry.lab_types.items()},
        lab_keys=list(registry.lab_keys),
    )
