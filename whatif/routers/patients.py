"""Patient glucose history router.

Serves the recorded glucose series the what-if chart draws before the
forecast curve.
"""

from fastapi import APIRouter, Depends, Query

from whatif.core.forecasting.tables import ForecastTables, get_forecast_tables
from whatif.schemas.forecast import ErrorResponse, GlucoseHistoryResponse, GlucosePoint
from whatif.services.clinical_store import ClinicalStore, get_clinical_store

router = APIRouter(prefix="/api/patients", tags=["patients"])


@router.get(
    "/{patient_id}/glucose",
    response_model=GlucoseHistoryResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Patient not found"},
        502: {"model": ErrorResponse, "description": "Clinical store failure"},
    },
)
async def get_glucose_history(
    patient_id: str,
    admission_id: str | None = Query(default=None),
    store: ClinicalStore = Depends(get_clinical_store),
    tables: ForecastTables = Depends(get_forecast_tables),
) -> GlucoseHistoryResponse:
    """Glucose lab values for a patient, oldest first."""
    await store.get_patient(patient_id)
    labs = await store.get_labs(patient_id, admission_id)

    target = tables.postprocess.target_feature
    readings = [
        GlucosePoint(
            timestamp=lab.timestamp,
            value=lab.value,
            admission_id=lab.admission_id,
        )
        for lab in labs
        if lab.value is not None
        and tables.registry.lab_key(lab.category, lab.subtype) == target
    ]
    return GlucoseHistoryResponse(
        patient_id=patient_id,
        readings=readings,
        count=len(readings),
    )
