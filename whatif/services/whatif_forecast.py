"""What-if glucose forecast orchestration.

Assembles a patient's recent history into the model's encoder grid,
overlays a hypothetical medication, invokes the external forecasting
model and corrects its output into a glucose curve for charting.

Each request builds its own grids from scratch; nothing is shared
between requests except the immutable ``ForecastTables``.
"""

from dataclasses import dataclass, field
from datetime import datetime

from whatif.core.forecasting.constants import AGE_FEATURE, GLUCOSE_UNITS
from whatif.core.forecasting.errors import (
    ForecastWarning,
    RequestValidationFailed,
    WarningKind,
)
from whatif.core.forecasting.grid import build_decoder_known, build_encoder
from whatif.core.forecasting.injection import inject_simulated
from whatif.core.forecasting.models import LabObservation, SimulatedTreatment
from whatif.core.forecasting.payload import build_model_payload
from whatif.core.forecasting.postprocess import post_process
from whatif.core.forecasting.tables import ForecastTables
from whatif.core.forecasting.timeline import reference_now
from whatif.logging_config import get_logger
from whatif.services.clinical_store import ClinicalStore, load_patient_history
from whatif.services.forecast_client import ForecastModel

logger = get_logger(__name__)


@dataclass(frozen=True)
class ForecastResult:
    """A corrected what-if forecast. Built per request, never stored."""

    hadm_id: str
    horizon: int
    units: str
    predictions_real: list[float]
    treatment: SimulatedTreatment
    reference_time: datetime
    warnings: list[ForecastWarning] = field(default_factory=list)


def glucose_values(labs: list[LabObservation], tables: ForecastTables) -> list[float]:
    """Recorded glucose values (mg/dL) among a patient's labs."""
    target = tables.postprocess.target_feature
    return [
        lab.value
        for lab in labs
        if lab.value is not None
        and tables.registry.lab_key(lab.category, lab.subtype) == target
    ]


async def run_what_if(
    patient_id: str | None,
    treatment: SimulatedTreatment | None,
    store: ClinicalStore,
    model: ForecastModel,
    tables: ForecastTables,
    admission_id: str | None = None,
    now: datetime | None = None,
) -> ForecastResult:
    """Forecast the patient's glucose under a simulated treatment.

    Args:
        patient_id: Patient to forecast for.
        treatment: Hypothetical medication, dose, unit and route.
        store: Clinical record store.
        model: External forecasting model client.
        tables: Registry, scalers, effects and heuristic constants.
        admission_id: Restrict history to one admission (also used as hadm_id).
        now: Wall-clock fallback when the patient has no records.

    Returns:
        ForecastResult with ``tables.horizon`` corrected values.

    Raises:
        RequestValidationFailed: patient_id or treatment missing.
        PatientNotFoundError: Unknown patient.
        UpstreamDataError: Clinical store unavailable or returned bad rows.
        ModelInvocationError: Forecasting service failed.
    """
    if not patient_id:
        raise RequestValidationFailed("Missing patient_id")
    if treatment is None:
        raise RequestValidationFailed("Missing treatment info")

    history = await load_patient_history(store, patient_id, admission_id)
    reference = reference_now(history.labs, history.treatments, now)
    warnings: list[ForecastWarning] = []

    encoder = build_encoder(
        history.labs,
        history.treatments,
        reference,
        tables.registry,
        tables.normalizer,
        slot_count=tables.encoder_length,
    )
    if encoder.dropped:
        logger.warning(
            "Dropped history rows with unrecognized features",
            patient_id=patient_id,
            dropped=sum(encoder.dropped.values()),
            names=sorted(encoder.dropped),
        )

    decoder = build_decoder_known(
        reference,
        tables.registry.schema,
        horizon=tables.horizon,
        encoder_length=tables.encoder_length,
    )
    injected = inject_simulated(
        encoder,
        decoder,
        treatment,
        tables.normalizer,
        injection_slots=tables.injection_slots,
    )
    if not injected:
        logger.warning(
            "Simulated medication is not a model feature; forecasting without it",
            patient_id=patient_id,
            medication=treatment.medication_name,
        )
        warnings.append(
            ForecastWarning(
                kind=WarningKind.unrecognized_medication,
                message=(
                    f"{treatment.medication_name} is not known to the forecasting "
                    "model; the forecast does not include its effect on the model input."
                ),
            )
        )

    age = history.patient.age_at(reference)
    hadm_id = admission_id or patient_id
    payload = build_model_payload(
        hadm_id=hadm_id,
        encoder=encoder,
        decoder_known=decoder,
        registry=tables.registry,
        gender=history.patient.gender,
        anchor_age=None if age is None else tables.normalizer.normalize(AGE_FEATURE, age),
        target=tables.postprocess.target_feature,
    )

    raw = await model.predict(payload, tables.horizon)

    corrected = post_process(
        raw,
        glucose_values(history.labs, tables),
        treatment,
        tables.normalizer,
        tables.effects,
        tables.postprocess,
    )

    logger.info(
        "What-if forecast complete",
        patient_id=patient_id,
        hadm_id=hadm_id,
        medication=treatment.medication_name,
        baseline=round(corrected.baseline, 2),
        effect_scale=round(corrected.effect_scale, 4),
    )

    return ForecastResult(
        hadm_id=hadm_id,
        horizon=tables.horizon,
        units=GLUCOSE_UNITS,
        predictions_real=corrected.predictions,
        treatment=treatment,
        reference_time=reference,
        warnings=warnings,
    )
