"""What-if glucose forecasting core.

Pure, database-free pipeline that turns a patient's clinical history
and a hypothetical medication into the forecasting model's input, and
the model's raw output into a plausible glucose curve:

1. Feature registry (display name -> feature key)
2. Timeline alignment onto hourly slots
3. Encoder / decoder-known grid construction
4. Normalization
5. Simulated treatment injection
6. Post-processing of the model output

The forecast is experimental decision support only and does not
replace clinical judgment.
"""

from whatif.core.forecasting.errors import (
    FeatureKeyCollisionError,
    ForecastError,
    ForecastErrorKind,
    ForecastWarning,
    ModelInvocationError,
    PatientNotFoundError,
    RequestValidationFailed,
    UpstreamDataError,
    WarningKind,
)
from whatif.core.forecasting.grid import (
    TimeGrid,
    TimeSlot,
    build_decoder_known,
    build_encoder,
)
from whatif.core.forecasting.injection import inject_simulated
from whatif.core.forecasting.models import (
    LabObservation,
    PatientProfile,
    SimulatedTreatment,
    TreatmentAdministration,
)
from whatif.core.forecasting.normalization import Normalizer, ScalerEntry
from whatif.core.forecasting.postprocess import (
    CorrectedForecast,
    PostProcessConfig,
    post_process,
)
from whatif.core.forecasting.registry import FeatureRegistry, to_feature_key
from whatif.core.forecasting.tables import ForecastTables, get_forecast_tables
from whatif.core.forecasting.timeline import align_to_slot, reference_now

__all__ = [
    "CorrectedForecast",
    "FeatureKeyCollisionError",
    "FeatureRegistry",
    "ForecastError",
    "ForecastErrorKind",
    "ForecastTables",
    "ForecastWarning",
    "LabObservation",
    "ModelInvocationError",
    "Normalizer",
    "PatientNotFoundError",
    "PatientProfile",
    "PostProcessConfig",
    "RequestValidationFailed",
    "ScalerEntry",
    "SimulatedTreatment",
    "TimeGrid",
    "TimeSlot",
    "TreatmentAdministration",
    "UpstreamDataError",
    "WarningKind",
    "align_to_slot",
    "build_decoder_known",
    "build_encoder",
    "get_forecast_tables",
    "inject_simulated",
    "post_process",
    "reference_now",
    "to_feature_key",
]
