"""Reference tables for the forecasting pipeline.

The registry, scaler statistics, medication effects and heuristic
constants are assembled once at process start into an immutable
``ForecastTables`` and injected into every request.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from whatif.config import settings
from whatif.core.forecasting import constants
from whatif.core.forecasting.normalization import Normalizer, ScalerEntry
from whatif.core.forecasting.postprocess import PostProcessConfig
from whatif.core.forecasting.registry import FeatureRegistry
from whatif.logging_config import get_logger

logger = get_logger(__name__)


class ScalerStats(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    mean: float
    std: float = Field(ge=0)


class TableOverrides(BaseModel):
    """Shape of the optional JSON file named by ``FORECAST_TABLES_PATH``."""

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    scalers: dict[str, ScalerStats] = Field(default_factory=dict)
    medication_effects: dict[str, float] = Field(default_factory=dict)


@dataclass(frozen=True)
class ForecastTables:
    registry: FeatureRegistry
    normalizer: Normalizer
    effects: Mapping[str, float]
    postprocess: PostProcessConfig
    encoder_length: int = constants.ENCODER_LENGTH
    horizon: int = constants.FORECAST_HORIZON
    injection_slots: int = constants.INJECTION_SLOTS


def build_forecast_tables(
    *,
    medications: Iterable[str] = constants.MEDICATIONS,
    lab_types: Mapping[str, Iterable[str]] = constants.LAB_TYPES,
    scaler_stats: Mapping[str, tuple[float, float]] = constants.SCALER_STATS,
    effects: Mapping[str, float] = constants.MEDICATION_EFFECTS,
    med_dose_divisor: float = constants.MED_DOSE_DIVISOR,
    postprocess: PostProcessConfig | None = None,
    encoder_length: int = constants.ENCODER_LENGTH,
    horizon: int = constants.FORECAST_HORIZON,
    injection_slots: int = constants.INJECTION_SLOTS,
) -> ForecastTables:
    """Assemble and validate the tables.

    Raises:
        FeatureKeyCollisionError: Two registry names share a feature key.
        ValueError: Grid dimensions or the target scaler are unusable.
    """
    if encoder_length < 1 or horizon < 1:
        raise ValueError("encoder_length and horizon must be positive")
    if not 0 <= injection_slots <= encoder_length:
        raise ValueError("injection_slots must be between 0 and encoder_length")

    registry = FeatureRegistry.from_names(medications, lab_types)
    scalers = MappingProxyType(
        {key: ScalerEntry(mean, std) for key, (mean, std) in scaler_stats.items()}
    )
    normalizer = Normalizer(scalers, med_dose_divisor=med_dose_divisor)
    postprocess = postprocess or PostProcessConfig()

    target = normalizer.lookup(postprocess.target_feature)
    if target is None or target.std == 0:
        raise ValueError(
            f"Scaler table needs a non-zero std entry for {postprocess.target_feature}"
        )

    unknown = sorted(set(effects) - set(registry.medication_keys))
    if unknown:
        logger.warning(
            "Medication effects reference unregistered medications",
            keys=unknown,
        )

    return ForecastTables(
        registry=registry,
        normalizer=normalizer,
        effects=MappingProxyType(dict(effects)),
        postprocess=postprocess,
        encoder_length=encoder_length,
        horizon=horizon,
        injection_slots=injection_slots,
    )


def read_table_overrides(path: str | Path) -> TableOverrides:
    """Parse an overrides file; invalid files fail loudly at startup."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return TableOverrides.model_validate(data)


@lru_cache(maxsize=1)
def get_forecast_tables() -> ForecastTables:
    """Process-wide tables built from settings (cached after first call)."""
    scaler_stats = dict(constants.SCALER_STATS)
    effects = dict(constants.MEDICATION_EFFECTS)

    if settings.forecast_tables_path:
        overrides = read_table_overrides(settings.forecast_tables_path)
        scaler_stats.update(
            {key: (s.mean, s.std) for key, s in overrides.scalers.items()}
        )
        effects.update(overrides.medication_effects)
        logger.info(
            "Loaded forecast table overrides",
            path=settings.forecast_tables_path,
            scalers=len(overrides.scalers),
            medication_effects=len(overrides.medication_effects),
        )

    return build_forecast_tables(
        scaler_stats=scaler_stats,
        effects=effects,
        med_dose_divisor=settings.med_dose_divisor,
        postprocess=PostProcessConfig(effect_divisor=settings.effect_scale_divisor),
        encoder_length=settings.encoder_length,
        horizon=settings.forecast_horizon,
        injection_slots=settings.injection_slots,
    )
