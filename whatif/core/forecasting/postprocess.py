"""Forecast post-processing.

Turns the model's raw q50 output into a clinically plausible glucose
curve. The stages run unconditionally and in a fixed order; changing
the order changes the result.

1. Pre-scale when the raw output looks unscaled
2. Denormalize with the glucose scaler
3. Shift the curve so its mean matches the patient's own glucose mean
4. Clamp to the plausible range
5. Scale by the simulated medication's relative effect
6. Pull back a runaway curve
7. Clamp again
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from whatif.core.forecasting import constants
from whatif.core.forecasting.models import SimulatedTreatment
from whatif.core.forecasting.normalization import Normalizer
from whatif.core.forecasting.registry import medication_key
from whatif.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PostProcessConfig:
    """Heuristic constants of the correction pipeline."""

    target_feature: str = constants.TARGET_FEATURE
    prescale_trigger: float = constants.PRESCALE_TRIGGER_MEAN_ABS
    prescale_factor: float = constants.PRESCALE_FACTOR
    baseline_fallback: float = constants.BASELINE_FALLBACK_MGDL
    clamp_min: float = constants.CLAMP_MIN_MGDL
    clamp_max: float = constants.CLAMP_MAX_MGDL
    effect_divisor: float = constants.EFFECT_SCALE_DIVISOR
    effect_floor: float = constants.EFFECT_SCALE_FLOOR
    default_relative_effect: float = constants.DEFAULT_RELATIVE_EFFECT
    runaway_mean: float = constants.RUNAWAY_MEAN_MGDL
    runaway_target_mean: float = constants.RUNAWAY_TARGET_MEAN_MGDL
    raw_magnitude_cap: float = constants.RAW_MAGNITUDE_CAP

    def __post_init__(self) -> None:
        if self.effect_divisor <= 0:
            raise ValueError("effect_divisor must be positive")
        if self.clamp_min > self.clamp_max:
            raise ValueError("clamp_min must not exceed clamp_max")


@dataclass(frozen=True)
class CorrectedForecast:
    """Output of :func:`post_process`."""

    predictions: list[float]
    baseline: float
    offset: float
    effect_scale: float
    out_of_range: bool
    # Raw values that were NaN/inf and replaced before processing
    non_finite_inputs: int = 0


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _clamp(values: Sequence[float], low: float, high: float) -> list[float]:
    return [min(max(v, low), high) for v in values]


def _sanitize(raw: Sequence[float], cap: float) -> tuple[list[float], int]:
    cleaned = []
    replaced = 0
    for value in raw:
        if not math.isfinite(value):
            replaced += 1
            value = 0.0
        cleaned.append(min(max(value, -cap), cap))
    return cleaned, replaced


def effect_scale(
    treatment: SimulatedTreatment,
    effects: Mapping[str, float],
    config: PostProcessConfig,
) -> float:
    """Multiplier applied to the curve for the simulated medication.

    ``1`` for non-positive doses, otherwise
    ``max(floor, 1 + rel_effect * log1p(dose) / divisor)``. Unknown
    medications use the default relative effect.
    """
    if treatment.dose <= 0:
        return 1.0
    rel_effect = effects.get(
        medication_key(treatment.medication_name), config.default_relative_effect
    )
    scale = 1.0 + rel_effect * math.log1p(treatment.dose) / config.effect_divisor
    return max(config.effect_floor, scale)


def post_process(
    raw_predictions: Sequence[float],
    historical_glucose: Sequence[float],
    treatment: SimulatedTreatment,
    normalizer: Normalizer,
    effects: Mapping[str, float],
    config: PostProcessConfig = PostProcessConfig(),
) -> CorrectedForecast:
    """Run the correction pipeline over one raw forecast.

    Args:
        raw_predictions: q50 values as returned by the model.
        historical_glucose: Patient's recorded glucose values (mg/dL).
        treatment: The simulated treatment.
        normalizer: Scaler table wrapper used to denormalize.
        effects: Relative effect per medication feature key.
        config: Heuristic constants.

    Returns:
        CorrectedForecast whose predictions all lie in
        ``[config.clamp_min, config.clamp_max]``.
    """
    values, non_finite = _sanitize(raw_predictions, config.raw_magnitude_cap)
    if non_finite:
        logger.warning(
            "Model output contained non-finite values",
            replaced=non_finite,
            total=len(values),
        )

    history = [
        v
        for v in historical_glucose
        if math.isfinite(v) and abs(v) <= config.raw_magnitude_cap
    ]
    baseline = _mean(history) if history else config.baseline_fallback

    if not values:
        return CorrectedForecast(
            predictions=[],
            baseline=baseline,
            offset=0.0,
            effect_scale=1.0,
            out_of_range=False,
            non_finite_inputs=non_finite,
        )

    if _mean([abs(v) for v in values]) > config.prescale_trigger:
        values = [v * config.prescale_factor for v in values]

    values = [normalizer.denormalize(config.target_feature, v) for v in values]

    offset = _mean(values) - baseline
    values = [v - offset for v in values]

    out_of_range = any(v < config.clamp_min or v > config.clamp_max for v in values)
    pre_clamp = values
    values = _clamp(values, config.clamp_min, config.clamp_max)
    if out_of_range:
        logger.warning(
            "Forecast outside plausible range before clamping",
            pre_min=round(min(pre_clamp), 2),
            pre_max=round(max(pre_clamp), 2),
            pre_mean=round(_mean(pre_clamp), 2),
            post_min=round(min(values), 2),
            post_max=round(max(values), 2),
            post_mean=round(_mean(values), 2),
        )

    scale = effect_scale(treatment, effects, config)
    values = [v * scale for v in values]

    mean = _mean(values)
    if mean > config.runaway_mean:
        values = [v * config.runaway_target_mean / mean for v in values]

    values = _clamp(values, config.clamp_min, config.clamp_max)

    return CorrectedForecast(
        predictions=values,
        baseline=baseline,
        offset=offset,
        effect_scale=scale,
        out_of_range=out_of_range,
        non_finite_inputs=non_finite,
    )
