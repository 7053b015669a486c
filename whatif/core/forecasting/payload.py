"""Request body for the external forecasting model."""

from typing import Any

from whatif.core.forecasting.constants import AGE_FEATURE, GLUCOSE_UNITS
from whatif.core.forecasting.grid import MASK_SUFFIX, TimeGrid
from whatif.core.forecasting.registry import FeatureRegistry


def _with_masks(keys: tuple[str, ...]) -> list[str]:
    return [col for key in keys for col in (key, key + MASK_SUFFIX)]


def build_model_payload(
    hadm_id: str,
    encoder: TimeGrid,
    decoder_known: TimeGrid,
    registry: FeatureRegistry,
    gender: str | None,
    anchor_age: float | None,
    target: str,
) -> dict[str, Any]:
    """Assemble the JSON payload.

    ``anchor_age`` must already be normalized. Column metadata mirrors
    how the model was trained: medications are known future inputs,
    labs are only observed in the past.
    """
    return {
        "hadm_id": hadm_id,
        "horizon": len(decoder_known),
        "units": GLUCOSE_UNITS,
        "time_idx": "time_idx",
        "target": target,
        "group_ids": ["hadm_id"],
        "max_encoder_length": len(encoder),
        "min_encoder_length": len(encoder),
        "max_prediction_length": len(decoder_known),
        "min_prediction_length": len(decoder_known),
        "static_categoricals": ["gender"],
        "static_reals": [AGE_FEATURE],
        "time_varying_known_categoricals": ["dow_id_new"],
        "time_varying_known_reals": _with_masks(registry.medication_keys),
        "time_varying_unknown_reals": _with_masks(registry.lab_keys),
        "gender": gender,
        AGE_FEATURE: anchor_age,
        "encoder": encoder.to_rows(),
        "decoder_known": decoder_known.to_rows(),
    }
