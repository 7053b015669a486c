"""Normalization layer.

Converts raw clinical values to the scale the forecasting model was
trained on, and maps model output back to physical units.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass

from whatif.core.forecasting.constants import MED_DOSE_DIVISOR
from whatif.core.forecasting.registry import is_medication_key


@dataclass(frozen=True)
class ScalerEntry:
    """Per-feature z-score statistics. ``std == 0`` means pass-through."""

    mean: float
    std: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.mean) and math.isfinite(self.std)):
            raise ValueError("scaler mean and std must be finite")
        if self.std < 0:
            raise ValueError("scaler std must not be negative")


class Normalizer:
    """Applies the scaler table to feature values.

    Medication doses are divided by a large constant rather than
    z-scored; the trained model expects that scale. Every other key is
    z-scored with its ``ScalerEntry``. Lookup tries the key as given,
    lower-cased, then with its first letter capitalized; keys with no
    entry (or a zero std) pass through unchanged.
    """

    def __init__(
        self,
        scalers: Mapping[str, ScalerEntry],
        med_dose_divisor: float = MED_DOSE_DIVISOR,
    ) -> None:
        if med_dose_divisor <= 0:
            raise ValueError("med_dose_divisor must be positive")
        self._scalers = scalers
        self._med_dose_divisor = med_dose_divisor

    def lookup(self, key: str) -> ScalerEntry | None:
        for candidate in (key, key.lower(), key[:1].upper() + key[1:]):
            entry = self._scalers.get(candidate)
            if entry is not None:
                return entry
        return None

    def normalize(self, key: str, raw_value: float) -> float:
        if is_medication_key(key):
            return raw_value / self._med_dose_divisor
        entry = self.lookup(key)
        if entry is None or entry.std == 0:
            return raw_value
        return (raw_value - entry.mean) / entry.std

    def denormalize(self, key: str, model_value: float) -> float:
        if is_medication_key(key):
            return model_value * self._med_dose_divisor
        entry = self.lookup(key)
        if entry is None or entry.std == 0:
            return model_value
        return model_value * entry.std + entry.mean
