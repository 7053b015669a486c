"""Simulated treatment injection.

Tells the model the hypothetical drug is being given now: the most
recent encoder slots show it as already administered, and the first
forecast step carries it as a known future input.
"""

from whatif.core.forecasting.constants import INJECTION_SLOTS
from whatif.core.forecasting.grid import TimeGrid
from whatif.core.forecasting.models import SimulatedTreatment
from whatif.core.forecasting.normalization import Normalizer
from whatif.core.forecasting.registry import medication_key


def inject_simulated(
    encoder: TimeGrid,
    decoder: TimeGrid,
    treatment: SimulatedTreatment,
    normalizer: Normalizer,
    injection_slots: int = INJECTION_SLOTS,
) -> bool:
    """Overlay the simulated dose onto both grids.

    Returns False without touching either grid when the medication has
    no reserved feature key.
    """
    key = medication_key(treatment.medication_name)
    if key not in encoder.schema or key not in decoder.schema:
        return False

    value = normalizer.normalize(key, treatment.dose)

    start = max(len(encoder) - injection_slots, 0)
    for slot in range(start, len(encoder)):
        encoder.set(slot, key, value)

    if len(decoder):
        decoder.set(0, key, value)
        for step in range(1, len(decoder)):
            decoder.clear(step, key)

    return True
