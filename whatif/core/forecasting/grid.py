"""Encoder and decoder-known grids.

A grid is a fixed-length sequence of hourly slots. Every slot holds a
value and an observed flag for each key of a closed ``FeatureSchema``;
``observed=False`` tells the model the value is missing, not zero.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from whatif.core.forecasting.constants import ENCODER_LENGTH, FORECAST_HORIZON
from whatif.core.forecasting.models import LabObservation, TreatmentAdministration
from whatif.core.forecasting.normalization import Normalizer
from whatif.core.forecasting.registry import FeatureRegistry, FeatureSchema
from whatif.core.forecasting.timeline import (
    align_to_slot,
    day_of_week,
    decoder_slot_time,
    encoder_slot_time,
)

MASK_SUFFIX = "_mask"

# Administrations recorded without a dose count as one unit
DEFAULT_RECORDED_DOSE = 1.0


@dataclass
class TimeSlot:
    """One hour of the grid."""

    time_idx: int
    timestamp: datetime
    dow_id: int
    values: list[float]
    observed: list[bool]


@dataclass
class TimeGrid:
    """Fixed-length slot sequence over a closed feature schema."""

    schema: FeatureSchema
    slots: list[TimeSlot]
    # Display names skipped because they map to no reserved key
    dropped: Counter[str] = field(default_factory=Counter)

    @classmethod
    def empty(
        cls,
        schema: FeatureSchema,
        times: Iterable[datetime],
        first_time_idx: int = 0,
    ) -> "TimeGrid":
        width = len(schema)
        slots = [
            TimeSlot(
                time_idx=first_time_idx + i,
                timestamp=moment,
                dow_id=day_of_week(moment),
                values=[0.0] * width,
                observed=[False] * width,
            )
            for i, moment in enumerate(times)
        ]
        return cls(schema=schema, slots=slots)

    def __len__(self) -> int:
        return len(self.slots)

    def set(self, slot: int, key: str, value: float) -> bool:
        """Record an observed value. Returns False if ``key`` is not in the schema."""
        col = self.schema.index_of(key)
        if col is None:
            return False
        self.slots[slot].values[col] = value
        self.slots[slot].observed[col] = True
        return True

    def clear(self, slot: int, key: str) -> None:
        col = self.schema.index_of(key)
        if col is not None:
            self.slots[slot].values[col] = 0.0
            self.slots[slot].observed[col] = False

    def to_rows(self) -> list[dict[str, Any]]:
        """Render slots as the model's row format (value + 0/1 mask per key)."""
        rows = []
        for slot in self.slots:
            row: dict[str, Any] = {"time_idx": slot.time_idx, "dow_id_new": slot.dow_id}
            for key, value, observed in zip(
                self.schema.keys, slot.values, slot.observed, strict=True
            ):
                row[key] = value
                row[key + MASK_SUFFIX] = 1 if observed else 0
            rows.append(row)
        return rows


def build_encoder(
    labs: Iterable[LabObservation],
    treatments: Iterable[TreatmentAdministration],
    reference: datetime,
    registry: FeatureRegistry,
    normalizer: Normalizer,
    slot_count: int = ENCODER_LENGTH,
) -> TimeGrid:
    """Bin a patient's history into the historical encoder grid.

    Events are applied labs first, then treatments, each in the order
    given; several events in the same hour resolve last-write-wins.
    Names with no reserved key are counted in ``grid.dropped``.
    """
    grid = TimeGrid.empty(
        registry.schema,
        (encoder_slot_time(i, reference, slot_count) for i in range(slot_count)),
    )

    for lab in labs:
        if lab.value is None:
            continue
        slot = align_to_slot(lab.timestamp, reference, slot_count)
        if slot is None:
            continue
        key = registry.lab_key(lab.category, lab.subtype)
        if key not in registry:
            grid.dropped[f"{lab.category} / {lab.subtype or '-'}"] += 1
            continue
        grid.set(slot, key, normalizer.normalize(key, lab.value))

    for treatment in treatments:
        slot = align_to_slot(treatment.timestamp, reference, slot_count)
        if slot is None:
            continue
        key = registry.medication_key(treatment.medication_name)
        if key not in registry:
            grid.dropped[treatment.medication_name] += 1
            continue
        dose = DEFAULT_RECORDED_DOSE if treatment.dose is None else treatment.dose
        grid.set(slot, key, normalizer.normalize(key, dose))

    return grid


def build_decoder_known(
    reference: datetime,
    schema: FeatureSchema,
    horizon: int = FORECAST_HORIZON,
    encoder_length: int = ENCODER_LENGTH,
) -> TimeGrid:
    """Empty future grid; only the simulated treatment is ever filled in."""
    return TimeGrid.empty(
        schema,
        (decoder_slot_time(step, reference) for step in range(horizon)),
        first_time_idx=encoder_length,
    )
