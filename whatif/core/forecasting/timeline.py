"""Timeline alignment.

Clinical events arrive at irregular times; the model expects a
contiguous hourly window. Events are binned into hourly slots counted
back from a reference time, with slot ``slot_count - 1`` being the hour
containing the reference time itself.
"""

import math
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from whatif.core.forecasting.constants import ENCODER_LENGTH
from whatif.core.forecasting.models import LabObservation, TreatmentAdministration

ONE_HOUR = timedelta(hours=1)


def align_to_slot(
    event_timestamp: datetime,
    reference_now: datetime,
    slot_count: int = ENCODER_LENGTH,
) -> int | None:
    """Return the slot index for an event, or ``None`` if it falls outside the window.

    Events after ``reference_now`` or ``slot_count`` or more hours before
    it are dropped.
    """
    hours_back = math.floor((reference_now - event_timestamp) / ONE_HOUR)
    slot = slot_count - 1 - hours_back
    if 0 <= slot < slot_count:
        return slot
    return None


def reference_now(
    labs: Iterable[LabObservation],
    treatments: Iterable[TreatmentAdministration],
    wall_clock: datetime | None = None,
) -> datetime:
    """Latest timestamp across the patient's records.

    The grid ends at the patient's most recent known data point rather
    than the request time. With no records at all, the wall clock is used.
    """
    timestamps = [lab.timestamp for lab in labs]
    timestamps.extend(t.timestamp for t in treatments)
    if timestamps:
        return max(timestamps)
    return wall_clock or datetime.now(UTC)


def encoder_slot_time(
    slot: int, reference: datetime, slot_count: int = ENCODER_LENGTH
) -> datetime:
    """Absolute time represented by an encoder slot."""
    return reference - (slot_count - 1 - slot) * ONE_HOUR


def decoder_slot_time(step: int, reference: datetime) -> datetime:
    """Absolute time represented by forecast step ``step`` (0-based)."""
    return reference + (step + 1) * ONE_HOUR


def day_of_week(moment: datetime) -> int:
    """Day-of-week id with Sunday = 0 through Saturday = 6."""
    return moment.isoweekday() % 7
