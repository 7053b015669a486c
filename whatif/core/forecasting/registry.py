"""Feature key registry.

Maps human-readable medication and lab names onto the normalized
feature keys the forecasting model uses as column names, and
enumerates the closed set of keys every grid reserves columns for.
"""

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from whatif.core.forecasting.constants import COMBINED_SUBTYPE, NO_SUBTYPE
from whatif.core.forecasting.errors import FeatureKeyCollisionError

MEDICATION_PREFIX = "med_"
LAB_PREFIX = "lab_"

_DROPPED_CHARS = re.compile(r"[()]")
_SEPARATOR_RUNS = re.compile(r"[\W_]+")


def to_feature_key(display_name: str, *, lowercase: bool = True) -> str:
    """Normalize a display name into a feature key fragment.

    Lower-cases (unless ``lowercase=False``), spells out ``%``, drops
    parentheses, and collapses every run of whitespace or punctuation
    into a single underscore with no leading or trailing underscore.

    >>> to_feature_key("Triamterene-HCTZ (37.5/25)")
    'triamterene_hctz_37_5_25'
    """
    key = display_name.lower() if lowercase else display_name
    key = key.replace("%", "_percent_")
    key = _DROPPED_CHARS.sub("", key)
    key = _SEPARATOR_RUNS.sub("_", key)
    return key.strip("_")


def medication_key(medication_name: str) -> str:
    return MEDICATION_PREFIX + to_feature_key(medication_name)


def is_medication_key(key: str) -> bool:
    return key.startswith(MEDICATION_PREFIX)


@dataclass(frozen=True)
class FeatureSchema:
    """Closed, ordered set of feature keys with O(1) index lookup."""

    keys: tuple[str, ...]
    _index: Mapping[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_index", MappingProxyType({k: i for i, k in enumerate(self.keys)})
        )

    def index_of(self, key: str) -> int | None:
        return self._index.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys)

    def __len__(self) -> int:
        return len(self.keys)


@dataclass(frozen=True)
class FeatureRegistry:
    """Supported medications and lab types, and the keys derived from them.

    Build with :meth:`from_names`, which refuses registries where two
    distinct names normalize to the same key.
    """

    medications: tuple[str, ...]
    lab_types: Mapping[str, tuple[str, ...]]
    medication_keys: tuple[str, ...]
    lab_keys: tuple[str, ...]
    schema: FeatureSchema

    @classmethod
    def from_names(
        cls,
        medications: Iterable[str],
        lab_types: Mapping[str, Iterable[str]],
    ) -> "FeatureRegistry":
        meds = tuple(medications)
        labs = MappingProxyType({cat: tuple(subs) for cat, subs in lab_types.items()})

        med_keys = _unique_keys(
            (name, medication_key(name)) for name in meds
        )
        lab_keys = _unique_keys(
            (f"{category} / {subtype}", _lab_key(labs, category, subtype))
            for category, subtypes in labs.items()
            for subtype in subtypes
        )

        return cls(
            medications=meds,
            lab_types=labs,
            medication_keys=med_keys,
            lab_keys=lab_keys,
            schema=FeatureSchema(lab_keys + med_keys),
        )

    def medication_key(self, medication_name: str) -> str:
        return medication_key(medication_name)

    def lab_key(self, category: str, subtype: str | None = None) -> str:
        return _lab_key(self.lab_types, category, subtype)

    def __contains__(self, key: object) -> bool:
        return key in self.schema


def _lab_key(
    lab_types: Mapping[str, tuple[str, ...]],
    category: str,
    subtype: str | None,
) -> str:
    base = LAB_PREFIX + to_feature_key(category, lowercase=False)
    if lab_types.get(category) == (COMBINED_SUBTYPE,):
        return base
    if not subtype or subtype in (NO_SUBTYPE, COMBINED_SUBTYPE):
        return base
    return f"{base}_{to_feature_key(subtype, lowercase=False)}"


def _unique_keys(named_keys: Iterable[tuple[str, str]]) -> tuple[str, ...]:
    """Return keys in order, raising if two names share a key."""
    seen: dict[str, str] = {}
    collisions: list[str] = []
    for name, key in named_keys:
        if key in seen:
            collisions.append(f"{seen[key]!r} and {name!r} -> {key!r}")
        else:
            seen[key] = name
    if collisions:
        raise FeatureKeyCollisionError(
            "Feature key collision: " + "; ".join(collisions)
        )
    return tuple(seen)
