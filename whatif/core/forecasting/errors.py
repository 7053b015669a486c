"""Forecasting error taxonomy.

Hard errors derive from ``ForecastError`` and abort the request; the
API layer renders them as ``{"error": {"kind": ..., "message": ...}}``.
Soft conditions never raise: they are collected as ``ForecastWarning``
records, logged, and returned alongside the forecast.
"""

from dataclasses import dataclass
from enum import StrEnum, auto


class ForecastErrorKind(StrEnum):
    """Distinguishable kinds of hard failures."""

    validation_error = auto()
    patient_not_found = auto()
    upstream_data_error = auto()
    model_invocation_error = auto()


class WarningKind(StrEnum):
    """Kinds of soft, non-fatal conditions."""

    unrecognized_medication = auto()


class ForecastError(Exception):
    """Base exception for failed what-if forecasts."""

    kind: ForecastErrorKind = ForecastErrorKind.model_invocation_error
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class RequestValidationFailed(ForecastError):
    """The request is missing ``patient_id`` or ``treatment``, or is malformed."""

    kind = ForecastErrorKind.validation_error
    status_code = 400


class PatientNotFoundError(ForecastError):
    """The patient store has no record for the requested patient."""

    kind = ForecastErrorKind.patient_not_found
    status_code = 404


class UpstreamDataError(ForecastError):
    """Clinical data store unreachable or returned rows that cannot be used."""

    kind = ForecastErrorKind.upstream_data_error
    status_code = 502


class ModelInvocationError(ForecastError):
    """The forecasting service failed, timed out, or returned an unusable body."""

    kind = ForecastErrorKind.model_invocation_error
    status_code = 502

    def __init__(self, message: str, *, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504


class FeatureKeyCollisionError(ValueError):
    """Two distinct registry names normalize to the same feature key."""


@dataclass(frozen=True)
class ForecastWarning:
    """A soft error surfaced to the caller with the forecast."""

    kind: WarningKind
    message: str
