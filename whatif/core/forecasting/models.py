"""Forecasting data models.

Pure data models for the what-if pipeline. No database dependencies;
the clinical store converts its rows into these before the pipeline
sees them.
"""

from datetime import UTC, date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the store are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class LabObservation(BaseModel):
    """A recorded lab result."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    patient_id: str
    timestamp: datetime
    category: str
    subtype: str | None = None
    value: float | None = None
    unit: str | None = None
    admission_id: str | None = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class TreatmentAdministration(BaseModel):
    """A recorded medication administration."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    patient_id: str
    timestamp: datetime
    medication_name: str
    dose: float | None = None
    unit: str | None = None
    route: str | None = None
    admission_id: str | None = None

    @field_validator("timestamp")
    @classmethod
    def timestamp_as_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class PatientProfile(BaseModel):
    """Static patient attributes the model conditions on."""

    model_config = ConfigDict(frozen=True)

    id: str
    gender: str | None = None
    birth_date: date | None = None
    anchor_age: float | None = None

    def age_at(self, moment: datetime) -> float | None:
        """Age in whole years at ``moment``, falling back to the stored anchor age."""
        if self.birth_date is None:
            return self.anchor_age
        on = moment.date()
        years = on.year - self.birth_date.year
        if (on.month, on.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return float(max(years, 0))


class SimulatedTreatment(BaseModel):
    """The hypothetical medication the caller wants to try. Never persisted."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    medication_name: str = Field(min_length=1, description="Display name of the drug")
    dose: float = Field(description="Dose in the given unit")
    unit: str = Field(default="mg")
    route: str = Field(default="IV")
