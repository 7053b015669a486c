"""Pytest configuration and shared fixtures.

The clinical store and the forecasting model are replaced with
in-memory fakes through FastAPI dependency overrides, so no database
or model server is needed.
"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

# Set testing mode BEFORE importing the app so the engine uses NullPool
os.environ["TESTING"] = "true"

from whatif.config import settings

settings.testing = True

from whatif.core.forecasting.errors import PatientNotFoundError
from whatif.core.forecasting.grid import TimeGrid
from whatif.core.forecasting.models import (
    LabObservation,
    PatientProfile,
    TreatmentAdministration,
)
from whatif.core.forecasting.tables import ForecastTables, build_forecast_tables
from whatif.main import app
from whatif.services.clinical_store import get_clinical_store
from whatif.services.forecast_client import get_forecast_model

PATIENT_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
NOW = datetime(2025, 3, 14, 9, 30, tzinfo=UTC)


def make_lab(
    hours_ago: float,
    value: float | None,
    category: str = "Glucose",
    subtype: str | None = "Combined",
    reference: datetime = NOW,
    admission_id: str | None = "ADM-1",
) -> LabObservation:
    return LabObservation(
        patient_id=PATIENT_ID,
        timestamp=reference - timedelta(hours=hours_ago),
        category=category,
        subtype=subtype,
        value=value,
        unit="mg/dL",
        admission_id=admission_id,
    )


def make_treatment(
    hours_ago: float,
    medication_name: str,
    dose: float | None = 5.0,
    reference: datetime = NOW,
    admission_id: str | None = "ADM-1",
) -> TreatmentAdministration:
    return TreatmentAdministration(
        patient_id=PATIENT_ID,
        timestamp=reference - timedelta(hours=hours_ago),
        medication_name=medication_name,
        dose=dose,
        unit="mg",
        route="IV",
        admission_id=admission_id,
    )


def value_at(grid: TimeGrid, slot: int, key: str) -> float:
    col = grid.schema.index_of(key)
    if col is None:
        raise KeyError(key)
    return grid.slots[slot].values[col]


def observed_at(grid: TimeGrid, slot: int, key: str) -> bool:
    col = grid.schema.index_of(key)
    if col is None:
        raise KeyError(key)
    return grid.slots[slot].observed[col]


class FakeClinicalStore:
    """In-memory ClinicalStore."""

    def __init__(
        self,
        patient: PatientProfile | None = None,
        labs: list[LabObservation] | None = None,
        treatments: list[TreatmentAdministration] | None = None,
    ) -> None:
        self.patient = patient or PatientProfile(
            id=PATIENT_ID, gender="F", anchor_age=58.0
        )
        self.labs = labs or []
        self.treatments = treatments or []
        self.calls: list[tuple[str, str, str | None]] = []

    async def get_patient(self, patient_id: str) -> PatientProfile:
        self.calls.append(("patient", patient_id, None))
        if patient_id != self.patient.id:
            raise PatientNotFoundError(f"Patient {patient_id} not found")
        return self.patient

    async def get_labs(
        self, patient_id: str, admission_id: str | None = None
    ) -> list[LabObservation]:
        self.calls.append(("labs", patient_id, admission_id))
        return [
            lab
            for lab in self.labs
            if admission_id is None or lab.admission_id == admission_id
        ]

    async def get_treatments(
        self, patient_id: str, admission_id: str | None = None
    ) -> list[TreatmentAdministration]:
        self.calls.append(("treatments", patient_id, admission_id))
        return [
            t
            for t in self.treatments
            if admission_id is None or t.admission_id == admission_id
        ]


class FakeForecastModel:
    """Returns a canned q50 forecast (or raises) and records payloads."""

    def __init__(self, q50: list[float] | None = None, error: Exception | None = None):
        self.q50 = q50
        self.error = error
        self.payloads: list[dict[str, Any]] = []

    async def predict(self, payload: dict[str, Any], expected_length: int) -> list[float]:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        if self.q50 is None:
            return [0.0] * expected_length
        return list(self.q50)


@pytest.fixture
def tables() -> ForecastTables:
    return build_forecast_tables()


@pytest.fixture
def fake_store() -> FakeClinicalStore:
    return FakeClinicalStore(
        labs=[
            make_lab(2, 122.0),
            make_lab(1, 130.0),
            make_lab(0, 143.0),
        ]
    )


@pytest.fixture
def fake_model() -> FakeForecastModel:
    return FakeForecastModel(q50=[0.1 * (i % 5) - 0.2 for i in range(24)])


@pytest.fixture
async def client(fake_store, fake_model) -> AsyncGenerator[AsyncClient, None]:
    """API client with the store and model replaced by fakes."""
    app.dependency_overrides[get_clinical_store] = lambda: fake_store
    app.dependency_overrides[get_forecast_model] = lambda: fake_model
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
