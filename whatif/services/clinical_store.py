"""Read access to the clinical record store.

The forecasting pipeline only reads patients, labs and treatments.
Rows are converted into the frozen pipeline models here so malformed
data is rejected at the boundary as ``UpstreamDataError``.
"""

import asyncio
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from whatif.core.forecasting.errors import PatientNotFoundError, UpstreamDataError
from whatif.core.forecasting.models import (
    LabObservation,
    PatientProfile,
    TreatmentAdministration,
)
from whatif.database import get_db_session
from whatif.logging_config import get_logger
from whatif.models.lab import Lab
from whatif.models.patient import Patient
from whatif.models.treatment import Treatment

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class ClinicalStore(Protocol):
    """Collaborator contract consumed by the what-if pipeline."""

    async def get_patient(self, patient_id: str) -> PatientProfile: ...

    async def get_labs(
        self, patient_id: str, admission_id: str | None = None
    ) -> list[LabObservation]: ...

    async def get_treatments(
        self, patient_id: str, admission_id: str | None = None
    ) -> list[TreatmentAdministration]: ...


@dataclass(frozen=True)
class PatientHistory:
    patient: PatientProfile
    labs: list[LabObservation]
    treatments: list[TreatmentAdministration]


def _parse_patient_id(patient_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(patient_id)
    except ValueError as e:
        raise PatientNotFoundError(f"Patient {patient_id} not found") from e


def patient_from_row(row: Patient) -> PatientProfile:
    try:
        return PatientProfile(
            id=str(row.id),
            gender=row.gender,
            birth_date=row.birth_date,
            anchor_age=row.anchor_age,
        )
    except ValidationError as e:
        raise UpstreamDataError(f"Malformed patient row {row.id}") from e


def lab_from_row(row: Lab) -> LabObservation:
    try:
        return LabObservation(
            patient_id=str(row.patient_id),
            timestamp=row.date,
            category=row.lab_category,
            subtype=row.lab_type,
            value=row.value,
            unit=row.unit,
            admission_id=row.admission_id,
        )
    except ValidationError as e:
        raise UpstreamDataError(f"Malformed lab row {row.id}") from e


def treatment_from_row(row: Treatment) -> TreatmentAdministration:
    try:
        return TreatmentAdministration(
            patient_id=str(row.patient_id),
            timestamp=row.start_date,
            medication_name=row.medication_name,
            dose=row.dose,
            unit=row.unit,
            route=row.route,
            admission_id=row.admission_id,
        )
    except ValidationError as e:
        raise UpstreamDataError(f"Malformed treatment row {row.id}") from e


class SqlClinicalStore:
    """ClinicalStore backed by the SQLAlchemy models.

    Every call opens its own session, so independent reads can run
    concurrently.
    """

    def __init__(self, session_factory: SessionFactory = get_db_session) -> None:
        self._session_factory = session_factory

    async def get_patient(self, patient_id: str) -> PatientProfile:
        pid = _parse_patient_id(patient_id)
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Patient).where(Patient.id == pid))
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Patient lookup failed", patient_id=patient_id, error=str(e))
            raise UpstreamDataError("Clinical data store unavailable") from e

        if row is None:
            raise PatientNotFoundError(f"Patient {patient_id} not found")
        return patient_from_row(row)

    async def get_labs(
        self, patient_id: str, admission_id: str | None = None
    ) -> list[LabObservation]:
        pid = _parse_patient_id(patient_id)
        query = select(Lab).where(Lab.patient_id == pid)
        if admission_id is not None:
            query = query.where(Lab.admission_id == admission_id)
        try:
            async with self._session_factory() as db:
                result = await db.execute(query.order_by(Lab.date))
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Lab query failed", patient_id=patient_id, error=str(e))
            raise UpstreamDataError("Clinical data store unavailable") from e
        return [lab_from_row(row) for row in rows]

    async def get_treatments(
        self, patient_id: str, admission_id: str | None = None
    ) -> list[TreatmentAdministration]:
        pid = _parse_patient_id(patient_id)
        query = select(Treatment).where(Treatment.patient_id == pid)
        if admission_id is not None:
            query = query.where(Treatment.admission_id == admission_id)
        try:
            async with self._session_factory() as db:
                result = await db.execute(query.order_by(Treatment.start_date))
                rows = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Treatment query failed", patient_id=patient_id, error=str(e))
            raise UpstreamDataError("Clinical data store unavailable") from e
        return [treatment_from_row(row) for row in rows]


async def load_patient_history(
    store: ClinicalStore,
    patient_id: str,
    admission_id: str | None = None,
) -> PatientHistory:
    """Fetch patient, labs and treatments concurrently."""
    patient, labs, treatments = await asyncio.gather(
        store.get_patient(patient_id),
        store.get_labs(patient_id, admission_id),
        store.get_treatments(patient_id, admission_id),
    )
    return PatientHistory(patient=patient, labs=labs, treatments=treatments)


def get_clinical_store() -> ClinicalStore:
    """FastAPI dependency; overridden in tests."""
    return SqlClinicalStore()
