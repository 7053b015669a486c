"""Admission record model."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from whatif.models.base import Base, TimestampMixin


class Admission(Base, TimestampMixin):
    """A hospital stay. Labs and treatments reference ``admission_id``."""

    __tablename__ = "admissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Hospital admission code (hadm_id for the forecasting model)
    admission_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Admitted / Inpatient / Discharged
    status: Mapped[str] = mapped_column(String(32), nullable=False)

    discharge_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    patient = relationship("Patient", back_populates="admissions")

    def __repr__(self) -> str:
        return f"<Admission(admission_id={self.admission_id}, status={self.status})>"
