"""Treatment (medication administration) model."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from whatif.models.base import Base, TimestampMixin


class Treatment(Base, TimestampMixin):
    """A medication given to a patient over ``start_date``..``end_date``."""

    __tablename__ = "treatments"

    __table_args__ = (Index("ix_treatments_patient_start", "patient_id", "start_date"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    )

    admission_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    medication_name: Mapped[str] = mapped_column(String(128), nullable=False)
    dose: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    route: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Treatment(patient_id={self.patient_id}, "
            f"medication={self.medication_name}, dose={self.dose})>"
        )
