"""Lab result model."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from whatif.models.base import Base, TimestampMixin


class Lab(Base, TimestampMixin):
    """A lab observation, e.g. category "Glucose" / type "Combined"."""

    __tablename__ = "labs"

    __table_args__ = (Index("ix_labs_patient_date", "patient_id", "date"),)

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

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    lab_category: Mapped[str] = mapped_column(String(64), nullable=False)
    lab_type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    value: Mapped[float | None] = mapped_column(Float, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Lab(patient_id={self.patient_id}, category={self.lab_category}, "
            f"value={self.value}, date={self.date})>"
        )
