"""Patient record model."""

import uuid
from datetime import date

from sqlalchemy import Date, Float, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from whatif.models.base import Base, TimestampMixin


class Patient(Base, TimestampMixin):
    """A patient managed by the hospital.

    Only ``gender`` and age (``birth_date``, or ``anchor_age`` for
    de-identified imports) are used by the forecasting model.
    """

    __tablename__ = "patients"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    identity_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    gender: Mapped[str | None] = mapped_column(String(16), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    anchor_age: Mapped[float | None] = mapped_column(Float, nullable=True)

    admissions = relationship("Admission", back_populates="patient")

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, gender={self.gender})>"
