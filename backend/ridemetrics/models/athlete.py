"""Athlete model holding the current FTP."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ridemetrics.models.base import Base

if TYPE_CHECKING:
    from ridemetrics.models.activity import Activity
    from ridemetrics.models.fitness_metric import FitnessMetric
    from ridemetrics.models.power_curve import PowerCurveRecord


class Athlete(Base):
    """Athlete whose rides are analyzed."""

    __tablename__ = "athletes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ftp: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # Functional Threshold Power in watts

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    activities: Mapped[List["Activity"]] = relationship(
        "Activity", back_populates="athlete", cascade="all, delete-orphan"
    )
    power_curves: Mapped[List["PowerCurveRecord"]] = relationship(
        "PowerCurveRecord", back_populates="athlete", cascade="all, delete-orphan"
    )
    fitness_metrics: Mapped[List["FitnessMetric"]] = relationship(
        "FitnessMetric", back_populates="athlete", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Athlete(id={self.id}, name='{self.name}', ftp={self.ftp})>"
