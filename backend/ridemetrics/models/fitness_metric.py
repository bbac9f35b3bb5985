"""Stored daily CTL/ATL/TSB values."""

from datetime import datetime
from datetime import date as date_type
from typing import TYPE_CHECKING

from sqlalchemy import Integer, Float, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ridemetrics.models.base import Base
from ridemetrics.schemas.training_load import TrainingLoadPoint

if TYPE_CHECKING:
    from ridemetrics.models.athlete import Athlete


class FitnessMetric(Base):
    """One day of an athlete's fitness/fatigue/form series."""

    __tablename__ = "fitness_metrics"
    __table_args__ = (
        UniqueConstraint("athlete_id", "date", name="uq_fitness_metric_athlete_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    athlete_id: Mapped[int] = mapped_column(Integer, ForeignKey("athletes.id"), index=True)
    date: Mapped[date_type] = mapped_column(Date, index=True)

    daily_tss: Mapped[float] = mapped_column(Float, default=0.0)  # sum over the day's rides
    ctl: Mapped[float] = mapped_column(Float, default=0.0)
    atl: Mapped[float] = mapped_column(Float, default=0.0)
    tsb: Mapped[float] = mapped_column(Float, default=0.0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    athlete: Mapped["Athlete"] = relationship("Athlete", back_populates="fitness_metrics")

    def __repr__(self) -> str:
        return f"<FitnessMetric(athlete_id={self.athlete_id}, date={self.date}, tsb={self.tsb})>"

    def apply_point(self, point: TrainingLoadPoint) -> None:
        self.daily_tss = point.daily_tss
        self.ctl = point.ctl
        self.atl = point.atl
        self.tsb = point.tsb

    def to_point(self) -> TrainingLoadPoint:
        return TrainingLoadPoint.model_validate(self)
