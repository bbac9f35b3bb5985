"""Power curve model storing one ride's best efforts per canonical duration."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ridemetrics.models.base import Base
from ridemetrics.schemas.power import CANONICAL_DURATIONS, PowerCurve, RideCurve, duration_label

if TYPE_CHECKING:
    from ridemetrics.models.activity import Activity
    from ridemetrics.models.athlete import Athlete


class PowerCurveRecord(Base):
    """
    Best average power (watts) for each canonical duration of a ride.

    One row per (athlete, activity); re-analyzing a ride replaces the row.
    Columns stay NULL for durations longer than the ride.
    """

    __tablename__ = "power_curves"
    __table_args__ = (
        UniqueConstraint("athlete_id", "activity_id", name="uq_power_curve_athlete_activity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    athlete_id: Mapped[int] = mapped_column(Integer, ForeignKey("athletes.id"), index=True)
    activity_id: Mapped[int] = mapped_column(Integer, ForeignKey("activities.id"), index=True)

    power_1min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_3min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_5min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_8min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_10min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_15min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_20min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_30min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_45min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    power_60min: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    athlete: Mapped["Athlete"] = relationship("Athlete", back_populates="power_curves")
    activity: Mapped["Activity"] = relationship("Activity")

    def __repr__(self) -> str:
        return (
            f"<PowerCurveRecord(id={self.id}, activity_id={self.activity_id}, "
            f"20min={self.power_20min}W)>"
        )

    def apply_curve(self, curve: PowerCurve) -> None:
        """Replace every duration column with the values of ``curve``."""
        for column, power in curve.as_columns().items():
            setattr(self, column, power)

    def to_curve(self) -> RideCurve:
        """Convert to a RideCurve carrying the activity id and ride date."""
        powers = {}
        for duration in CANONICAL_DURATIONS:
            power = getattr(self, f"power_{duration_label(duration)}")
            if power is not None:
                powers[duration] = power

        return RideCurve(
            powers=powers,
            ride_id=self.activity_id,
            ride_date=self.activity.date if self.activity else None,
        )
