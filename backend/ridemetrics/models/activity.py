"""Activity model for rides supplied by an activity-data provider."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ridemetrics.models.base import Base
from ridemetrics.schemas.training_load import RideLoad

if TYPE_CHECKING:
    from ridemetrics.models.athlete import Athlete


class Activity(Base):
    """A single ride and its summary metrics."""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    athlete_id: Mapped[int] = mapped_column(Integer, ForeignKey("athletes.id"), index=True)

    # Activity details
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime, index=True)

    # Performance metrics
    duration_seconds: Mapped[int] = mapped_column(Integer)  # moving time
    distance_meters: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    average_power: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # watts
    normalized_power: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # watts
    tss: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # Training Stress Score

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    athlete: Mapped["Athlete"] = relationship("Athlete", back_populates="activities")

    def __repr__(self) -> str:
        return f"<Activity(id={self.id}, name='{self.name}', date={self.date})>"

    def to_ride_load(self) -> RideLoad:
        """Training stress summary used by the load calculations."""
        return RideLoad(
            ride_date=self.date,
            tss=self.tss,
            duration_seconds=self.duration_seconds,
            distance_meters=self.distance_meters,
        )
