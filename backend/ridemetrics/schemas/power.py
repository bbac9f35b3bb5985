"""Pydantic schemas for power curves, personal records and power zones."""

from datetime import date as date_type
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from ridemetrics.schemas.training_load import coerce_date

# Durations (seconds) tracked on every power curve
CANONICAL_DURATIONS: tuple[int, ...] = (60, 180, 300, 480, 600, 900, 1200, 1800, 2700, 3600)

RideId = Union[int, str]


def duration_label(duration_seconds: int) -> str:
    """Short label for a duration, e.g. 1200 -> '20min', 45 -> '45s'."""
    if duration_seconds % 60 == 0:
        return f"{duration_seconds // 60}min"
    return f"{duration_seconds}s"


class BestEffort(BaseModel):
    """Best sustained average power for one duration within a ride."""

    duration_seconds: int = Field(..., gt=0, description="Window length in seconds")
    average_power: float = Field(..., ge=0, description="Mean power over the window in watts")
    start_index: int = Field(..., ge=0, description="First sample of the window")
    end_index: int = Field(..., ge=0, description="Sample index just past the window")


class PowerCurve(BaseModel):
    """Best average power (watts) per duration for a single ride."""

    powers: dict[int, int] = Field(
        default_factory=dict,
        description="Duration in seconds mapped to best average power in watts"
    )

    @field_validator("powers")
    @classmethod
    def validate_powers(cls, value: dict[int, int]) -> dict[int, int]:
        for duration, power in value.items():
            if duration <= 0:
                raise ValueError(f"Duration must be positive, got {duration}")
            if power < 0:
                raise ValueError(f"Power must be non-negative, got {power} for {duration}s")
        return value

    def get(self, duration_seconds: int) -> Optional[int]:
        return self.powers.get(duration_seconds)

    def as_columns(self) -> dict[str, Optional[int]]:
        """Map to ``power_<label>`` keys for every canonical duration."""
        return {
            f"power_{duration_label(duration)}": self.powers.get(duration)
            for duration in CANONICAL_DURATIONS
        }

    class Config:
        json_schema_extra = {
            "example": {
                "powers": {60: 420, 300: 330, 1200: 285, 3600: 250}
            }
        }


class RideCurve(PowerCurve):
    """Power curve together with the ride that produced it."""

    ride_id: Optional[RideId] = Field(None, description="Identity of the source ride")
    ride_date: Optional[date_type] = Field(None, description="Date of the source ride")

    @field_validator("ride_date", mode="before")
    @classmethod
    def normalize_ride_date(cls, value):
        return coerce_date(value)


class PersonalRecord(BaseModel):
    """All-time best power for one duration."""

    duration_seconds: int = Field(..., gt=0)
    power: int = Field(0, ge=0, description="Best power in watts (0 when none)")
    ride_id: Optional[RideId] = Field(None, description="Ride that set the record")
    ride_date: Optional[date_type] = Field(None, description="Date the record was set")

    @property
    def label(self) -> str:
        return duration_label(self.duration_seconds)


class PowerZone(BaseModel):
    """Schema for a single power zone."""

    name: str = Field(..., description="Zone name (e.g., 'Recovery', 'Threshold')")
    min_watts: int = Field(..., ge=0, description="Minimum power for this zone")
    max_watts: Optional[int] = Field(
        None,
        ge=0,
        description="Maximum power for this zone (null for highest zone)"
    )
    min_percent: int = Field(..., ge=0, description="Minimum % of FTP")
    max_percent: Optional[int] = Field(
        None,
        ge=0,
        description="Maximum % of FTP (null for highest zone)"
    )
