"""Pydantic schemas for training stress and CTL/ATL/TSB tracking."""

from datetime import date as date_type
from datetime import datetime
import enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def coerce_date(value: Any) -> Any:
    """Collapse datetimes to their calendar date; leave everything else to pydantic."""
    if isinstance(value, datetime):
        return value.date()
    return value


class RideLoad(BaseModel):
    """Training stress contributed by a single ride."""

    ride_date: date_type = Field(..., description="Calendar date of the ride")
    tss: Optional[float] = Field(None, ge=0, description="Training Stress Score")
    duration_seconds: Optional[int] = Field(None, ge=0, description="Moving time in seconds")
    distance_meters: Optional[float] = Field(None, ge=0, description="Distance in meters")

    @field_validator("ride_date", mode="before")
    @classmethod
    def normalize_ride_date(cls, value):
        return coerce_date(value)


class TrainingLoadPoint(BaseModel):
    """One day of the fitness/fatigue/form series."""

    date: date_type = Field(..., description="Date of the metric")
    daily_tss: float = Field(0.0, ge=0, description="Total TSS for the day")
    ctl: float = Field(..., description="Chronic Training Load (Fitness)")
    atl: float = Field(..., description="Acute Training Load (Fatigue)")
    tsb: float = Field(..., description="Training Stress Balance (Form)")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "date": "2024-01-15",
                "daily_tss": 75.5,
                "ctl": 55.2,
                "atl": 68.4,
                "tsb": -13.2
            }
        }


class TrainingStatus(str, enum.Enum):
    """Training status bands derived from TSB."""
    FRESH = "fresh"
    OPTIMAL = "optimal"
    PRODUCTIVE = "productive"
    OVERREACHING = "overreaching"
    OVERTRAINING = "overtraining"


class TrainingStatusResult(BaseModel):
    """Classified training status with coaching copy."""

    status: TrainingStatus = Field(..., description="Status band")
    description: str = Field(..., description="What the current form means")
    recommendation: str = Field(..., description="Suggested training response")


class TrainingStatusSnapshot(BaseModel):
    """Current-day training load together with its classification."""

    load: TrainingLoadPoint
    status: TrainingStatusResult


class FitnessSummary(BaseModel):
    """Summary statistics for a fitness period."""

    current_ctl: float = Field(..., description="Current CTL (most recent)")
    current_atl: float = Field(..., description="Current ATL (most recent)")
    current_tsb: float = Field(..., description="Current TSB (most recent)")
    avg_daily_tss: float = Field(..., ge=0, description="Average daily TSS")
    total_tss: float = Field(..., ge=0, description="Total TSS for the period")
    training_days: int = Field(..., ge=0, description="Number of days with training")

    class Config:
        json_schema_extra = {
            "example": {
                "current_ctl": 55.2,
                "current_atl": 68.4,
                "current_tsb": -13.2,
                "avg_daily_tss": 37.8,
                "total_tss": 2650.0,
                "training_days": 45
            }
        }


class WeeklyVolume(BaseModel):
    """Training volume for one Sunday-started week."""

    week_start: date_type = Field(..., description="Sunday starting the week")
    total_distance_meters: float = Field(0.0, ge=0)
    total_tss: float = Field(0.0, ge=0)
    total_time_seconds: int = Field(0, ge=0)
    ride_count: int = Field(0, ge=0)
