"""Pydantic schemas for Critical Power / FTP estimation."""

import enum
from typing import Optional

from pydantic import BaseModel, Field


class Confidence(str, enum.Enum):
    """How much an FTP estimate can be trusted."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EstimationMethod(str, enum.Enum):
    """Which estimator produced the FTP value."""
    REGRESSION = "regression"                # Multi-point work-time fit
    DURATION_ADJUSTED = "duration_adjusted"  # Best single effort minus W'/t


class RegressionFit(BaseModel):
    """Diagnostics of an accepted two-parameter work-time fit."""

    critical_power: float = Field(..., description="Slope of work over time (watts)")
    w_prime: float = Field(..., description="Intercept of work over time (joules)")
    r_squared: float = Field(..., description="Coefficient of determination on work")
    durations: list[int] = Field(..., description="Durations (seconds) used in the fit")


class CPEstimate(BaseModel):
    """Critical Power estimate used as the athlete's FTP."""

    critical_power: float = Field(..., description="Estimated CP / FTP in watts")
    w_prime: float = Field(..., description="Anaerobic work capacity in joules")
    confidence: Confidence
    method: EstimationMethod
    supporting_durations: list[str] = Field(
        default_factory=list,
        description="Duration labels the estimate rests on"
    )
    based_on: str = Field("", description="Human-readable basis of the estimate")
    activity_count: int = Field(0, ge=0, description="Rides contributing best efforts")
    r_squared: Optional[float] = Field(None, description="R² when regression was used")
    regression: Optional[RegressionFit] = Field(
        None,
        description="Accepted regression fit, reported even when the single-point value wins"
    )

    @property
    def estimated_ftp(self) -> int:
        return int(round(self.critical_power))

    class Config:
        json_schema_extra = {
            "example": {
                "critical_power": 281.4,
                "w_prime": 21850.0,
                "confidence": "high",
                "method": "regression",
                "supporting_durations": ["3min", "5min", "10min", "20min", "30min"],
                "based_on": "Work-time regression over 5 durations (R²=0.998)",
                "activity_count": 14,
                "r_squared": 0.998
            }
        }


class FTPUpdateDecision(BaseModel):
    """Outcome of the guarded FTP auto-update."""

    apply: bool = Field(..., description="Whether the athlete's FTP should be replaced")
    current_ftp: Optional[int] = Field(None, description="FTP before the decision")
    new_ftp: Optional[int] = Field(None, description="FTP to store when applied")
    reason: str = Field(..., description="Why the update was or was not applied")


class FTPHistoryPoint(BaseModel):
    """Weekly best 20-minute power and the FTP it implies."""

    week: str = Field(..., description="ISO week key, e.g. '2024-W03'")
    power_20min: int = Field(..., ge=0)
    ftp: int = Field(..., ge=0)
