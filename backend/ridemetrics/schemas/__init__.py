"""Pydantic schemas package for metric inputs and results."""

from ridemetrics.schemas.power import (
    CANONICAL_DURATIONS,
    BestEffort,
    PersonalRecord,
    PowerCurve,
    PowerZone,
    RideCurve,
    duration_label,
)
from ridemetrics.schemas.ftp import (
    Confidence,
    CPEstimate,
    EstimationMethod,
    FTPHistoryPoint,
    FTPUpdateDecision,
    RegressionFit,
)
from ridemetrics.schemas.training_load import (
    FitnessSummary,
    RideLoad,
    TrainingLoadPoint,
    TrainingStatus,
    TrainingStatusResult,
    TrainingStatusSnapshot,
    WeeklyVolume,
)

__all__ = [
    # Power schemas
    "CANONICAL_DURATIONS",
    "BestEffort",
    "PersonalRecord",
    "PowerCurve",
    "PowerZone",
    "RideCurve",
    "duration_label",
    # FTP schemas
    "Confidence",
    "CPEstimate",
    "EstimationMethod",
    "FTPHistoryPoint",
    "FTPUpdateDecision",
    "RegressionFit",
    # Training load schemas
    "FitnessSummary",
    "RideLoad",
    "TrainingLoadPoint",
    "TrainingStatus",
    "TrainingStatusResult",
    "TrainingStatusSnapshot",
    "WeeklyVolume",
]
