"""Database models used by the persistence adapter."""

from ridemetrics.models.base import Base
from ridemetrics.models.athlete import Athlete
from ridemetrics.models.activity import Activity
from ridemetrics.models.power_curve import PowerCurveRecord
from ridemetrics.models.fitness_metric import FitnessMetric

__all__ = [
    "Base",
    "Athlete",
    "Activity",
    "PowerCurveRecord",
    "FitnessMetric",
]
