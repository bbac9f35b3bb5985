"""Services package for metric calculations."""

from ridemetrics.services.power_analysis_service import PowerAnalysisService, power_analysis_service
from ridemetrics.services.personal_records_service import (
    PersonalRecordsService,
    personal_records_service,
)
from ridemetrics.services.ftp_estimation_service import FTPEstimationService, ftp_estimation_service
from ridemetrics.services.training_load_service import TrainingLoadService, training_load_service
from ridemetrics.services.athlete_metrics_service import AthleteMetricsService, athlete_metrics_service

__all__ = [
    "PowerAnalysisService",
    "power_analysis_service",
    "PersonalRecordsService",
    "personal_records_service",
    "FTPEstimationService",
    "ftp_estimation_service",
    "TrainingLoadService",
    "training_load_service",
    "AthleteMetricsService",
    "athlete_metrics_service",
]
