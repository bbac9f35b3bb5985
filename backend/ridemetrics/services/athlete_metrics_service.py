"""Database-backed athlete metrics.

Reads stored rides and power curves, runs the pure metric services on them,
and writes back the results that are persisted: power curves, FTP updates,
ride TSS and the daily CTL/ATL/TSB history.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from sqlalchemy import and_
from sqlalchemy.orm import Session

from ridemetrics.config import Settings, get_settings
from ridemetrics.models.activity import Activity
from ridemetrics.models.athlete import Athlete
from ridemetrics.models.fitness_metric import FitnessMetric
from ridemetrics.models.power_curve import PowerCurveRecord
from ridemetrics.schemas.ftp import CPEstimate, FTPUpdateDecision
from ridemetrics.schemas.power import PersonalRecord, RideCurve
from ridemetrics.schemas.training_load import WeeklyVolume
from ridemetrics.services.ftp_estimation_service import FTPEstimationService
from ridemetrics.services.personal_records_service import personal_records_service
from ridemetrics.services.power_analysis_service import power_analysis_service
from ridemetrics.services.training_load_service import TrainingLoadService

logger = logging.getLogger(__name__)


class AthleteMetricsService:
    """Persist and query per-athlete metrics."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.ftp_estimator = FTPEstimationService(self.settings)
        self.training_load = TrainingLoadService(self.settings)

    def _get_athlete(self, db: Session, athlete_id: int) -> Athlete:
        athlete = db.query(Athlete).filter(Athlete.id == athlete_id).first()
        if not athlete:
            raise ValueError(f"Athlete {athlete_id} not found")
        return athlete

    def _ride_curves(self, db: Session, athlete_id: int) -> list[RideCurve]:
        records = (
            db.query(PowerCurveRecord)
            .filter(PowerCurveRecord.athlete_id == athlete_id)
            .order_by(PowerCurveRecord.id)
            .all()
        )
        return [record.to_curve() for record in records]

    def record_power_curve(
        self,
        db: Session,
        athlete_id: int,
        activity_id: int,
        samples: Optional[Sequence[Optional[float]]]
    ) -> Optional[PowerCurveRecord]:
        """
        Analyze a ride's power stream and upsert its power curve.

        Args:
            db: Database session
            athlete_id: Athlete ID
            activity_id: Activity ID of the ride
            samples: 1Hz power samples, None or empty when the ride has no power data

        Returns:
            Stored PowerCurveRecord, or None if there was no power data
        """
        if samples is None or len(samples) == 0:
            logger.info(f"Activity {activity_id} has no power data")
            return None

        curve = power_analysis_service.analyze_ride(samples)

        record = (
            db.query(PowerCurveRecord)
            .filter(
                and_(
                    PowerCurveRecord.athlete_id == athlete_id,
                    PowerCurveRecord.activity_id == activity_id
                )
            )
            .first()
        )
        if record is None:
            record = PowerCurveRecord(athlete_id=athlete_id, activity_id=activity_id)
            db.add(record)

        record.apply_curve(curve)
        db.commit()
        db.refresh(record)

        logger.info(f"Stored power curve for activity {activity_id} ({len(curve.powers)} durations)")
        return record

    def personal_records(self, db: Session, athlete_id: int) -> dict[int, PersonalRecord]:
        """All-time best power per canonical duration."""
        return personal_records_service.aggregate(self._ride_curves(db, athlete_id))

    def estimate_ftp(
        self,
        db: Session,
        athlete_id: int,
        as_of: Optional[date] = None
    ) -> Optional[CPEstimate]:
        """Estimate FTP from the athlete's recent power curves."""
        return self.ftp_estimator.estimate_from_curves(self._ride_curves(db, athlete_id), as_of=as_of)

    def apply_ftp_estimate(
        self,
        db: Session,
        athlete_id: int,
        as_of: Optional[date] = None
    ) -> FTPUpdateDecision:
        """
        Estimate FTP and store it on the athlete when the update rules allow.

        Returns:
            The FTPUpdateDecision that was evaluated
        """
        athlete = self._get_athlete(db, athlete_id)
        estimate = self.estimate_ftp(db, athlete_id, as_of=as_of)
        decision = self.ftp_estimator.auto_update(athlete.ftp, estimate)

        if decision.apply:
            athlete.ftp = decision.new_ftp
            db.commit()
            logger.info(
                f"Auto-updated FTP for athlete {athlete_id}: "
                f"{decision.current_ftp or 'none'} -> {decision.new_ftp}W"
            )
        else:
            logger.debug(f"FTP not updated for athlete {athlete_id}: {decision.reason}")

        return decision

    def update_activity_tss(self, db: Session, athlete_id: int) -> int:
        """
        Fill in TSS for rides that have power data but no TSS yet.

        Returns:
            Number of activities updated
        """
        athlete = self._get_athlete(db, athlete_id)
        if not athlete.ftp:
            logger.warning(f"No FTP set for athlete {athlete_id}, cannot calculate TSS")
            return 0

        activities = (
            db.query(Activity)
            .filter(
                and_(
                    Activity.athlete_id == athlete_id,
                    Activity.average_power.isnot(None),
                    Activity.tss.is_(None)
                )
            )
            .all()
        )

        for activity in activities:
            activity.tss = self.training_load.calculate_tss(
                activity.duration_seconds,
                activity.average_power,
                athlete.ftp,
                activity.normalized_power,
            )

        db.commit()
        logger.info(f"Updated TSS for {len(activities)} activities")
        return len(activities)

    def weekly_volume(
        self,
        db: Session,
        athlete_id: int,
        since: Optional[date] = None
    ) -> list[WeeklyVolume]:
        """Sunday-started weekly totals of the athlete's rides, optionally from ``since`` on."""
        query = db.query(Activity).filter(Activity.athlete_id == athlete_id)
        if since is not None:
            query = query.filter(Activity.date >= datetime.combine(since, time.min))

        return self.training_load.weekly_volume(
            activity.to_ride_load() for activity in query.order_by(Activity.date).all()
        )

    def fitness_history(
        self,
        db: Session,
        athlete_id: int,
        as_of: Optional[date] = None,
        days: int = 90
    ) -> list[FitnessMetric]:
        """
        Calculate and store CTL/ATL/TSB for each day of the requested range.

        The EMA is seeded TRAINING_LOAD_LOOKBACK_DAYS before the range so the
        first stored day already carries converged fitness.

        Args:
            db: Database session
            athlete_id: Athlete ID
            as_of: Last day of the range (default today)
            days: Number of days before as_of to store

        Returns:
            FitnessMetric rows ordered by date
        """
        self._get_athlete(db, athlete_id)

        end_date = as_of or date.today()
        result_start_date = end_date - timedelta(days=days)
        seed_start_date = result_start_date - timedelta(days=self.settings.TRAINING_LOAD_LOOKBACK_DAYS)

        activities = (
            db.query(Activity)
            .filter(
                and_(
                    Activity.athlete_id == athlete_id,
                    Activity.date >= datetime.combine(seed_start_date, time.min),
                    Activity.date < datetime.combine(end_date + timedelta(days=1), time.min),
                    Activity.tss.isnot(None)
                )
            )
            .all()
        )
        daily_tss = self.training_load.daily_series(
            activity.to_ride_load() for activity in activities
        )
        series = self.training_load.ema_series(daily_tss, seed_start_date, end_date)

        existing = (
            db.query(FitnessMetric)
            .filter(
                and_(
                    FitnessMetric.athlete_id == athlete_id,
                    FitnessMetric.date >= result_start_date,
                    FitnessMetric.date <= end_date
                )
            )
            .all()
        )
        existing_metrics = {metric.date: metric for metric in existing}

        metrics_list: list[FitnessMetric] = []
        for point in series:
            if point.date < result_start_date:
                continue

            metric = existing_metrics.get(point.date)
            if metric is None:
                metric = FitnessMetric(athlete_id=athlete_id, date=point.date)
                db.add(metric)

            metric.apply_point(point)
            metrics_list.append(metric)

        db.commit()
        logger.info(f"Stored {len(metrics_list)} days of fitness metrics for athlete {athlete_id}")
        return metrics_list


# Create a singleton instance for convenience
athlete_metrics_service = AthleteMetricsService()
