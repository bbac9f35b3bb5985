"""Training load calculation service.

Implements the Performance Management Chart model:
- Training Stress Score (TSS) per ride
- Chronic Training Load (CTL) - "Fitness", 42-day EWMA of daily TSS
- Acute Training Load (ATL) - "Fatigue", 7-day EWMA of daily TSS
- Training Stress Balance (TSB) - "Form", CTL - ATL
"""

import logging
from datetime import date, timedelta
from typing import Iterable, Mapping, Optional, Sequence, Union

from ridemetrics.config import Settings, get_settings
from ridemetrics.schemas.training_load import (
    FitnessSummary,
    RideLoad,
    TrainingLoadPoint,
    TrainingStatus,
    TrainingStatusResult,
    TrainingStatusSnapshot,
    WeeklyVolume,
)

logger = logging.getLogger(__name__)


class TrainingLoadService:
    """Calculate TSS and the CTL/ATL/TSB series from ride data."""

    # TSB breakpoints, checked top-down: (lower bound, inclusive?, status, description, recommendation)
    STATUS_BANDS = [
        (10, False, TrainingStatus.FRESH,
         "Well rested and ready for hard efforts",
         "Good time for high-intensity sessions or racing"),
        (-5, True, TrainingStatus.OPTIMAL,
         "Training load and recovery are in balance",
         "Continue the planned mix of intensity and volume"),
        (-15, True, TrainingStatus.PRODUCTIVE,
         "Carrying fatigue but adapting",
         "Hold the current load and protect recovery"),
        (-30, True, TrainingStatus.OVERREACHING,
         "Significantly fatigued",
         "Reduce volume and add recovery days"),
    ]
    OVERTRAINING = (
        "At risk of overtraining",
        "Take 3-5 days of complete rest or very easy riding",
    )

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def calculate_tss(
        self,
        duration_seconds: Optional[int],
        average_power: Optional[float],
        ftp: Optional[int],
        normalized_power: Optional[float] = None
    ) -> float:
        """
        Calculate Training Stress Score (TSS).

        TSS quantifies the training load of a workout based on duration and intensity.
        TSS = (duration × NP × IF) / (FTP × 3600) × 100
        where IF (Intensity Factor) = NP / FTP

        Normalized Power is used when provided, otherwise average power.

        Args:
            duration_seconds: Moving time of the ride in seconds
            average_power: Average power in watts
            ftp: Functional Threshold Power in watts
            normalized_power: Normalized Power in watts (optional)

        Returns:
            Training Stress Score rounded to one decimal, 0.0 if any input is missing
        """
        if not duration_seconds or not average_power or not ftp:
            return 0.0
        if duration_seconds <= 0 or average_power <= 0 or ftp <= 0:
            return 0.0

        power = normalized_power if normalized_power and normalized_power > 0 else average_power
        intensity_factor = power / ftp
        tss = (duration_seconds * power * intensity_factor) / (ftp * 3600) * 100

        return round(tss, 1)

    def calculate_intensity_factor(self, normalized_power: Optional[float], ftp: Optional[int]) -> float:
        """IF = NP / FTP, or 0.0 when either is missing."""
        if not normalized_power or not ftp or normalized_power <= 0 or ftp <= 0:
            return 0.0

        return round(normalized_power / ftp, 2)

    def estimate_tss_from_hr(
        self,
        duration_seconds: int,
        avg_hr: int,
        lthr: int,
        rest_hr: int = 60
    ) -> float:
        """
        Estimate TSS from heart rate when power data is not available.

        hrTSS = (duration × hrIF × hrIF) / 3600 × 100
        where hrIF = (avg_hr - rest_hr) / (lthr - rest_hr), capped at 1.2

        Args:
            duration_seconds: Total duration of the workout in seconds
            avg_hr: Average heart rate during the workout
            lthr: Lactate Threshold Heart Rate
            rest_hr: Resting heart rate (default 60)

        Returns:
            Estimated TSS, 0.0 for unusable heart rate data
        """
        if duration_seconds <= 0 or avg_hr < rest_hr:
            return 0.0

        hr_reserve = lthr - rest_hr
        if hr_reserve <= 0:
            logger.debug(f"LTHR {lthr} not above resting HR {rest_hr}; hrTSS unavailable")
            return 0.0

        hr_intensity_factor = min(max((avg_hr - rest_hr) / hr_reserve, 0.0), 1.2)
        hr_tss = (duration_seconds * hr_intensity_factor * hr_intensity_factor) / 3600 * 100

        return round(hr_tss, 1)

    def daily_series(self, rides: Iterable[Union[RideLoad, Mapping]]) -> dict[date, float]:
        """
        Sum TSS per calendar day.

        Days without rides are absent; consumers treat them as 0.
        Rides without a TSS value are skipped.
        """
        daily_tss: dict[date, float] = {}
        for ride in rides:
            if not isinstance(ride, RideLoad):
                ride = RideLoad.model_validate(ride)
            if ride.tss is None:
                continue
            daily_tss[ride.ride_date] = daily_tss.get(ride.ride_date, 0.0) + ride.tss

        return daily_tss

    def ema_series(
        self,
        daily_tss: Mapping[date, float],
        start_date: date,
        end_date: date,
        ctl_time_constant: Optional[int] = None,
        atl_time_constant: Optional[int] = None,
        initial_ctl: float = 0.0,
        initial_atl: float = 0.0
    ) -> list[TrainingLoadPoint]:
        """
        Calculate CTL/ATL/TSB for every day from start_date to end_date inclusive.

        Formula, applied once per calendar day (rest days count as TSS 0):
            CTL_today = CTL_yesterday + (TSS_today - CTL_yesterday) / 42
            ATL_today = ATL_yesterday + (TSS_today - ATL_yesterday) / 7

        The running state is kept unrounded; emitted points are rounded to one decimal.

        Args:
            daily_tss: Total TSS keyed by date
            start_date: First day of the series
            end_date: Last day of the series
            ctl_time_constant: CTL time constant in days (default 42)
            atl_time_constant: ATL time constant in days (default 7)
            initial_ctl: Starting CTL value (default 0)
            initial_atl: Starting ATL value (default 0)

        Returns:
            One TrainingLoadPoint per day, empty if start_date is after end_date
        """
        if ctl_time_constant is None:
            ctl_time_constant = self.settings.CTL_TIME_CONSTANT
        if atl_time_constant is None:
            atl_time_constant = self.settings.ATL_TIME_CONSTANT
        if ctl_time_constant <= 0 or atl_time_constant <= 0:
            raise ValueError("Time constants must be greater than zero")

        ctl = initial_ctl
        atl = initial_atl
        points: list[TrainingLoadPoint] = []

        current_date = start_date
        while current_date <= end_date:
            day_tss = daily_tss.get(current_date, 0.0)
            ctl = ctl + (day_tss - ctl) / ctl_time_constant
            atl = atl + (day_tss - atl) / atl_time_constant
            points.append(
                TrainingLoadPoint(
                    date=current_date,
                    daily_tss=round(day_tss, 1),
                    ctl=round(ctl, 1),
                    atl=round(atl, 1),
                    tsb=round(ctl - atl, 1),
                )
            )
            current_date += timedelta(days=1)

        return points

    def classify_status(self, tsb: float) -> TrainingStatusResult:
        """
        Classify training status from TSB.

        Bands:
        - tsb > 10: fresh
        - -5 <= tsb <= 10: optimal
        - -15 <= tsb < -5: productive
        - -30 <= tsb < -15: overreaching
        - tsb < -30: overtraining
        """
        for lower_bound, inclusive, status, description, recommendation in self.STATUS_BANDS:
            if tsb > lower_bound or (inclusive and tsb == lower_bound):
                return TrainingStatusResult(
                    status=status, description=description, recommendation=recommendation
                )

        description, recommendation = self.OVERTRAINING
        return TrainingStatusResult(
            status=TrainingStatus.OVERTRAINING,
            description=description,
            recommendation=recommendation,
        )

    def current_status(
        self,
        daily_tss: Mapping[date, float],
        as_of: Optional[date] = None,
        lookback_days: Optional[int] = None
    ) -> Optional[TrainingStatusSnapshot]:
        """
        Training load and status for a single day.

        The EMA is seeded lookback_days before as_of so CTL has converged.

        Returns:
            TrainingStatusSnapshot, or None if the window holds no training
        """
        as_of = as_of or date.today()
        if lookback_days is None:
            lookback_days = self.settings.TRAINING_LOAD_LOOKBACK_DAYS
        start_date = as_of - timedelta(days=lookback_days)

        if not any(tss > 0 and start_date <= day <= as_of for day, tss in daily_tss.items()):
            logger.debug(f"No training between {start_date} and {as_of}")
            return None

        load = self.ema_series(daily_tss, start_date, as_of)[-1]
        return TrainingStatusSnapshot(load=load, status=self.classify_status(load.tsb))

    def summarize(self, series: Sequence[TrainingLoadPoint]) -> Optional[FitnessSummary]:
        """Summary statistics for a fitness series, None when empty."""
        if not series:
            return None

        latest = series[-1]
        total_tss = sum(point.daily_tss for point in series)
        return FitnessSummary(
            current_ctl=latest.ctl,
            current_atl=latest.atl,
            current_tsb=latest.tsb,
            avg_daily_tss=round(total_tss / len(series), 1),
            total_tss=round(total_tss, 1),
            training_days=sum(1 for point in series if point.daily_tss > 0),
        )

    def weekly_volume(self, rides: Iterable[Union[RideLoad, Mapping]]) -> list[WeeklyVolume]:
        """Group rides into Sunday-started weeks, ascending."""
        weeks: dict[date, WeeklyVolume] = {}
        for ride in rides:
            if not isinstance(ride, RideLoad):
                ride = RideLoad.model_validate(ride)

            week_start = ride.ride_date - timedelta(days=(ride.ride_date.weekday() + 1) % 7)
            week = weeks.setdefault(week_start, WeeklyVolume(week_start=week_start))
            week.total_distance_meters += ride.distance_meters or 0.0
            week.total_tss = round(week.total_tss + (ride.tss or 0.0), 1)
            week.total_time_seconds += ride.duration_seconds or 0
            week.ride_count += 1

        return [weeks[week_start] for week_start in sorted(weeks)]


# Create a singleton instance for convenience
training_load_service = TrainingLoadService()
