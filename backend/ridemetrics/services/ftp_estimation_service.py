"""FTP estimation from best efforts using the Critical Power model.

Two estimators run side by side:
- Duration-adjusted single point: every maximal effort minus W'/t is a lower
  bound on CP; the best of these is the baseline estimate.
- Multi-point regression: work = CP * t + W' fitted over 3-30 minute efforts.

The higher of the two wins (regression on a tie). An estimate may replace the
athlete's FTP only upward and only by more than the hysteresis band.
"""

import logging
import math
import numbers
from datetime import date, timedelta
from typing import Mapping, Optional, Sequence

import numpy as np

from ridemetrics.config import Settings, get_settings
from ridemetrics.schemas.ftp import (
    Confidence,
    CPEstimate,
    EstimationMethod,
    FTPHistoryPoint,
    FTPUpdateDecision,
    RegressionFit,
)
from ridemetrics.schemas.power import RideCurve, duration_label
from ridemetrics.services.personal_records_service import personal_records_service

logger = logging.getLogger(__name__)


class FTPEstimationService:
    """Estimate Critical Power (≈ FTP) and W' from best efforts."""

    # Efforts shorter than 3 minutes are dominated by W'
    MIN_CP_DURATION = 180
    MAX_REGRESSION_DURATION = 1800
    MIN_REGRESSION_POINTS = 3
    MIN_DURATION_SPAN_RATIO = 2.5

    # Single-point confidence by the duration that produced the estimate
    HIGH_CONFIDENCE_DURATION = 2700
    MEDIUM_CONFIDENCE_DURATION = 1200

    TWENTY_MINUTES = 1200
    TWENTY_MINUTE_FTP_FACTOR = 0.95

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def _valid_pairs(self, best_by_duration: Mapping[int, float]) -> dict[int, float]:
        """Drop pairs that are not positive, finite numbers."""
        pairs: dict[int, float] = {}
        for duration, power in best_by_duration.items():
            if not isinstance(duration, numbers.Real) or not isinstance(power, numbers.Real):
                continue
            if not (math.isfinite(duration) and math.isfinite(power)):
                continue
            if duration <= 0 or power <= 0:
                continue
            seconds = int(duration)
            pairs[seconds] = max(float(power), pairs.get(seconds, 0.0))
        return pairs

    def duration_adjusted_ftp(
        self,
        best_by_duration: Mapping[int, float]
    ) -> Optional[tuple[float, int]]:
        """
        Single-point CP estimate: max over durations >= 3min of power - W'/t.

        Args:
            best_by_duration: Best power in watts keyed by duration in seconds

        Returns:
            Tuple of (estimated CP in watts, duration that produced it), or None
        """
        w_prime = self.settings.DEFAULT_W_PRIME
        best: Optional[tuple[float, int]] = None

        for duration, power in sorted(self._valid_pairs(best_by_duration).items()):
            if duration < self.MIN_CP_DURATION:
                continue
            candidate = power - w_prime / duration
            if best is None or candidate > best[0]:
                best = (candidate, duration)

        return best

    def fit_critical_power(self, best_by_duration: Mapping[int, float]) -> Optional[RegressionFit]:
        """
        Fit the two-parameter work-time model: work(t) = CP * t + W'.

        Uses efforts between 3 and 30 minutes. The fit needs at least three
        durations spanning a 2.5x range, and is rejected when CP or W' fall
        outside physiological bounds.

        Args:
            best_by_duration: Best power in watts keyed by duration in seconds

        Returns:
            RegressionFit, or None when the data does not qualify
        """
        points = sorted(
            (duration, power)
            for duration, power in self._valid_pairs(best_by_duration).items()
            if self.MIN_CP_DURATION <= duration <= self.MAX_REGRESSION_DURATION
        )
        if len(points) < self.MIN_REGRESSION_POINTS:
            return None

        durations = np.array([duration for duration, _ in points], dtype=np.float64)
        powers = np.array([power for _, power in points], dtype=np.float64)
        if durations[-1] / durations[0] < self.MIN_DURATION_SPAN_RATIO:
            logger.debug(
                f"Regression skipped: durations {int(durations[0])}-{int(durations[-1])}s "
                f"span less than {self.MIN_DURATION_SPAN_RATIO}x"
            )
            return None

        work = powers * durations
        slope, intercept = np.polyfit(durations, work, 1)
        critical_power, w_prime = float(slope), float(intercept)

        predicted = critical_power * durations + w_prime
        ss_res = float(np.sum((work - predicted) ** 2))
        ss_tot = float(np.sum((work - np.mean(work)) ** 2))
        r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0

        if critical_power <= self.settings.MIN_CRITICAL_POWER:
            logger.debug(f"Regression rejected: CP {critical_power:.1f}W too low")
            return None
        if not self.settings.W_PRIME_MIN <= w_prime <= self.settings.W_PRIME_MAX:
            logger.debug(f"Regression rejected: W' {w_prime:.0f}J out of range")
            return None

        return RegressionFit(
            critical_power=critical_power,
            w_prime=w_prime,
            r_squared=r_squared,
            durations=[int(d) for d in durations],
        )

    def estimate(
        self,
        best_by_duration: Mapping[int, float],
        activity_count: int = 0
    ) -> Optional[CPEstimate]:
        """
        Estimate FTP (≈ CP) and W' from best efforts.

        Args:
            best_by_duration: Best power in watts keyed by duration in seconds,
                possibly collected across many rides
            activity_count: Number of rides the efforts were drawn from

        Returns:
            CPEstimate, or None if there are no usable efforts of 3min or longer
        """
        if not best_by_duration:
            return None

        single = self.duration_adjusted_ftp(best_by_duration)
        if single is None:
            return None
        single_ftp, single_duration = single

        fit = self.fit_critical_power(best_by_duration)

        # Max wins; regression keeps ties
        if fit is not None and fit.critical_power >= single_ftp:
            return CPEstimate(
                critical_power=round(fit.critical_power, 1),
                w_prime=round(fit.w_prime),
                confidence=(
                    Confidence.HIGH
                    if fit.r_squared >= self.settings.HIGH_CONFIDENCE_R_SQUARED
                    else Confidence.MEDIUM
                ),
                method=EstimationMethod.REGRESSION,
                supporting_durations=[duration_label(d) for d in fit.durations],
                based_on=(
                    f"Work-time regression over {len(fit.durations)} durations "
                    f"(R²={fit.r_squared:.3f})"
                ),
                activity_count=activity_count,
                r_squared=round(fit.r_squared, 4),
                regression=fit,
            )

        if single_duration >= self.HIGH_CONFIDENCE_DURATION:
            confidence = Confidence.HIGH
        elif single_duration >= self.MEDIUM_CONFIDENCE_DURATION:
            confidence = Confidence.MEDIUM
        else:
            confidence = Confidence.LOW

        label = duration_label(single_duration)
        return CPEstimate(
            critical_power=round(single_ftp, 1),
            w_prime=self.settings.DEFAULT_W_PRIME,
            confidence=confidence,
            method=EstimationMethod.DURATION_ADJUSTED,
            supporting_durations=[label],
            based_on=f"Best {label} power adjusted for W' of {self.settings.DEFAULT_W_PRIME:.0f}J",
            activity_count=activity_count,
            regression=fit,
        )

    def estimate_from_curves(
        self,
        curves: Sequence[RideCurve],
        as_of: Optional[date] = None,
        window_days: Optional[int] = None
    ) -> Optional[CPEstimate]:
        """
        Estimate FTP from the best efforts of recent rides.

        Args:
            curves: Power curves with ride dates
            as_of: Reference date (default today)
            window_days: Lookback window (default FTP_ESTIMATION_WINDOW_DAYS)

        Returns:
            CPEstimate, or None if the window holds no usable efforts
        """
        as_of = as_of or date.today()
        if window_days is None:
            window_days = self.settings.FTP_ESTIMATION_WINDOW_DAYS
        since = as_of - timedelta(days=window_days)

        best, ride_count = personal_records_service.best_by_duration(curves, since=since)
        if not best:
            logger.debug(f"No power curve data since {since} for FTP estimation")
            return None

        return self.estimate(best, activity_count=ride_count)

    def auto_update(
        self,
        current_ftp: Optional[int],
        estimate: Optional[CPEstimate]
    ) -> FTPUpdateDecision:
        """
        Decide whether an estimate should replace the athlete's FTP.

        Rules:
        - Never apply a low-confidence estimate
        - Apply when no FTP is set
        - Apply when the estimate exceeds the current FTP by more than the hysteresis band
        - Never lower FTP automatically

        Args:
            current_ftp: Athlete's current FTP in watts (None or 0 when unset)
            estimate: Latest CP estimate

        Returns:
            FTPUpdateDecision
        """
        current = current_ftp if current_ftp and current_ftp > 0 else None

        if estimate is None:
            return FTPUpdateDecision(
                apply=False, current_ftp=current, reason="No FTP estimate available"
            )

        if estimate.confidence == Confidence.LOW:
            return FTPUpdateDecision(
                apply=False,
                current_ftp=current,
                reason=f"Estimate confidence too low ({estimate.confidence.value})",
            )

        if current is None:
            return FTPUpdateDecision(
                apply=True,
                current_ftp=None,
                new_ftp=estimate.estimated_ftp,
                reason="No FTP set",
            )

        hysteresis = self.settings.FTP_HYSTERESIS_WATTS
        if estimate.critical_power > current + hysteresis:
            return FTPUpdateDecision(
                apply=True,
                current_ftp=current,
                new_ftp=estimate.estimated_ftp,
                reason=f"Estimate exceeds current FTP by more than {hysteresis}W",
            )

        if estimate.critical_power < current:
            reason = "Estimate below current FTP; lowering FTP requires a manual change"
        else:
            reason = f"Estimate within {hysteresis}W of current FTP"
        return FTPUpdateDecision(apply=False, current_ftp=current, reason=reason)

    def ftp_history(
        self,
        curves: Sequence[RideCurve],
        as_of: Optional[date] = None,
        weeks: int = 12
    ) -> list[FTPHistoryPoint]:
        """
        Weekly best 20-minute power and the 95% FTP it implies.

        Args:
            curves: Power curves with ride dates
            as_of: Reference date (default today)
            weeks: Number of weeks to look back

        Returns:
            FTPHistoryPoint list sorted by ISO week
        """
        as_of = as_of or date.today()
        since = as_of - timedelta(days=weeks * 7)

        weekly_best: dict[str, int] = {}
        for curve in curves:
            power_20min = curve.get(self.TWENTY_MINUTES)
            if not power_20min or curve.ride_date is None:
                continue
            if not since <= curve.ride_date <= as_of:
                continue

            iso_year, iso_week, _ = curve.ride_date.isocalendar()
            week = f"{iso_year}-W{iso_week:02d}"
            if power_20min > weekly_best.get(week, 0):
                weekly_best[week] = power_20min

        return [
            FTPHistoryPoint(
                week=week,
                power_20min=power_20min,
                ftp=int(round(power_20min * self.TWENTY_MINUTE_FTP_FACTOR)),
            )
            for week, power_20min in sorted(weekly_best.items())
        ]


# Create a singleton instance for convenience
ftp_estimation_service = FTPEstimationService()
