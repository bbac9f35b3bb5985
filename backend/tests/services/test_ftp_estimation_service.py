"""Tests for Critical Power based FTP estimation."""

from datetime import date

import pytest

from ridemetrics.config import Settings
from ridemetrics.schemas.ftp import Confidence, CPEstimate, EstimationMethod
from ridemetrics.schemas.power import RideCurve
from ridemetrics.services.ftp_estimation_service import FTPEstimationService

REGRESSION_DURATIONS = [180, 300, 600, 1200, 1800]


def synthetic_efforts(critical_power, w_prime, durations=REGRESSION_DURATIONS):
    """Best efforts that follow P(t) = CP + W'/t exactly."""
    return {d: critical_power + w_prime / d for d in durations}


def make_estimate(critical_power, confidence=Confidence.HIGH):
    return CPEstimate(
        critical_power=critical_power,
        w_prime=20000,
        confidence=confidence,
        method=EstimationMethod.REGRESSION,
    )


@pytest.fixture
def service(settings):
    return FTPEstimationService(settings)


class TestRegression:
    """Tests for the work-time regression."""

    def test_recovers_model_parameters(self, service):
        """Noise-free efforts give back the CP and W' they were built from."""
        fit = service.fit_critical_power(synthetic_efforts(280, 22000))

        assert fit.critical_power == pytest.approx(280, abs=2)
        assert fit.w_prime == pytest.approx(22000, abs=500)
        assert fit.r_squared == pytest.approx(1.0)
        assert fit.durations == REGRESSION_DURATIONS

    def test_ignores_efforts_outside_range(self, service):
        """Only 3-30 minute efforts enter the fit."""
        efforts = synthetic_efforts(280, 22000)
        efforts[60] = 900
        efforts[3600] = 100

        fit = service.fit_critical_power(efforts)

        assert fit.durations == REGRESSION_DURATIONS
        assert fit.critical_power == pytest.approx(280, abs=2)

    def test_needs_three_durations(self, service):
        assert service.fit_critical_power(synthetic_efforts(280, 22000, [180, 1200])) is None

    def test_needs_duration_span(self, service):
        """Durations must span at least 2.5x."""
        efforts = synthetic_efforts(280, 22000, [600, 900, 1200])

        assert service.fit_critical_power(efforts) is None

    def test_rejects_implausible_w_prime(self, service):
        """Flat efforts imply W' of 0 and are rejected."""
        efforts = {180: 300, 600: 300, 1800: 300}

        assert service.fit_critical_power(efforts) is None

    def test_rejects_low_critical_power(self, service):
        assert service.fit_critical_power(synthetic_efforts(90, 20000)) is None

    def test_skips_invalid_pairs(self, service):
        """Non-positive and non-finite values are dropped before fitting."""
        efforts = synthetic_efforts(280, 22000)
        efforts[240] = float("nan")
        efforts[420] = 0
        efforts[-60] = 300

        fit = service.fit_critical_power(efforts)

        assert fit.durations == REGRESSION_DURATIONS


class TestDurationAdjusted:
    """Tests for the single-point estimator."""

    def test_best_adjusted_effort(self, service):
        ftp, duration = service.duration_adjusted_ftp({300: 340, 1200: 300})

        assert duration == 1200
        assert ftp == pytest.approx(300 - 20000 / 1200)

    def test_short_efforts_ignored(self, service):
        assert service.duration_adjusted_ftp({60: 500, 120: 450}) is None

    def test_monotone_in_best_efforts(self, service):
        """Raising any effort never lowers the estimate."""
        efforts = {300: 340, 600: 315, 1200: 300}
        baseline, _ = service.duration_adjusted_ftp(efforts)

        for duration in efforts:
            improved = dict(efforts)
            improved[duration] += 10
            ftp, _ = service.duration_adjusted_ftp(improved)
            assert ftp >= baseline


class TestEstimate:
    """Tests for combining both estimators."""

    def test_single_point_wins_when_higher(self, service):
        """With W' above the default, the adjusted short effort beats the fit."""
        estimate = service.estimate(synthetic_efforts(280, 22000), activity_count=4)

        assert estimate.method == EstimationMethod.DURATION_ADJUSTED
        assert estimate.critical_power == pytest.approx(280 + 2000 / 180, abs=0.1)
        assert estimate.confidence == Confidence.LOW
        assert estimate.supporting_durations == ["3min"]
        assert estimate.w_prime == 20000
        assert estimate.activity_count == 4
        # Regression diagnostics are still reported
        assert estimate.regression.critical_power == pytest.approx(280, abs=2)
        assert estimate.regression.w_prime == pytest.approx(22000, abs=500)

    def test_regression_wins_when_higher(self, service):
        estimate = service.estimate(synthetic_efforts(280, 15000))

        assert estimate.method == EstimationMethod.REGRESSION
        assert estimate.critical_power == pytest.approx(280, abs=0.1)
        assert estimate.w_prime == pytest.approx(15000, abs=1)
        assert estimate.confidence == Confidence.HIGH
        assert estimate.r_squared == pytest.approx(1.0)
        assert estimate.supporting_durations == ["3min", "5min", "10min", "20min", "30min"]
        assert estimate.estimated_ftp == 280

    def test_regression_below_r_squared_threshold_is_medium(self):
        service = FTPEstimationService(Settings(_env_file=None, HIGH_CONFIDENCE_R_SQUARED=1.01))

        estimate = service.estimate(synthetic_efforts(280, 15000))

        assert estimate.method == EstimationMethod.REGRESSION
        assert estimate.confidence == Confidence.MEDIUM

    def test_single_point_confidence_by_duration(self, service):
        high = service.estimate({2700: 270, 3600: 262})
        medium = service.estimate({300: 340, 1200: 300})

        assert high.confidence == Confidence.HIGH
        assert high.supporting_durations == ["45min"]
        assert high.regression is None
        assert medium.confidence == Confidence.MEDIUM
        assert medium.critical_power == pytest.approx(283.3)

    def test_no_usable_efforts(self, service):
        assert service.estimate({}) is None
        assert service.estimate({60: 500}) is None

    def test_from_curves_uses_recent_window(self, service):
        curves = [
            RideCurve(ride_id=1, ride_date=date(2024, 2, 20), powers={300: 340, 1200: 300}),
            RideCurve(ride_id=2, ride_date=date(2023, 12, 1), powers={1200: 400}),
        ]

        estimate = service.estimate_from_curves(curves, as_of=date(2024, 3, 1))

        assert estimate.critical_power == pytest.approx(283.3)
        assert estimate.activity_count == 1

    def test_from_curves_without_recent_rides(self, service):
        curves = [RideCurve(ride_id=2, ride_date=date(2023, 12, 1), powers={1200: 400})]

        assert service.estimate_from_curves(curves, as_of=date(2024, 3, 1)) is None


class TestAutoUpdate:
    """Tests for the guarded FTP update."""

    def test_applies_when_no_ftp(self, service):
        for current in (None, 0):
            decision = service.auto_update(current, make_estimate(262.4, Confidence.MEDIUM))

            assert decision.apply is True
            assert decision.current_ftp is None
            assert decision.new_ftp == 262

    def test_applies_above_hysteresis(self, service):
        decision = service.auto_update(280, make_estimate(300))

        assert decision.apply is True
        assert decision.current_ftp == 280
        assert decision.new_ftp == 300

    @pytest.mark.parametrize("critical_power", [280, 284, 285])
    def test_within_hysteresis_is_ignored(self, service, critical_power):
        """The estimate must exceed current FTP by more than 5W."""
        assert service.auto_update(280, make_estimate(critical_power)).apply is False

    def test_just_above_hysteresis(self, service):
        decision = service.auto_update(280, make_estimate(285.6))

        assert decision.apply is True
        assert decision.new_ftp == 286

    def test_never_lowers_ftp(self, service):
        decision = service.auto_update(300, make_estimate(250))

        assert decision.apply is False
        assert decision.new_ftp is None

    def test_low_confidence_is_ignored(self, service):
        assert service.auto_update(None, make_estimate(300, Confidence.LOW)).apply is False

    def test_missing_estimate(self, service):
        assert service.auto_update(250, None).apply is False


class TestFTPHistory:
    """Tests for weekly 20 minute power history."""

    def test_weekly_best(self, service):
        curves = [
            RideCurve(ride_id=1, ride_date=date(2024, 1, 1), powers={1200: 300}),
            RideCurve(ride_id=2, ride_date=date(2024, 1, 3), powers={1200: 320}),
            RideCurve(ride_id=3, ride_date=date(2024, 1, 10), powers={1200: 305}),
            RideCurve(ride_id=4, ride_date=date(2024, 1, 11), powers={300: 400}),
            RideCurve(ride_id=5, powers={1200: 500}),
        ]

        history = service.ftp_history(curves, as_of=date(2024, 1, 14))

        assert [(h.week, h.power_20min, h.ftp) for h in history] == [
            ("2024-W01", 320, 304),
            ("2024-W02", 305, 290),
        ]

    def test_excludes_rides_outside_window(self, service):
        curves = [
            RideCurve(ride_id=1, ride_date=date(2023, 6, 1), powers={1200: 300}),
            RideCurve(ride_id=2, ride_date=date(2024, 2, 1), powers={1200: 300}),
        ]

        assert service.ftp_history(curves, as_of=date(2024, 1, 14), weeks=12) == []
