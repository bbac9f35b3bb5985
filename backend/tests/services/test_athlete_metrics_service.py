"""Tests for the database-backed athlete metrics service."""

from datetime import date, datetime, timedelta

import pytest

from ridemetrics.models import Athlete, FitnessMetric, PowerCurveRecord
from ridemetrics.schemas.ftp import Confidence
from ridemetrics.services.athlete_metrics_service import AthleteMetricsService


@pytest.fixture
def service(settings):
    return AthleteMetricsService(settings)


class TestPowerCurves:
    """Tests for storing and reading power curves."""

    def test_record_power_curve(self, service, db_session, athlete, make_activity):
        activity = make_activity(datetime(2024, 2, 20, 8, 0))

        record = service.record_power_curve(db_session, athlete.id, activity.id, [250] * 1200)

        assert record.power_20min == 250
        assert record.power_1min == 250
        assert record.power_30min is None
        assert record.to_curve().ride_date == date(2024, 2, 20)

    def test_reanalysis_replaces_curve(self, service, db_session, athlete, make_activity):
        activity = make_activity(datetime(2024, 2, 20, 8, 0))

        first = service.record_power_curve(db_session, athlete.id, activity.id, [250] * 1200)
        second = service.record_power_curve(db_session, athlete.id, activity.id, [300] * 600)

        assert second.id == first.id
        assert second.power_10min == 300
        assert second.power_20min is None
        assert db_session.query(PowerCurveRecord).count() == 1

    def test_no_power_data(self, service, db_session, athlete, make_activity):
        activity = make_activity(datetime(2024, 2, 20, 8, 0))

        assert service.record_power_curve(db_session, athlete.id, activity.id, []) is None
        assert db_session.query(PowerCurveRecord).count() == 0

    def test_personal_records(self, service, db_session, athlete, make_activity):
        first = make_activity(datetime(2024, 1, 10, 8, 0))
        second = make_activity(datetime(2024, 2, 10, 8, 0))
        service.record_power_curve(db_session, athlete.id, first.id, [300] * 300 + [200] * 900)
        service.record_power_curve(db_session, athlete.id, second.id, [260] * 1200)

        records = service.personal_records(db_session, athlete.id)

        assert records[300].power == 300
        assert records[300].ride_id == first.id
        assert records[1200].power == 260
        assert records[1200].ride_id == second.id
        assert records[1200].ride_date == date(2024, 2, 10)
        assert records[3600].power == 0


class TestFTP:
    """Tests for estimating and storing FTP."""

    def test_apply_ftp_estimate(self, service, db_session, make_activity):
        athlete = Athlete(name="New Rider")
        db_session.add(athlete)
        db_session.commit()
        activity = make_activity(datetime(2024, 2, 20, 8, 0), athlete_id=athlete.id)
        service.record_power_curve(db_session, athlete.id, activity.id, [270] * 3600)

        estimate = service.estimate_ftp(db_session, athlete.id, as_of=date(2024, 3, 1))
        decision = service.apply_ftp_estimate(db_session, athlete.id, as_of=date(2024, 3, 1))

        assert estimate.confidence == Confidence.HIGH
        assert estimate.critical_power == pytest.approx(264.4)
        assert decision.apply is True
        assert db_session.get(Athlete, athlete.id).ftp == 264

        # Same data again stays within the hysteresis band
        again = service.apply_ftp_estimate(db_session, athlete.id, as_of=date(2024, 3, 1))
        assert again.apply is False
        assert db_session.get(Athlete, athlete.id).ftp == 264

    def test_unknown_athlete(self, service, db_session):
        with pytest.raises(ValueError, match="not found"):
            service.apply_ftp_estimate(db_session, 999)


class TestActivityTSS:
    """Tests for filling in ride TSS."""

    def test_update_activity_tss(self, service, db_session, athlete, make_activity):
        with_power = make_activity(datetime(2024, 2, 1, 8, 0), average_power=200.0)
        without_power = make_activity(datetime(2024, 2, 2, 8, 0))
        already_scored = make_activity(datetime(2024, 2, 3, 8, 0), average_power=200.0, tss=42.0)

        updated = service.update_activity_tss(db_session, athlete.id)

        assert updated == 1
        assert with_power.tss == 64.0
        assert without_power.tss is None
        assert already_scored.tss == 42.0

    def test_requires_ftp(self, service, db_session, athlete, make_activity):
        athlete.ftp = None
        db_session.commit()
        make_activity(datetime(2024, 2, 1, 8, 0), average_power=200.0)

        assert service.update_activity_tss(db_session, athlete.id) == 0


class TestFitnessHistory:
    """Tests for the stored CTL/ATL/TSB history."""

    def test_fitness_history(self, service, db_session, athlete, make_activity):
        as_of = date(2024, 3, 1)
        for days_ago in range(0, 60, 2):
            ride_day = as_of - timedelta(days=days_ago)
            make_activity(datetime(ride_day.year, ride_day.month, ride_day.day, 7), tss=80.0)
        make_activity(datetime(2024, 2, 29, 18, 0), tss=None)

        metrics = service.fitness_history(db_session, athlete.id, as_of=as_of, days=7)

        assert [metric.date for metric in metrics] == [
            as_of - timedelta(days=i) for i in range(7, -1, -1)
        ]
        assert metrics[-1].daily_tss == 80.0
        assert metrics[-2].daily_tss == 0.0

        expected = service.training_load.ema_series(
            {as_of - timedelta(days=d): 80.0 for d in range(0, 60, 2)},
            as_of - timedelta(days=7 + 90),
            as_of,
        )[-1]
        assert metrics[-1].ctl == expected.ctl
        assert metrics[-1].atl == expected.atl
        assert metrics[-1].tsb == expected.tsb

    def test_recalculation_updates_rows(self, service, db_session, athlete, make_activity):
        as_of = date(2024, 3, 1)
        make_activity(datetime(2024, 3, 1, 7, 0), tss=100.0)
        service.fitness_history(db_session, athlete.id, as_of=as_of, days=3)

        make_activity(datetime(2024, 3, 1, 18, 0), tss=50.0)
        metrics = service.fitness_history(db_session, athlete.id, as_of=as_of, days=3)

        assert db_session.query(FitnessMetric).count() == 4
        assert metrics[-1].daily_tss == 150.0

    def test_stored_rows_convert_to_points(self, service, db_session, athlete, make_activity):
        make_activity(datetime(2024, 3, 1, 7, 0), tss=100.0)

        metrics = service.fitness_history(db_session, athlete.id, as_of=date(2024, 3, 1), days=0)
        point = metrics[0].to_point()

        assert point.date == date(2024, 3, 1)
        assert point.daily_tss == 100.0
        assert point.ctl == 2.4
        assert point.tsb == -11.9


class TestWeeklyVolume:
    """Tests for weekly ride totals."""

    def test_weekly_volume(self, service, db_session, athlete, make_activity):
        make_activity(datetime(2023, 12, 30, 9, 0), tss=90.0)
        make_activity(datetime(2024, 1, 7, 9, 0), tss=60.0, duration_seconds=3600)
        make_activity(datetime(2024, 1, 9, 9, 0), tss=None, duration_seconds=1800, distance_meters=15000.0)
        make_activity(datetime(2024, 1, 15, 9, 0), tss=80.0)

        weeks = service.weekly_volume(db_session, athlete.id, since=date(2024, 1, 1))

        assert [week.week_start for week in weeks] == [date(2024, 1, 7), date(2024, 1, 14)]
        assert weeks[0].ride_count == 2
        assert weeks[0].total_tss == 60.0
        assert weeks[0].total_time_seconds == 5400
        assert weeks[0].total_distance_meters == 45000.0
        assert weeks[1].total_tss == 80.0
