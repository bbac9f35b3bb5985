"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest

from ridemetrics.config import Settings
from ridemetrics.database import SessionLocal, build_engine, create_tables
from ridemetrics.models import Activity, Athlete


@pytest.fixture
def settings():
    """Default settings, independent of any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def db_session():
    """Session bound to a fresh in-memory SQLite database."""
    engine = build_engine("sqlite://")
    create_tables(bind=engine)
    session = SessionLocal(bind=engine)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def athlete(db_session):
    """Athlete with a 250W FTP."""
    athlete = Athlete(name="Test Rider", ftp=250)
    db_session.add(athlete)
    db_session.commit()
    db_session.refresh(athlete)
    return athlete


@pytest.fixture
def make_activity(db_session, athlete):
    """Factory adding a ride for the test athlete."""
    def _make_activity(ride_date: datetime, **kwargs) -> Activity:
        values = {
            "athlete_id": athlete.id,
            "name": "Ride",
            "duration_seconds": 3600,
            "distance_meters": 30000.0,
        }
        values.update(kwargs)
        activity = Activity(date=ride_date, **values)
        db_session.add(activity)
        db_session.commit()
        db_session.refresh(activity)
        return activity

    return _make_activity
