"""Shared fixtures: in-memory SQLite session and engine settings."""
import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from safety_api.config import build_engine_settings
from safety_api.database import Base, create_db_engine
from safety_api.models import db_models  # noqa: F401 - registers tables


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def settings():
    """UTC windows, 06:00 shift boundary, Monday weeks, no skew, unbounded backfill."""
    return build_engine_settings(
        timezone_name="UTC",
        shift_boundary_hour="6",
        first_day_of_week="0",
        clock_skew_seconds="0",
        max_backfill_days=None,
        max_history_windows="1000",
    )
