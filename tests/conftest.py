"""
Shared fixtures.

Integration tests run against an in-memory SQLite database shared through
a StaticPool, so every session in a test sees the same data. Tables are
created before and dropped after each test.
"""

from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from schedkit.core.config import SchedulingConfig
from schedkit.database import Base, create_session_factory
from schedkit.domain.owner import OwnerRef
import schedkit.models  # noqa: F401  (registers tables on Base.metadata)
from schedkit.services import AvailabilityService, ConflictDetectionService, ScheduleService

# Every test date is on or after this one, so the future-date rule passes
TODAY = date(2025, 1, 1)

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(test_engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = create_session_factory(test_engine)


@pytest.fixture
def engine():
    return test_engine


@pytest.fixture
def db():
    """
    Create a new database session for each test.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def config() -> SchedulingConfig:
    return SchedulingConfig(_env_file=None)


@pytest.fixture
def owner() -> OwnerRef:
    return OwnerRef(kind="user", id="1")


@pytest.fixture
def other_owner() -> OwnerRef:
    return OwnerRef(kind="user", id="2")


@pytest.fixture
def schedule_service(db, config) -> ScheduleService:
    return ScheduleService(db, config, today=lambda: TODAY)


@pytest.fixture
def conflict_service(db, config) -> ConflictDetectionService:
    return ConflictDetectionService(db, config)


@pytest.fixture
def availability_service(db, config) -> AvailabilityService:
    return AvailabilityService(db, config)
