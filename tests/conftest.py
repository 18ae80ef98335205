"""Pytest fixtures and configuration for dayplanner tests."""

import pytest
from datetime import date, datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
import uuid

from dayplanner.database.database import Base, get_db
from dayplanner.database import models  # noqa: F401
from dayplanner.database.repository import TaskRepository
from dayplanner.database.fixed_schedule_repository import FixedScheduleRepository
from dayplanner.database.plan_repository import PlanItemRepository
from dayplanner.models.config import SchedulingConfig
from dayplanner.models.task import Task, Priority, EnergyLevel, TaskKind


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# A Monday
PLAN_DATE = date(2024, 1, 15)


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def fixed_schedule_repository(db_session: Session):
    return FixedScheduleRepository(db_session)


@pytest.fixture
def plan_repository(db_session: Session):
    return PlanItemRepository(db_session)


@pytest.fixture
def plan_date():
    return PLAN_DATE


@pytest.fixture
def sample_task_base():
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    return {
        "id": str(uuid.uuid4()),
        "title": "Test Task",
        "notes": "Test notes",
        "duration_min": 30,
        "priority": Priority.MEDIUM,
        "deadline": None,
        "energy_level": EnergyLevel.MEDIUM,
        "kind": TaskKind.NORMAL,
        "flexible": True,
        "completed": False,
        "created_at": datetime(2024, 1, 10, 8, 0, 0),
    }


@pytest.fixture
def sample_task(sample_task_base):
    """Create a sample Task object for testing."""
    return Task(**sample_task_base)


@pytest.fixture
def make_task(sample_task_base):
    """Factory for tasks with a readable id and overrides."""
    def _make(task_id: str, **overrides) -> Task:
        return Task(**{**sample_task_base, "id": task_id, "title": task_id, **overrides})
    return _make


@pytest.fixture
def morning_afternoon_config():
    """Two work windows, 09-12 and 14-18, default padding."""
    return SchedulingConfig(work_windows=[(9, 12), (14, 18)])


@pytest.fixture
def test_config():
    """Configuration used by the API tests (no environment lookups)."""
    return SchedulingConfig(work_windows=[(9, 12), (14, 18)])


@pytest.fixture
def test_client(db_session: Session, test_config: SchedulingConfig):
    """Create a FastAPI test client with overridden database and config dependencies."""
    from dayplanner.api.app import app, get_config

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_config] = lambda: test_config

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
