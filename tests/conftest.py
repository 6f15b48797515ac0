from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import scheduling.models  # noqa: F401  registers the tables
from scheduling.context import ScheduleContext
from scheduling.db import get_session
from scheduling.main import app
from scheduling.schemas import Professional, Project

# Monday 19 October 2026, before working hours
DEFAULT_NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_project():
    def _make(**overrides):
        data = {
            "id": "proj-1",
            "professional_id": "pro-1",
            "execution_duration": {"value": 2, "unit": "days"},
        }
        data.update(overrides)
        return Project.model_validate(data)
    return _make


@pytest.fixture
def make_context(make_project):
    def _make(project=None, professional=None, members=(), bookings=(), now=DEFAULT_NOW):
        return ScheduleContext(
            project=project or make_project(),
            professional=professional or Professional(id="pro-1", timezone="UTC"),
            team_members={member.id: member for member in members},
            bookings=list(bookings),
            now=now,
        )
    return _make


@pytest.fixture
def session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()
