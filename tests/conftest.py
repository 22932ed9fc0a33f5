"""Pytest configuration and shared fixtures for HabitLens tests.

Provides an isolated SQLite database per test, a session factory matching the
repository contract, habit/completion factories and a Flask test client.
"""

from __future__ import annotations

from datetime import date

import pytest
from sqlmodel import SQLModel, create_engine

from habitlens import create_app
from habitlens.config import TestConfig
from habitlens.infra.database import create_session_factory
from habitlens.infra.repositories.habit import SQLModelHabitRepository
from habitlens.models import Habit, HabitCompletion, HabitType, User
from habitlens.services.habits import ensure_owner

# Saturday in a leap year; every pure-statistics test pins "today" to it.
TODAY = date(2024, 6, 15)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_engine(tmp_path):
    """Create an isolated SQLite database file for each test."""

    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", echo=False)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Transactional session factory, as used by the repositories."""

    return create_session_factory(db_engine)


@pytest.fixture
def user(session_factory) -> User:
    return ensure_owner(session_factory, "tester")


@pytest.fixture
def repo(session_factory) -> SQLModelHabitRepository:
    return SQLModelHabitRepository(session_factory)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def habit_factory(repo, user):
    """Factory for creating persisted habits."""

    def _create_habit(
        title: str = "Test Habit",
        habit_type: str = HabitType.BOOLEAN.value,
        goal: float = 0,
        unit: str = "",
        category: str = "General",
        owner: User | None = None,
    ) -> Habit:
        owner = owner or user
        habit = Habit(title=title, type=habit_type, goal=goal, unit=unit, category=category)
        return repo.create(habit, user_id=owner.id)

    return _create_habit


@pytest.fixture
def completion_factory(repo, user):
    """Factory for creating persisted completions."""

    def _create_completion(
        habit: Habit,
        completed_date: date,
        state: str = "completed",
        value: float | None = None,
        owner: User | None = None,
    ) -> HabitCompletion:
        owner = owner or user
        completion = HabitCompletion(
            habit_id=habit.id,
            user_id=owner.id,
            completed_date=completed_date,
            state=state,
            value=value,
        )
        return repo.add_completion(completion, user_id=owner.id)

    return _create_completion


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app_config(tmp_path, monkeypatch) -> TestConfig:
    monkeypatch.setenv("HABITLENS_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("HABITLENS_DATABASE_URL", f"sqlite:///{tmp_path / 'app.db'}")
    monkeypatch.setenv("HABITLENS_DEV_MODE", "true")
    monkeypatch.delenv("HABITLENS_USER_HEIGHT_CM", raising=False)
    return TestConfig()


@pytest.fixture
def app(app_config):
    flask_app = create_app(config=app_config)
    yield flask_app
    flask_app.extensions["habitlens"]["engine"].dispose()


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client
