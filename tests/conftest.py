"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

from collections.abc import Callable
from contextlib import contextmanager
from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from phaseplan.db.models import Base
from phaseplan.phases.dates import as_day
from phaseplan.phases.models import Dependency, DependencyType, Phase


@pytest.fixture
def make_phase() -> Callable[..., Phase]:
    """Factory for in-memory phases: make_phase("A", "2025-01-01", "2025-01-10")."""

    def _make(phase_id: str, start: date | str, end: date | str, name: str | None = None) -> Phase:
        return Phase(id=phase_id, start_date=as_day(start), end_date=as_day(end), name=name)

    return _make


@pytest.fixture
def make_dependency() -> Callable[..., Dependency]:
    """Factory for in-memory dependencies; the id defaults to "pred->succ"."""

    def _make(
        predecessor_id: str,
        successor_id: str,
        dependency_type: DependencyType = DependencyType.FINISH_TO_START,
        lag_days: int | None = 0,
        dependency_id: str | None = None,
    ) -> Dependency:
        return Dependency(
            id=dependency_id or f"{predecessor_id}->{successor_id}",
            predecessor_phase_id=predecessor_id,
            successor_phase_id=successor_id,
            type=dependency_type,
            lag_days=lag_days,
        )

    return _make


@pytest.fixture(scope="function")
def db_session(monkeypatch):
    """
    Provides an isolated in-memory SQLite DB session for tests.

    This fixture:
    - Creates a fresh in-memory SQLite database per test (one shared connection)
    - Enables foreign keys so ON DELETE CASCADE behaves like PostgreSQL
    - Patches the engine getters and get_session() to use the test database

    Usage:
        def test_something(db_session):
            repo = PhaseRepository(db_session)
            project = repo.create_project("Launch")
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)

    test_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = test_session_local()

    def mock_get_engine():
        return engine

    @contextmanager
    def mock_get_session():
        yield session

    monkeypatch.setattr("phaseplan.db.session._get_engine", mock_get_engine)
    monkeypatch.setattr("phaseplan.db.session.get_engine", mock_get_engine)
    monkeypatch.setattr("phaseplan.db.session.get_session", mock_get_session)

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()
