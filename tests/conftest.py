"""Shared fixtures: in-memory SQLite, in-memory counters with a controllable clock."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.db.session import Base, get_db, make_engine
from app.main import create_app
from app.models.booking import Booking  # noqa: F401
from app.throttle.guard import AbuseGuard
from app.throttle.store import MemoryCounterStore


class FakeClock:
    def __init__(self, start: float = 1_700_000_100.0):
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(DATABASE_URL="sqlite://", RATE_LIMIT_STORE="memory")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> MemoryCounterStore:
    return MemoryCounterStore(clock=clock)


@pytest.fixture
def guard(settings, store) -> AbuseGuard:
    return AbuseGuard.from_settings(settings, store)


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(settings, guard, session_factory):
    application = create_app(settings, guard=guard)

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = _get_db
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
