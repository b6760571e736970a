"""
Pytest configuration and fixtures

Every test gets its own in-memory SQLite database with the full schema, so
services can commit freely and nothing leaks between tests.
"""
import pytest
import sys
import os

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-at-least-32-chars")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FORMAT", "text")

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base, build_engine, get_db
from models import Athlete, Guide
from tests.factories import make_admin, make_athlete, make_guide


@pytest.fixture(scope="function")
def test_engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """TestClient whose requests each get a session on the per-test database."""
    from main import app

    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def athlete(db_session) -> Athlete:
    return make_athlete(db_session)


@pytest.fixture
def admin(db_session) -> Athlete:
    return make_admin(db_session)


@pytest.fixture
def other_admin(db_session) -> Athlete:
    return make_admin(db_session)


@pytest.fixture
def guide(db_session) -> Guide:
    return make_guide(db_session)


@pytest.fixture
def other_guide(db_session) -> Guide:
    return make_guide(db_session)
