"""
Shared test configuration and fixtures
"""
import pytest
import os
import tempfile
import jwt
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test environment before importing app
os.environ["DATABASE_URL"] = f"sqlite:///{tempfile.mkdtemp()}/test_monitors.db"
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["SKIP_SCHEDULER"] = "true"  # Skip scheduler during tests
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_FILE"] = os.path.join(tempfile.gettempdir(), "uptime-monitor-test.log")

from main import app
from db.base import Base
from db.engine import engine
from db.models import Monitor, User


@pytest.fixture
def session_factory():
    """Shared in-memory database usable from scheduler worker threads"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def owner(db_session):
    user = User(email="owner@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def make_monitor(db_session, owner):
    """Factory for persisted monitors owned by ``owner``"""

    def _make(**overrides):
        fields = {
            "url": "https://example.com",
            "interval_minutes": 5,
            "is_active": True,
            "user_id": owner.id,
        }
        fields.update(overrides)
        monitor = Monitor(**fields)
        db_session.add(monitor)
        db_session.commit()
        return monitor

    return _make


@pytest.fixture
def test_db():
    """Create a fresh application database for each API test"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(test_db):
    """Test client running the real lifespan with the scheduler skipped"""
    with TestClient(app) as test_client:
        yield test_client


def _issue_token(user_id: int, expires_in: timedelta = timedelta(minutes=30)) -> str:
    payload = {"sub": str(user_id), "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, os.environ["JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def issue_token():
    """Mint an HS256 token the way the account service does"""
    return _issue_token


@pytest.fixture
def auth_headers_for():
    """Build bearer headers for a user id, as the account service would issue them"""

    def _headers(user_id: int) -> dict:
        return {"Authorization": f"Bearer {_issue_token(user_id)}"}

    return _headers
