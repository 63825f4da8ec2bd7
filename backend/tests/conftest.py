"""Pytest configuration for backend tests."""
import sys
import os
from pathlib import Path
from unittest.mock import MagicMock
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Keep the app's own engine off any real database configured in backend/.env
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Import database components
from chapterone.database import Base, get_db  # noqa: E402

# Import the entire models module to ensure all models are registered with Base.metadata
# This must happen before create_all() so that all table definitions are available
import chapterone.models  # noqa: E402,F401


# Determine test database URL
# Defaults to an in-memory SQLite database; set TEST_DATABASE_URL to run against Postgres
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="session")
def engine():
    """
    Create a test database engine.

    In-memory SQLite needs a single shared connection (StaticPool) so every
    session, including the ones FastAPI uses from its threadpool, sees the
    same tables.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        test_engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        test_engine = create_engine(TEST_DATABASE_URL, pool_pre_ping=True)

    # Debug assertion: verify tables are registered
    if not Base.metadata.tables:
        raise RuntimeError(
            "No tables registered in Base.metadata. "
            "Did you import chapterone.models? All model classes must be imported before create_all()."
        )

    Base.metadata.create_all(bind=test_engine)

    yield test_engine

    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Session:
    """
    Create a database session for each test.

    Uses a transaction that is rolled back after each test for isolation.
    Service-level commits stay inside it.
    """
    connection = engine.connect()

    # Start a transaction
    transaction = connection.begin()

    # Create session bound to this connection
    # Use autocommit=False, autoflush=False to match production
    TestSessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
    )
    session = TestSessionLocal()

    yield session

    # Cleanup: rollback transaction and close
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def client(db: Session):
    """TestClient whose requests use the per-test session."""
    from fastapi.testclient import TestClient
    from chapterone.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_response(json_data=None, text: str = "", status_code: int = 200):
    """A stand-in for requests.Response carrying a canned body."""
    import requests

    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if json_data is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = json_data
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        resp.raise_for_status.return_value = None
    return resp


@pytest.fixture
def fake_session():
    """A requests.Session mock; set .get.side_effect or .get.return_value per test."""
    return MagicMock()
