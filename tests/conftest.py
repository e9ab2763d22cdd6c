import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from unittest.mock import Mock
from typing import Generator

from main import app
from app.db.session import build_engine, get_db, get_engine, get_optional_db
from app.services.fone_client import FoneClient, get_fone_client
from app.services.ledger import init_schema


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

# Fake node credentials; tests assert these never leak
FONE_BASE_URL = "https://fone-node.internal.example:8443/"
FONE_SDK_KEY = "sdk-key-3f9a1c7e5b"


def make_fone_response(status_code: int = 200, text: str = "", reason: str = "OK") -> Mock:
    """Build a fake requests.Response as returned by the Fone node"""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.text = text
    response.reason = reason
    response.ok = status_code < 400
    return response


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database with the ledger schema, one per test"""
    test_engine = build_engine(SQLALCHEMY_DATABASE_URL, poolclass=StaticPool)
    init_schema(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """Session on the test database, shared with the API under test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fone_client() -> FoneClient:
    return FoneClient(FONE_BASE_URL, FONE_SDK_KEY, timeout=5)


@pytest.fixture
def client(engine: Engine, fone_client: FoneClient) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db() -> Generator:
        """Override database dependency for testing"""
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_optional_db] = override_get_db
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_fone_client] = lambda: fone_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
