"""
Pytest Configuration and Fixtures

Shared fixtures: in-memory SQLite database, in-memory object store,
stub analysis services and an HTTP client wired to them.
"""
import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SECRET_KEY"] = "test-secret-key"

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

from jivana.api.dependencies import get_analysis_service, get_object_store
from jivana.database import Base, build_engine, get_db
from jivana.main import app
from jivana.schemas.blood_test import Analysis
from jivana.services import records
from jivana.services.analysis_service import AnalysisService
from jivana.services.storage_service import InMemoryObjectStore
from jivana.utils.exceptions import AnalysisError
from jivana.utils.security import create_access_token, get_password_hash
import jivana.models  # noqa: F401


STUB_ANALYSIS = Analysis(
    summary="Results are within normal ranges",
    insights=["Hemoglobin is normal", "Fasting glucose is normal"],
    recommendations=["Repeat the panel in a year"],
    risk_factors=[],
)


class StubAnalysisService(AnalysisService):
    """Returns a fixed analysis and records what it was asked"""

    def __init__(self, analysis: Analysis = STUB_ANALYSIS):
        self.analysis = analysis
        self.calls = []

    def _generate(self, results):
        self.calls.append(dict(results))
        return self.analysis


class FailingAnalysisService(AnalysisService):
    """Simulates an unreachable analysis API"""

    def __init__(self):
        self.calls = 0

    def _generate(self, results):
        self.calls += 1
        raise AnalysisError("connection refused")


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore(bucket="test-bucket")


@pytest.fixture
def analysis_service() -> StubAnalysisService:
    return StubAnalysisService()


@pytest.fixture
def failing_analysis_service() -> FailingAnalysisService:
    return FailingAnalysisService()


@pytest.fixture
def user(db_session):
    """A registered user."""
    return records.create_user(
        db_session,
        username="demo",
        email="demo@example.com",
        password_hash=get_password_hash("demo12345"),
        external_id="cognito-demo"
    )


@pytest.fixture
def other_user(db_session):
    return records.create_user(
        db_session,
        username="other",
        email="other@example.com",
        password_hash=get_password_hash("other12345"),
        external_id="cognito-other"
    )


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def pdf_bytes() -> bytes:
    """A 2KB PDF-looking payload."""
    header = b"%PDF-1.4\n"
    return header + b"0" * (2048 - len(header))


@pytest.fixture
def override_app(session_factory, object_store, analysis_service):
    """Point the app's dependencies at the test doubles."""
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_object_store] = lambda: object_store
    app.dependency_overrides[get_analysis_service] = lambda: analysis_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(override_app):
    """Create async test client."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=override_app),
        base_url="http://test"
    ) as client:
        yield client
