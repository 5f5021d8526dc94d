"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; point them at the test database first
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator, Callable, Generator
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.catalog.loader import get_catalog
from app.catalog.models import DomainCatalog
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.scoring.aggregate import AssessmentResult, calculate_assessment_result
from app.services.assessment_store import AssessmentStore

# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ASSESSOR_ID = "assessor-001"


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory for tests that need two independent sessions."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def store(async_session: AsyncSession) -> AssessmentStore:
    return AssessmentStore(async_session)


@pytest.fixture(scope="function")
def client() -> Generator[TestClient, None, None]:
    """FastAPI test client for endpoints that don't touch the database."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
async def async_client(async_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async client sharing the test session with the app."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-Assessor-Id": ASSESSOR_ID}


@pytest.fixture
def catalog() -> DomainCatalog:
    return get_catalog()


def _answer_all(catalog: DomainCatalog, value: int = 0) -> dict[str, dict]:
    return {
        domain.id: {"answers": {qid: value for qid in domain.question_ids}, "notes": None}
        for domain in catalog.domains
    }


@pytest.fixture
def answer_all(catalog: DomainCatalog) -> Callable[[int], dict[str, dict]]:
    """Build domain data with every catalog question answered the same."""

    def build(value: int = 0) -> dict[str, dict]:
        return _answer_all(catalog, value)

    return build


@pytest.fixture
def all_healthy_data(catalog: DomainCatalog) -> dict[str, dict]:
    return _answer_all(catalog, 0)


@pytest.fixture
def make_result(catalog: DomainCatalog) -> Callable[[dict[str, dict[str, int]]], AssessmentResult]:
    """Score a partial set of domains given as {domain_id: {question_id: value}}."""

    def build(scores: dict[str, dict[str, int]]) -> AssessmentResult:
        return calculate_assessment_result(
            {domain_id: {"answers": answers} for domain_id, answers in scores.items()},
            catalog,
        )

    return build


@pytest.fixture
def base_time() -> datetime:
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
