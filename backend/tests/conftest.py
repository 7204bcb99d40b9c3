"""Shared test fixtures for backend tests."""

import os

# Must be set before dresscode.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["OPENAI_API_KEY"] = ""
os.environ["USE_FALLBACK"] = "false"
os.environ["ADMIN_TOKEN"] = ""
os.environ["REASONING_MODE"] = "assistant"

import random  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from dresscode.config import settings  # noqa: E402
from dresscode.database import Base  # noqa: E402
from dresscode.main import app  # noqa: E402
from dresscode.api.deps import get_client_factory, get_record_store, get_runtime_settings  # noqa: E402
from dresscode.models import ComplianceCheck  # noqa: E402, F401
from dresscode.services.fallback import FallbackGenerator  # noqa: E402
from dresscode.services.orchestrator import ComplianceOrchestrator, ReasoningClientFactory  # noqa: E402
from dresscode.services.record_store import RecordStore  # noqa: E402
from dresscode.services.result_validator import ResultValidator  # noqa: E402
from dresscode.services.runtime_settings import RuntimeConfig, RuntimeSettingsStore  # noqa: E402
from tests.fakes import FakeOpenAI, no_sleep  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def record_store(session_factory) -> RecordStore:
    return RecordStore(session_factory)


@pytest.fixture
def runtime() -> RuntimeSettingsStore:
    return RuntimeSettingsStore(RuntimeConfig())


@pytest.fixture
def fake_backend() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
def client_factory(fake_backend: FakeOpenAI) -> ReasoningClientFactory:
    return ReasoningClientFactory(settings, transport=fake_backend.transport(), sleep=no_sleep)


@pytest.fixture
def orchestrator(runtime, client_factory, record_store) -> ComplianceOrchestrator:
    return ComplianceOrchestrator(
        runtime,
        client_factory,
        record_store,
        fallback=FallbackGenerator(random.Random(7)),
        validator=ResultValidator(),
    )


@pytest_asyncio.fixture
async def api_client(runtime, client_factory, record_store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test database, runtime settings and fake backend."""
    app.dependency_overrides[get_runtime_settings] = lambda: runtime
    app.dependency_overrides[get_client_factory] = lambda: client_factory
    app.dependency_overrides[get_record_store] = lambda: record_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
