"""Shared test fixtures."""

import os

# Settings are read at import time; keep background loops and Redis-backed limits off
os.environ.setdefault("COMPLIO_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("COMPLIO_ORCHESTRATOR_ENABLED", "false")

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from complio.config import Settings, settings
from complio.db.base import Base
# Import all models to register with Base.metadata
import complio.db.models  # noqa: F401
from complio.errors.exceptions import IntegrationError
from complio.integrations.adapters.base import ProviderAdapter
from complio.models.enums import ConnectionStatus, ProviderCategory
from complio.repositories.connection_repo import IntegrationConnectionRepository
from complio.repositories.org_repo import OrganizationRepository
from complio.repositories.provider_repo import IntegrationProviderRepository
from complio.services.credentials import ConnectionCredentials, encrypt_credentials
from complio.services.id_generator import generate_id


# --- Fake provider adapter ---


class FakeAdapter(ProviderAdapter):
    """Adapter whose behaviour is scripted through a shared dict.

    Keys: ``records`` (source → list), ``fail_sources``, ``raise``
    (exception raised from every fetch), ``delay`` (seconds), ``connected``
    and ``test_error``.
    """

    provider_category = ProviderCategory.GOOGLE_WORKSPACE
    data_sources = ("users", "groups", "devices")
    primary_source = "users"

    def __init__(self, credentials, behaviour: dict, calls: list):
        super().__init__(credentials)
        self.behaviour = behaviour
        self.calls = calls

    async def test_connection(self) -> bool:
        if self.behaviour.get("test_error"):
            raise IntegrationError(self.provider_category, self.behaviour["test_error"])
        return self.behaviour.get("connected", True)

    async def fetch_source(self, source: str) -> list[dict]:
        self.calls.append(source)
        if self.behaviour.get("delay"):
            await asyncio.sleep(self.behaviour["delay"])
        if self.behaviour.get("raise"):
            raise self.behaviour["raise"]
        if source in self.behaviour.get("fail_sources", ()):
            raise IntegrationError(self.provider_category, f"{source} unavailable")
        return list(self.behaviour.get("records", {}).get(source, []))


@pytest.fixture
def adapter_behaviour() -> dict:
    return {}


@pytest.fixture
def adapter_calls() -> list:
    return []


@pytest.fixture
def adapter_factory(adapter_behaviour, adapter_calls):
    def _factory(provider_category, credentials, **kwargs):
        return FakeAdapter(credentials, adapter_behaviour, adapter_calls)

    return _factory


# --- Database ---


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Seed the provider catalogue (mirrors main.py lifespan)
    from complio.services.providers import seed_default_providers

    async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as seed_session:
        await seed_default_providers(seed_session)
        await seed_session.commit()

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


# --- Orchestration ---


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        retry_attempts=3,
        retry_delay_minutes=5,
        job_timeout_minutes=30,
        max_concurrent_jobs=5,
        auto_evidence_generation=True,
        orchestrator_enabled=False,
        rate_limit_enabled=False,
    )


@pytest.fixture
def orchestrator(session_factory, test_settings, adapter_factory):
    from complio.workers.orchestrator import SyncOrchestrator

    return SyncOrchestrator(session_factory, settings=test_settings, adapter_factory=adapter_factory)


# --- App ---


@pytest.fixture
def app(db_engine, session_factory, orchestrator):
    """Create a test application instance with in-memory DB."""
    from complio.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.redis = None
    _app.state.orchestrator = orchestrator
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_token(sub: str = "usr_test", roles=("admin",), org_id: str | None = None, **claims) -> str:
    payload = {
        "sub": sub,
        "roles": list(roles),
        "org_id": org_id,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {make_token()}"}


# --- Domain rows ---


@pytest.fixture
async def org(db_session):
    row = await OrganizationRepository(db_session).create(
        org_id=generate_id("org_"),
        name="Acme Corp",
        slug=f"acme-{generate_id('')[:6]}",
        settings={},
    )
    await db_session.commit()
    return row


@pytest.fixture
async def google_provider(db_session):
    return await IntegrationProviderRepository(db_session).get_by_category(ProviderCategory.GOOGLE_WORKSPACE)


@pytest.fixture
async def connection(db_session, org, google_provider):
    """An active Google Workspace connection with stored credentials."""
    row = await IntegrationConnectionRepository(db_session).create(
        connection_id=generate_id("conn_"),
        org_id=org.org_id,
        provider_id=google_provider.provider_id,
        connection_name="Primary Workspace",
        credentials_encrypted=encrypt_credentials(ConnectionCredentials(access_token="ya29.token")),
        status=ConnectionStatus.ACTIVE,
        created_by="usr_test",
    )
    await db_session.commit()
    return row
