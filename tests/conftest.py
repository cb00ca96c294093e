"""Pytest configuration and fixtures for gateway tests.

Tests run against an in-memory SQLite database (aiosqlite) created from the
model metadata for every test, so no external database is needed. Upstream
integrations are served by ``httpx.MockTransport``.
"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta

# Set test environment variables before importing app modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-0123456789"
# Set high rate limit for tests to prevent 429 errors
os.environ["RATE_LIMIT_REQUESTS_PER_WINDOW"] = "10000"
# No backoff sleeps between retries
os.environ["RETRY_BASE_DELAY"] = "0"
os.environ["RETRY_MAX_DELAY"] = "0"
os.environ.pop("INTEGRATIONS_FILE", None)
os.environ.pop("INTEGRATIONS_JSON", None)

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from gateway.core.database import Base  # noqa: E402
from gateway.models import Client, OAuthSession  # noqa: E402
from gateway.services.auth import TokenService, hash_secret  # noqa: E402
from gateway.services.credential_store import CredentialStore  # noqa: E402
from gateway.services.integrations import IntegrationRegistry  # noqa: E402

TEST_CLIENT_ID = "acme"
TEST_CLIENT_SECRET = "s3cr3t"
WEBHOOK_SECRET = "whsec_test_secret"


def sample_catalog() -> dict:
    """Integration catalog shared by service and API tests."""
    return {
        "booking_engine": {
            "name": "Booking Engine",
            "enabled": True,
            "baseUrl": "https://booking.example.com",
            "auth": {
                "type": "api_key",
                "credentials": {"apiKey": "bk-key"},
            },
            "endpoints": {
                "createReservation": {
                    "path": "/v1/reservations",
                    "method": "POST",
                    "transformer": "BookingReservationTransformer",
                },
                "getReservation": {"path": "/v1/reservations/{id}", "method": "GET"},
                "cancelReservation": {"path": "/v1/reservations/{id}", "method": "DELETE"},
            },
            "retries": 2,
            "webhooks": {
                "enabled": True,
                "secret": WEBHOOK_SECRET,
                "events": ["reservation.created", "reservation.updated", "reservation.cancelled"],
            },
        },
        "pms_system": {
            "name": "PMS System",
            "enabled": True,
            "baseUrl": "https://pms.example.com/api/",
            "auth": {"type": "bearer", "credentials": {"token": "pms-token"}},
            "endpoints": {
                "syncGuest": {"path": "/guests", "method": "POST"},
                "getRoom": {"path": "/rooms/{room}", "method": "GET"},
            },
            "retries": 0,
            "webhooks": {"enabled": False},
        },
        "open_feed": {
            "name": "Open Feed",
            "enabled": True,
            "baseUrl": "https://feed.example.com",
            "endpoints": {"latest": {"path": "/latest"}},
            "webhooks": {"enabled": True},
        },
        "channel_manager": {
            "name": "Channel Manager",
            "enabled": False,
            "baseUrl": "https://channels.example.com",
            "auth": {"type": "oauth2", "credentials": {"clientId": "cm", "clientSecret": "x"}},
            "endpoints": {"updateAvailability": {"path": "/availability", "method": "POST"}},
        },
    }


class UpstreamStub:
    """Records outbound requests and answers them with a configurable handler."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"ok": True}
        )

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._dispatch)


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """In-memory SQLite engine with foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(db_session) -> CredentialStore:
    return CredentialStore(db_session)


@pytest.fixture
def token_service(store) -> TokenService:
    return TokenService(store)


# --- Test Factories ---


@pytest.fixture
def client_factory(store):
    """Factory for creating test Client rows."""

    async def _create_client(
        client_id: str = TEST_CLIENT_ID,
        client_secret: str = TEST_CLIENT_SECRET,
        name: str = "Acme Corp",
        is_active: bool = True,
    ) -> Client:
        client = await store.create_client(
            client_id=client_id,
            client_secret_hash=hash_secret(client_secret),
            name=name,
        )
        if not is_active:
            await store.set_client_active(client_id, False)
        await store.commit()
        return client

    return _create_client


@pytest.fixture
def session_factory(store):
    """Factory for session rows with arbitrary expiry, bypassing token issuance."""
    counter = {"n": 0}

    async def _create_session(
        client: Client,
        expires_in: int = 3600,
        is_revoked: bool = False,
    ) -> OAuthSession:
        counter["n"] += 1
        now = datetime.now(UTC)
        session = OAuthSession(
            client_pk=client.id,
            client=client,
            access_token=f"access-{counter['n']}",
            refresh_token=f"refresh-{counter['n']}",
            expires_at=now + timedelta(seconds=expires_in),
            refresh_expires_at=now + timedelta(seconds=abs(expires_in) * 24),
            is_revoked=is_revoked,
        )
        await store.add_session(session)
        await store.commit()
        return session

    return _create_session


# --- Integration Fixtures ---


@pytest.fixture
def integrations() -> IntegrationRegistry:
    return IntegrationRegistry.from_dict(sample_catalog())


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


# --- App Fixtures ---


@pytest.fixture
def app(db_session, integrations, upstream):
    """Application wired to the test database, catalog and upstream stub."""
    from gateway.core.database import get_db
    from gateway.main import create_app

    application = create_app(integrations=integrations, http_transport=upstream.transport)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database override."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await app.state.http_gateway.close()


@pytest_asyncio.fixture
async def auth_headers(async_client, client_factory) -> dict[str, str]:
    """Bearer headers for a freshly provisioned client."""
    await client_factory()
    response = await async_client.post(
        "/auth/token",
        json={
            "client_id": TEST_CLIENT_ID,
            "client_secret": TEST_CLIENT_SECRET,
            "grant_type": "client_credentials",
        },
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
