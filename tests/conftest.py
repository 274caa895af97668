"""Pytest configuration and fixtures.

Unit tests run against in-memory doubles for the credential store and a
frozen clock. Integration tests drive the FastAPI app through httpx with an
in-memory SQLite database (aiosqlite), so no external services are needed.
"""

import os
from collections.abc import AsyncGenerator
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app modules
TEST_JWT_SECRET = "test-signing-secret-0123456789abcdef0123456789abcdef"
os.environ["JWT_SECRET_KEY"] = TEST_JWT_SECRET
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REVOCATION_BACKEND"] = "memory"
os.environ["REFRESH_COOKIE_SECURE"] = "false"

TEST_USER_EMAIL = "a@x.com"
TEST_USER_PASSWORD = "Abcdef12"
TEST_ADMIN_EMAIL = "admin@x.com"
TEST_ADMIN_PASSWORD = "Adminpass1"


# --- Clock ---


class FrozenClock:
    """Manually advanced clock usable by the codec (datetime) and stores (float)."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def time(self) -> float:
        return self.now.timestamp()

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


# --- Service doubles ---


class InMemoryCredentialStore:
    """Dict-backed CredentialStore for unit tests."""

    def __init__(self):
        self.principals: dict[str, object] = {}

    async def find_by_email(self, email: str):
        email = email.strip().lower()
        for principal in self.principals.values():
            if principal.email == email:
                return principal
        return None

    async def find_by_id(self, principal_id: str):
        return self.principals.get(principal_id)

    async def create(self, identity):
        from football_auth.core.errors import ConflictError
        from football_auth.services.credentials import Principal

        if await self.find_by_email(identity.email) is not None:
            raise ConflictError()
        principal = Principal(
            id=str(uuid4()),
            name=identity.name,
            email=identity.email.strip().lower(),
            role=identity.role,
            is_active=identity.is_active,
            is_verified=identity.is_verified,
            password_hash=identity.password_hash,
        )
        self.principals[principal.id] = principal
        return principal

    async def update_active_flag(self, principal_id: str, is_active: bool):
        principal = self.principals.get(principal_id)
        if principal is None:
            return None
        principal = replace(principal, is_active=is_active)
        self.principals[principal_id] = principal
        return principal

    async def list_principals(self, limit: int = 100, offset: int = 0):
        return list(self.principals.values())[offset : offset + limit]


@pytest.fixture(scope="session")
def password_hasher():
    """Argon2 hasher with minimal cost so tests stay fast."""
    from football_auth.services.passwords import Argon2PasswordHasher

    return Argon2PasswordHasher(time_cost=1, memory_cost=8192, parallelism=1)


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def codec(clock):
    from football_auth.services.tokens import TokenCodec

    return TokenCodec(TEST_JWT_SECRET, clock=clock)


@pytest.fixture
def revocation_store(clock):
    from football_auth.services.revocation import MemoryRevocationStore

    return MemoryRevocationStore(clock=clock.time)


@pytest.fixture
def auth_service(credential_store, password_hasher, codec, revocation_store):
    from football_auth.services.auth import AuthService

    return AuthService(credential_store, password_hasher, codec, revocation_store)


@pytest.fixture
def gatekeeper(codec, revocation_store):
    from football_auth.services.gatekeeper import Gatekeeper

    return Gatekeeper(codec, revocation_store)


# --- Database Fixtures ---


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory SQLite database per test."""
    from football_auth.core.database import init_models

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
        await session.rollback()


# --- App Fixtures ---


@pytest.fixture
def test_app(session_maker, password_hasher):
    """A fresh app instance wired to the test database."""
    from football_auth.api.dependencies import get_password_hasher
    from football_auth.core.database import get_db
    from football_auth.main import create_app

    app = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_password_hasher] = lambda: password_hasher
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def registered_user(async_client) -> dict:
    """Register the standard test user and return the response body."""
    response = await async_client.post(
        "/api/auth/register",
        json={"name": "Test User", "email": TEST_USER_EMAIL, "password": TEST_USER_PASSWORD},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def user_headers(registered_user) -> dict[str, str]:
    return {"Authorization": f"Bearer {registered_user['tokens']['access_token']}"}


@pytest_asyncio.fixture
async def admin_user(session_maker, password_hasher):
    """Create an admin directly in the credential store."""
    from football_auth.models.user import UserRole
    from football_auth.services.credentials import NewPrincipal, SqlCredentialStore

    async with session_maker() as session:
        return await SqlCredentialStore(session).create(
            NewPrincipal(
                name="Admin",
                email=TEST_ADMIN_EMAIL,
                password_hash=password_hasher.hash(TEST_ADMIN_PASSWORD),
                role=UserRole.admin.value,
                is_verified=True,
            )
        )


@pytest_asyncio.fixture
async def admin_headers(async_client, admin_user) -> dict[str, str]:
    response = await async_client.post(
        "/api/auth/login",
        json={"email": TEST_ADMIN_EMAIL, "password": TEST_ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['tokens']['access_token']}"}


# --- Pytest Hooks for Auto-Marking ---


def pytest_collection_modifyitems(config, items):
    """Mark tests using the app or database as integration, everything else as unit."""
    integration_fixtures = {"db_engine", "db_session", "session_maker", "async_client", "test_app"}

    for item in items:
        if any(mark.name in ("unit", "integration") for mark in item.iter_markers()):
            continue
        if integration_fixtures & set(getattr(item, "fixturenames", ())):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
