"""
Global pytest configuration and fixtures for the Storefront API tests.

Every test gets its own in-memory SQLite database and its own application
instance, so no state leaks between tests.
"""

from collections.abc import AsyncIterator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.jwt_service import JWTService
from storefront.auth.passwords import PasswordHasher
from storefront.db import Database
from storefront.main import create_app
from storefront.models import Base  # noqa: F401
from storefront.settings import Settings

TEST_SECRET = "storefront-test-signing-key-0123456789abcdef"
IN_MEMORY_DATABASE_URL = "sqlite+aiosqlite://"

ALICE = {
    "username": "alice",
    "password": "s3cret-pass",
    "fullname": "Alice Liddell",
    "email": "alice@mail.com",
    "tel": "0812345678",
}


def make_settings(**overrides: Any) -> Settings:
    """Build isolated test settings; nested sections may be passed as dicts."""
    values: dict[str, Any] = {
        "environment": "test",
        "database": {"url": IN_MEMORY_DATABASE_URL},
        "jwt": {"secret_key": TEST_SECRET},
        "auth": {"bcrypt_rounds": 4},
        "observability": {"log_level": "WARNING", "log_format": "text"},
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client with the application lifespan running (tables created)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def jwt_service() -> JWTService:
    return JWTService(TEST_SECRET)


@pytest.fixture
async def database() -> AsyncIterator[Database]:
    db = Database(IN_MEMORY_DATABASE_URL)
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


@pytest.fixture
async def session(database: Database) -> AsyncIterator[AsyncSession]:
    async with database.session_factory() as db_session:
        yield db_session


def _register(client: TestClient, **overrides: Any) -> dict[str, Any]:
    payload = {**ALICE, **overrides}
    response = client.post("/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _login(client: TestClient, username: str = "alice", password: str = ALICE["password"]) -> str:
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]


@pytest.fixture
def auth_headers(client: TestClient) -> dict[str, str]:
    """Register alice and return a bearer header for her."""
    _register(client)
    return {"Authorization": f"Bearer {_login(client)}"}


@pytest.fixture
def register_user():
    """``register_user(client, **overrides)`` posts a registration and returns ``data``."""
    return _register


@pytest.fixture
def login_user():
    """``login_user(client, username, password)`` returns an access token."""
    return _login


@pytest.fixture
def settings_factory():
    """``settings_factory(**overrides)`` builds isolated test settings."""
    return make_settings


@pytest.fixture
def alice() -> dict[str, str]:
    return dict(ALICE)
