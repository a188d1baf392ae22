"""
Shared fixtures: a throwaway SQLite database per test and an HTTP client
bound to a freshly built app.
"""

from __future__ import annotations

from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from database.session import build_engine, build_session_factory, init_models
from main import create_app

ACCESS_SECRET = "test-access-secret-0123456789abcdef0123456789"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef012345678"

VALID_REGISTRATION: Dict[str, Any] = {
    "email": "a@b.com",
    "password": "Abcdef1!",
    "firstName": "Jo",
    "lastName": "Do",
    "dateOfBirth": "2000-01-01",
}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        jwt_secret=ACCESS_SECRET,
        jwt_refresh_secret=REFRESH_SECRET,
        bcrypt_rounds=4,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'auth.sqlite3'}",
        environment="test",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    # ASGITransport does not run startup hooks, so create the schema here.
    await init_models(app.state.engine)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def session_factory(settings) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = build_engine(settings)
    await init_models(engine)
    yield build_session_factory(engine)
    await engine.dispose()


async def register_user(client: AsyncClient, **overrides: Any):
    body = dict(VALID_REGISTRATION)
    body.update(overrides)
    return await client.post("/api/auth/register", json=body)


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
