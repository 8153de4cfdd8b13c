"""Test fixtures — a throwaway SQLite database per test.

Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own database file under tmp_path, schema created
   from Base.metadata, and an engine with NullPool so every session has
   its own connection (the way concurrent requests would).
2. The app's get_db is overridden to open sessions on that engine; auth
   is NOT overridden, so every request runs the real credential pipeline.
3. The token service is pinned to a test secret and shared with the tests,
   so they can mint and verify tokens exactly like the app does.
"""

import os

# Settings are read at import time; these must be set before raingate loads.
os.environ.setdefault("RAINGATE_BCRYPT_ROUNDS", "4")
os.environ.setdefault("RAINGATE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.requests import Request

from raingate.auth.dependencies import get_token_service
from raingate.auth.elevation import SingleAdminEmailRule
from raingate.auth.gates import Identity
from raingate.auth.tokens import TokenService
from raingate.config import settings
from raingate.db.engine import get_db
from raingate.db.models import Base
from raingate.main import app

ADMIN_EMAIL = settings.admin_email
PASSWORD = "secret1"
TEST_SECRET = "test-signing-secret"


@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'raingate.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
def tokens():
    return TokenService(secret=TEST_SECRET, default_ttl=timedelta(days=7))


@pytest.fixture()
def elevation():
    return SingleAdminEmailRule(ADMIN_EMAIL)


@pytest.fixture()
def admin_identity():
    return Identity(
        email=ADMIN_EMAIL,
        user_id=str(uuid.uuid4()),
        is_admin=True,
        expires_at=datetime.now(timezone.utc) + timedelta(days=7),
    )


@pytest_asyncio.fixture()
async def client(session_factory, tokens):
    """HTTP client with get_db and the token service overridden for testing."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_service] = lambda: tokens

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def login(client):
    """Register (optionally) and log in; returns the login body.

    The login cookie is dropped from the client afterwards so each test
    chooses its credential channel explicitly.
    """

    async def _login(email: str, password: str = PASSWORD, register: bool = True) -> dict:
        if register:
            r = await client.post(
                "/api/v1/auth/register", json={"email": email, "password": password}
            )
            assert r.status_code == 201, r.text
        r = await client.post(
            "/api/v1/auth/login", json={"email": email, "password": password}
        )
        assert r.status_code == 200, r.text
        client.cookies.clear()
        return r.json()

    return _login


@pytest.fixture()
def make_request():
    """Build a bare Starlette request for testing extractors and gates."""

    def _make(
        headers: dict | None = None,
        cookies: dict | None = None,
        path: str = "/api/v1/auth/me",
        client_addr: tuple = ("203.0.113.7", 51000),
    ) -> Request:
        raw = [
            (k.lower().encode("latin-1"), v.encode("latin-1"))
            for k, v in (headers or {}).items()
        ]
        if cookies:
            raw.append(
                (b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode())
            )
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": b"",
            "headers": raw,
            "client": client_addr,
            "server": ("test", 80),
        }
        return Request(scope)

    return _make
