"""
Marketplace Backend: Test Configuration
=======================================

Fixture Hierarchy (all function-scoped):
    ├── db_engine:        in-memory SQLite (aiosqlite) with every table created
    ├── db_session:       AsyncSession on that engine, for service-level tests
    ├── test_client:      HTTPX AsyncClient on the app, get_db_session overridden
    ├── make_token:       mints access tokens signed with the test secret
    ├── signup:           provisions a user (+ optional profile) through the API
    ├── mock_db_session:  AsyncMock session for pure unit tests
    ├── temp_storage:     fresh storage root for FileService tests
    └── make_image:       real JPEG/PNG/WebP/GIF bytes generated with Pillow
"""

import io
import os
import tempfile
import time
import uuid
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

# Must be set before anything imports marketplace.config
TEST_JWT_SECRET = "test-secret-for-the-marketplace-suite"
TEST_AUDIENCE = "authenticated"

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["JWT_AUDIENCE"] = TEST_AUDIENCE
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="marketplace_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import marketplace.models  # noqa: E402,F401
from marketplace.database import Base, get_db_session  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def db_engine():
    """One private in-memory database per test; StaticPool keeps it alive."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    `execute` returns a MagicMock result so that synchronous accessors such
    as `scalar_one_or_none()` return plain values; configure them per test
    with `query_result(...)`.
    """
    session = AsyncMock()
    session.execute = AsyncMock(return_value=query_result())
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


def query_result(one=None, first=None, items=None, count=None) -> MagicMock:
    """Builds a fake `Result` for mocked `db.execute(...)` calls."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = one
    result.first.return_value = first
    result.scalars.return_value.all.return_value = list(items or [])
    result.scalar_one.return_value = count
    return result


# ══════════════════════════════════════════════════════════════════════════
# HTTP client & auth
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def test_client(session_factory):
    """AsyncClient bound to the app with sessions drawn from the test database."""
    from marketplace.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def encode_token(
    subject: Any,
    email: Optional[str] = None,
    expires_in: int = 3600,
    secret: str = TEST_JWT_SECRET,
    **claims: Any,
) -> str:
    now = int(time.time())
    payload: Dict[str, Any] = {
        "sub": str(subject),
        "aud": TEST_AUDIENCE,
        "iat": now,
        "exp": now + expires_in,
        "role": "authenticated",
    }
    if email is not None:
        payload["email"] = email
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def make_token():
    return encode_token


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class Account:
    """A signed-in test user: id plus ready-to-use auth headers."""

    def __init__(self, user_id: uuid.UUID, email: str):
        self.id = user_id
        self.email = email
        self.headers = bearer(encode_token(user_id, email=email))


@pytest.fixture
def signup(test_client):
    """
    Returns `async signup(role=None, first_name=None)`.

    With a role the user also gets a profile; without one they exist but
    have not finished onboarding.
    """

    async def _signup(role: Optional[str] = None, first_name: Optional[str] = None) -> Account:
        user_id = uuid.uuid4()
        account = Account(user_id, email=f"{user_id.hex[:8]}@example.com")

        response = await test_client.get("/api/users/me", headers=account.headers)
        assert response.status_code == 200, response.text

        if first_name is not None:
            response = await test_client.put(
                "/api/users", json={"firstName": first_name}, headers=account.headers
            )
            assert response.status_code == 200, response.text

        if role is not None:
            response = await test_client.put(
                "/api/profiles", json={"role": role}, headers=account.headers
            )
            assert response.status_code == 200, response.text
        return account

    return _signup


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def make_image():
    """Returns `make_image(fmt="PNG", size=(16, 16))` → encoded image bytes."""

    def _make_image(fmt: str = "PNG", size=(16, 16)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, color=(200, 40, 90)).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make_image
