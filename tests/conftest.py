"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone

# Settings are cached on first import, so the environment must be set first
TEST_JWT_SECRET = "test-identity-secret"
os.environ["IDENTITY_JWT_KEY"] = TEST_JWT_SECRET
os.environ["IDENTITY_JWT_ALGORITHM"] = "HS256"
os.environ["ADMIN_USER_IDS"] = '["admin-user"]'
os.environ["ENVIRONMENT"] = "development"
os.environ["ANTHROPIC_API_KEY"] = "test-key"

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.session import Database
from app.main import app
from app.services.llm_service import get_llm_service
from app.services.storage import StorageError, get_storage_service

USER_ID = "user_alice"
OTHER_USER_ID = "user_bob"
ADMIN_USER_ID = "admin-user"


# =============================================================================
# FAKES
# =============================================================================


class FakeLLM:
    """Stands in for LLMService; replies are queued or fall back to a default."""

    def __init__(self):
        self.calls: list[dict] = []
        self.replies: list[str] = []
        self.default_reply = "Fake answer"
        self.transcription = "LECTURE 1\n\n- arrays\n1. first item\nPlain sentence."
        self.error: Exception | None = None

    async def converse(self, messages, *, system=None, max_tokens=None) -> str:
        self.calls.append({"messages": messages, "system": system})
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return self.default_reply

    async def complete(self, prompt, *, system=None, max_tokens=None) -> str:
        return await self.converse(
            [{"role": "user", "content": prompt}], system=system, max_tokens=max_tokens
        )

    async def transcribe_image(self, image_bytes: bytes, media_type: str) -> str:
        self.calls.append({"image": image_bytes, "media_type": media_type})
        if self.error is not None:
            raise self.error
        return self.transcription


class FakeStorage:
    """Stands in for StorageService; keeps objects in a dict."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_deletes = False

    def public_url(self, file_key: str) -> str:
        return f"https://files.test/{file_key}"

    async def upload(self, file_key: str, file_data: bytes, content_type: str) -> str:
        self.objects[file_key] = file_data
        return self.public_url(file_key)

    async def delete(self, file_key: str) -> None:
        if self.fail_deletes:
            raise StorageError("Failed to delete file from S3: boom")
        self.deleted.append(file_key)
        self.objects.pop(file_key, None)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """In-memory SQLite database shared by every session in a test."""
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.connect()
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.database = db
    yield db
    await db.close()


@pytest.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and inspecting rows directly."""
    async with database.session() as session:
        yield session


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
async def client(
    database: Database, fake_llm: FakeLLM, fake_storage: FakeStorage
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    app.dependency_overrides[get_llm_service] = lambda: fake_llm
    app.dependency_overrides[get_storage_service] = lambda: fake_storage
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


def make_token(user_id: str, **claims) -> str:
    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Factory: `auth_headers("user_x", name="X")` -> Authorization header dict."""

    def _headers(user_id: str = USER_ID, **claims) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, **claims)}"}

    return _headers


@pytest.fixture
def user_headers(auth_headers) -> dict[str, str]:
    return auth_headers(USER_ID, name="Alice Student")


@pytest.fixture
def other_headers(auth_headers) -> dict[str, str]:
    return auth_headers(OTHER_USER_ID)


@pytest.fixture
def admin_headers(auth_headers) -> dict[str, str]:
    return auth_headers(ADMIN_USER_ID)
