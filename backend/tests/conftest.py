"""
Memora Backend — Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Each test gets a fresh SQLite database (aiosqlite) with the full
       schema, plus factories for users, notes and binary payloads.

Fixture Hierarchy:
    ├── db_engine: Async engine on a per-test SQLite file
    ├── db_session: Session on that engine (for service-level tests)
    ├── mock_db_session: AsyncMock session (for error-path tests)
    ├── create_user / create_note: Persisted factories
    ├── make_payload: Builds signature-prefixed binary content
    └── client: HTTPX AsyncClient over ASGITransport, wired to db_engine
"""

import os

# Must be set BEFORE any memora import: settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-not-for-production-000000"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from memora.database import Base, get_db_session
from memora.models import Note, User
from memora.security import create_access_token, hash_password

TEST_PASSWORD = "Str0ng!Secret"

# Hashed once; bcrypt is slow even at 4 rounds when repeated per test
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


def build_payload(header: bytes, size: int = 200) -> bytes:
    """`header` followed by varied filler bytes, `size` bytes in total."""
    filler = bytes(i % 251 for i in range(max(size - len(header), 0)))
    return (header + filler)[:size]


@pytest.fixture
def make_payload():
    """
    Usage:
        async def test_upload(make_payload):
            jpeg = make_payload(b"\xff\xd8\xff\xe0", 200)
    """
    return build_payload


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    A fresh database per test.

    A file (not :memory:) so every session gets its own connection and
    commit/rollback behave as they do against PostgreSQL.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'memora_test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        async def test_db_failure(mock_db_session):
            mock_db_session.execute.side_effect = OperationalError("SELECT", {}, None)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def create_user(session_factory):
    """Persist a user and return it (committed, detached-safe)."""
    counter = {"n": 0}

    async def _create(
        email: Optional[str] = None,
        full_name: str = "Ada Lovelace",
    ) -> User:
        counter["n"] += 1
        async with session_factory() as session:
            user = User(
                full_name=full_name,
                email=email or f"user{counter['n']}@example.com",
                password_hash=_TEST_PASSWORD_HASH,
            )
            session.add(user)
            await session.commit()
            return user

    return _create


@pytest.fixture
def create_note(session_factory):
    """Persist a note owned by `user` and return it."""

    async def _create(
        user: User,
        content: str = "Remember the milk",
        title: Optional[str] = "Shopping",
        updated_at: Optional[datetime] = None,
    ) -> Note:
        updated_at = updated_at or datetime.now(timezone.utc)
        async with session_factory() as session:
            note = Note(
                title=title,
                content=content,
                created_at=updated_at - timedelta(days=1),
                updated_at=updated_at,
                user_id=user.id,
            )
            session.add(note)
            await session.commit()
            return note

    return _create


def auth_headers_for(user: User) -> Dict[str, str]:
    token, _ = create_access_token(user.id, user.full_name, user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """
    Usage:
        response = await client.get("/api/notes", headers=auth_headers(user))
    """
    return auth_headers_for


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the FastAPI app in-process.

    get_db_session is overridden to use the per-test database while keeping
    its commit-on-success / rollback-on-error contract.
    """
    from memora.main import app

    async def _test_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
