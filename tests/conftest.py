"""Shared test fixtures for credcore."""

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from credcore.core.app import create_app
from credcore.db.base import BaseEntity
from credcore.db.engine import get_session
from credcore.db.models_user import OrgMemberEntity, UserEmailEntity, UserEntity

TEST_TOKEN = "test-internal-token"
SESSION_SECRET = "test-session-secret"
ISSUER = "http://localhost:8000"


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("CRED_ISSUER_URL", ISSUER)
    monkeypatch.setenv("CRED_INTERNAL_TOKEN", TEST_TOKEN)
    monkeypatch.setenv("CRED_SESSION_SECRET", SESSION_SECRET)
    monkeypatch.setenv("CRED_LOGIN_URL", "/login")


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def app(db_session: AsyncSession) -> FastAPI:
    """The application with its DB session bound to the test session."""
    application = create_app()

    async def _override_session() -> AsyncIterator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    application.dependency_overrides[get_session] = _override_session
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client against the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def people(db_session: AsyncSession) -> dict[str, UserEntity]:
    """Seed two users and two organizations.

    alice administers acme; bob is a plain member of acme; nobody belongs
    to globex.
    alice has a primary and a secondary address. acme has an address row
    that the profile view never shows.
    """
    users = {
        "alice": UserEntity(id="u-alice", login="alice", name="Alice"),
        "bob": UserEntity(id="u-bob", login="bob", name="Bob"),
        "acme": UserEntity(
            id="o-acme", login="acme", name="Acme", is_organization=True
        ),
        "globex": UserEntity(
            id="o-globex", login="globex", name="Globex", is_organization=True
        ),
    }
    db_session.add_all(users.values())
    await db_session.flush()
    db_session.add_all(
        [
            OrgMemberEntity(org_id="o-acme", user_id="u-alice", is_admin=True),
            OrgMemberEntity(org_id="o-acme", user_id="u-bob", is_admin=False),
            UserEmailEntity(user_id="u-alice", email="work@alice.test"),
            UserEmailEntity(
                user_id="u-alice",
                email="me@alice.test",
                verified=True,
                is_primary=True,
            ),
            UserEmailEntity(user_id="o-acme", email="info@acme.test"),
        ]
    )
    await db_session.commit()
    return users
