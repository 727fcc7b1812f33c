"""Global test configuration and fixtures for the credit ledger API."""

from collections.abc import AsyncGenerator
from typing import Any, Callable
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.api.core.constants import INTERNAL_SERVICE_KEY_HEADER, JWT_ALGORITHM
from src.database.models import Base, CreditLog, UsageRecord
from src.utils.settings.auth import AuthSettings
from src.utils.settings.credits import CreditSettings

TEST_JWT_SECRET = "test-jwt-secret-key-for-testing-only"
TEST_INTERNAL_SERVICE_KEY = "test-internal-service-key"


@pytest.fixture(autouse=True)
def ledger_env(monkeypatch):
    """Pin secrets so tokens and internal keys match the app under test."""
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("INTERNAL_SERVICE_KEY", TEST_INTERNAL_SERVICE_KEY)
    monkeypatch.setenv("CREDITS_GRANT_RETRY_DELAY_SECONDS", "0")


@pytest_asyncio.fixture
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test SQLite database whose write transactions serialize like row locks."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=async_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest.fixture
def credit_settings() -> CreditSettings:
    return CreditSettings(CREDITS_GRANT_RETRY_DELAY_SECONDS=0)


@pytest.fixture
def persist(session_factory):
    """Create a row through a factory and commit it in a short-lived session."""

    async def _persist(factory_cls, **kwargs: Any):
        async with session_factory() as session:
            instance = await factory_cls.create_async(session, **kwargs)
            await session.commit()
        return instance

    return _persist


@pytest.fixture
def fetch_usage(session_factory):
    async def _fetch(user_id: UUID) -> UsageRecord | None:
        async with session_factory() as session:
            result = await session.execute(
                select(UsageRecord).where(UsageRecord.user_id == user_id)
            )
            return result.scalar_one_or_none()

    return _fetch


@pytest.fixture
def fetch_credit_logs(session_factory):
    async def _fetch(user_id: UUID) -> list[CreditLog]:
        async with session_factory() as session:
            result = await session.execute(
                select(CreditLog)
                .where(CreditLog.user_id == user_id)
                .order_by(CreditLog.created_at)
            )
            return list(result.scalars().all())

    return _fetch


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest_asyncio.fixture
async def app(session_factory) -> AsyncGenerator[FastAPI, None]:
    """Create FastAPI application with lifespan manager for testing."""
    from src.main import app

    async with LifespanManager(app):
        app.state.session_factory = session_factory
        yield app


# JWT Token Fixtures
@pytest.fixture()
def jwt_token_factory() -> Callable[..., str]:
    """Factory for creating JWT tokens for test users."""
    auth_settings = AuthSettings()

    def create_token(
        user_id: str, email: str = "test@example.com", role: str = "authenticated"
    ) -> str:
        payload = {
            "sub": user_id,
            "email": email,
            "role": role,
            "aud": auth_settings.JWT_AUDIENCE,
        }
        return jwt.encode(payload, auth_settings.JWT_SECRET, algorithm=JWT_ALGORITHM)

    return create_token


@pytest.fixture
def user_token(user_id: UUID, jwt_token_factory: Callable[..., str]) -> str:
    return jwt_token_factory(str(user_id))


# HTTP Client Fixtures
@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client for testing public endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-credit-ledger-api",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def authorized_client(
    app: FastAPI, user_token: str
) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client with JWT authorization headers."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-credit-ledger-api",
        headers={"Authorization": f"Bearer {user_token}"},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def internal_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create HTTP client carrying the internal service key."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-credit-ledger-api",
        headers={INTERNAL_SERVICE_KEY_HEADER: TEST_INTERNAL_SERVICE_KEY},
    ) as ac:
        yield ac
