# backend/tests/conftest.py
from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.routers.billing import get_token_ledger
from app.core.config import settings
from app.db.base import Base
from app.db.session import get_async_session
from app.main import app as fastapi_app
from app.modules.translation.services.token_ledger import TokenLedger


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path: Path):
    """
    Creates/Disposes an aiosqlite engine FOR EACH TEST FUNCTION.
    A file database (not :memory:) so concurrent sessions see the same data.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'translation_test.db'}",
        echo=settings.DB_ECHO,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine, expire_on_commit=False, autoflush=False, class_=AsyncSession
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Yields a database session per function, using the function-scoped engine."""
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@pytest.fixture
def ledger(session_factory: async_sessionmaker[AsyncSession]) -> TokenLedger:
    return TokenLedger(session_factory)


@pytest.fixture
def mock_send_task():
    with patch("app.api.routers.translation_jobs.celery_app") as mock_celery:
        mock_celery.send_task = MagicMock()
        yield mock_celery.send_task


@pytest_asyncio.fixture(scope="function")
async def test_client(
    db_session: AsyncSession, ledger: TokenLedger, mock_send_task: MagicMock
) -> AsyncGenerator[AsyncClient, None]:
    """
    Creates an httpx AsyncClient using ASGITransport for testing the FastAPI app.
    Injects the function-scoped test database session and ledger; Celery
    enqueueing is replaced by `mock_send_task`.
    """

    async def override_get_async_session_for_test() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    fastapi_app.dependency_overrides[get_async_session] = override_get_async_session_for_test
    fastapi_app.dependency_overrides[get_token_ledger] = lambda: ledger

    async with AsyncClient(
        transport=ASGITransport(app=fastapi_app), base_url="http://test"
    ) as client:
        yield client

    fastapi_app.dependency_overrides.clear()
