"""Pytest configuration and fixtures."""

import asyncio
from typing import AsyncGenerator, Dict, Generator, List

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pipeline_logs.core.config import get_settings
from pipeline_logs.models.base import Base
from pipeline_logs.models.processing_log import ProcessingLog

from tests.fakes import make_row


@pytest.fixture
def database_url(tmp_path) -> str:
    """Per-test SQLite log store."""
    return f"sqlite+aiosqlite:///{tmp_path / 'pipeline_logs.db'}"


async def _create_and_seed(database_url: str, rows: List[Dict]) -> None:
    engine = create_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        session.add_all(ProcessingLog(**row) for row in rows)
        await session.commit()
    await engine.dispose()


@pytest.fixture
async def session_factory(database_url) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over an empty, freshly created schema."""
    engine = create_async_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def seed_rows() -> List[Dict]:
    """Rows loaded into the store behind the API client."""
    rows = [make_row(i, status="error", stage="ai_parsing") for i in range(20)]
    rows += [make_row(100 + i, status="success") for i in range(10)]
    rows.append(
        make_row(
            200,
            status="success",
            stage="unleashed_sync",
            purchase_order_guid="so-0001",
            order_status="Parked",
        )
    )
    return rows


@pytest.fixture
def client(database_url, seed_rows, monkeypatch) -> Generator[TestClient, None, None]:
    """Test client backed by a seeded SQLite log store."""
    asyncio.run(_create_and_seed(database_url, seed_rows))

    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("STATS_TIMEZONE", "UTC")
    monkeypatch.delenv("ORDER_AUTHORITY_URL", raising=False)
    get_settings.cache_clear()

    from pipeline_logs.main import app

    with TestClient(app) as c:
        yield c

    get_settings.cache_clear()


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    """Bearer header with a token signed by the configured secret."""
    settings = get_settings()
    token = jwt.encode(
        {"sub": "test_user", "role": "operator"},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return {"Authorization": f"Bearer {token}"}
