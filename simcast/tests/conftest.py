"""Shared fixtures: a throwaway SQLite database and a fake YouTube Data API."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from simcast.core.config import settings
from simcast.db.models import Base, Channel
from simcast.tests.fakes import FakeYouTube


@pytest.fixture
def youtube(monkeypatch: pytest.MonkeyPatch) -> FakeYouTube:
    monkeypatch.setattr(settings, "youtube_api_key", None)
    monkeypatch.setattr(settings, "aggregation_partial_results", False)
    return FakeYouTube()


@pytest_asyncio.fixture
async def youtube_client(youtube: FakeYouTube) -> AsyncIterator[httpx.AsyncClient]:
    async with youtube.client() as client:
        yield client


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'simcast.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_channels(session: AsyncSession) -> Callable[..., Any]:
    async def _make(count: int, *, prefix: str = "chan") -> list[Channel]:
        channels = [
            Channel(
                short_name=f"{prefix}-{index:02d}",
                name=f"Channel {index}",
                youtube_id=f"UC{prefix}{index:02d}",
                favorites=0,
            )
            for index in range(count)
        ]
        session.add_all(channels)
        await session.commit()
        return channels

    return _make
