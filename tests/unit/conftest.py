"""Shared fixtures for unit tests.

Patches async_session everywhere so no unit test touches seriesledger.db.
"""

import importlib

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from seriesledger.models import ClientType, DownloadClient, SeriesSubscription, TaskHistory

_unit_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

_unit_session_factory = sessionmaker(_unit_engine, class_=AsyncSession, expire_on_commit=False)

# Every module that binds async_session at import time
_SESSION_MODULES = (
    "seriesledger.database",
    "seriesledger.services.config_service",
    "seriesledger.services.episode_ledger",
    "seriesledger.services.history_service",
    "seriesledger.services.ledger_sync",
    "seriesledger.services.subscription_checker",
    "seriesledger.downloaders.registry",
)


@pytest.fixture(autouse=True)
async def isolate_database(monkeypatch):
    """Patch async_session everywhere so no unit test touches seriesledger.db."""
    async with _unit_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    for name in _SESSION_MODULES:
        module = importlib.import_module(name)
        if hasattr(module, "async_session"):
            monkeypatch.setattr(module, "async_session", _unit_session_factory)

    yield

    async with _unit_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


async def seed_subscription(**kwargs) -> SeriesSubscription:
    """Insert a subscription row via the patched session factory."""
    defaults = dict(name="Breaking Good", season=2, task_id=7)
    defaults.update(kwargs)
    async with _unit_session_factory() as session:
        subscription = SeriesSubscription(**defaults)
        session.add(subscription)
        await session.commit()
        await session.refresh(subscription)
        return subscription


async def seed_history(title: str, **kwargs) -> TaskHistory:
    """Insert a history row via the patched session factory."""
    defaults = dict(task_id=None, item_guid=title, item_title=title, is_finished=True)
    defaults.update(kwargs)
    async with _unit_session_factory() as session:
        record = TaskHistory(**defaults)
        session.add(record)
        await session.commit()
        await session.refresh(record)
        return record


async def seed_client(**kwargs) -> DownloadClient:
    defaults = dict(name="Mock", type=ClientType.MOCK, host="localhost")
    defaults.update(kwargs)
    async with _unit_session_factory() as session:
        client = DownloadClient(**defaults)
        session.add(client)
        await session.commit()
        await session.refresh(client)
        return client
