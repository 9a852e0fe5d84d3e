"""Database utilities for the Anime Explorer service."""

from __future__ import annotations

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base with consistent naming conventions."""

    metadata = MetaData()


class InvalidationTracker:
    """Per-table version counters that live reads can wait on.

    Writers call :meth:`notify` after committing. Readers take a
    :meth:`snapshot` before querying and later block in
    :meth:`wait_for_change` until any of their tables moved past it.
    """

    def __init__(self) -> None:
        self._versions: Counter[str] = Counter()
        self._changed = asyncio.Event()

    def snapshot(self, tables: Iterable[str]) -> tuple[int, ...]:
        return tuple(self._versions[table] for table in tables)

    def notify(self, *tables: str) -> None:
        """Record a committed write to ``tables`` and wake every waiter."""

        if not tables:
            return
        for table in tables:
            self._versions[table] += 1
        event, self._changed = self._changed, asyncio.Event()
        event.set()

    async def wait_for_change(
        self, tables: tuple[str, ...], since: tuple[int, ...]
    ) -> tuple[int, ...]:
        """Block until the versions of ``tables`` differ from ``since``."""

        while True:
            current = self.snapshot(tables)
            if current != since:
                return current
            await self._changed.wait()


class Database:
    """Thin wrapper managing the SQLAlchemy async engine and sessions."""

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )
        self.tracker = InvalidationTracker()

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_all(self) -> None:
        """Create database tables if they do not yet exist."""

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Dispose of the underlying database engine."""

        await self._engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope around a series of operations."""

        async with self.session_factory() as session:
            yield session
