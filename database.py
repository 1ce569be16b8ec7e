import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlmodel import SQLModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

logger = logging.getLogger(__name__)


class Database:
    """
    Store handle with an explicit lifecycle.

    Built once at startup, connected in the startup hook and disconnected on
    shutdown. Every request works in its own session opened from this handle.
    """

    def __init__(self, url: str, echo: bool = False, timeout: float = 10.0):
        self.url = url
        self.echo = echo
        self.timeout = timeout
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def _engine_options(self) -> dict:
        # Every store call carries the driver's own timeout
        if self.is_sqlite:
            return {"connect_args": {"timeout": self.timeout}}
        if "asyncpg" in self.url:
            return {
                "pool_timeout": self.timeout,
                "connect_args": {"timeout": self.timeout, "command_timeout": self.timeout},
            }
        return {"pool_timeout": self.timeout}

    async def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, echo=self.echo, future=True, **self._engine_options())
        self._sessionmaker = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)
        async with self._engine.begin() as conn:
            # This creates the tables if they don't exist
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database connected")

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        async with self._sessionmaker() as session:
            yield session

    async def ping(self) -> bool:
        async with self.session() as session:
            await session.execute(text("SELECT 1"))
        return True


def get_database(request: Request) -> Database:
    return request.app.state.database
