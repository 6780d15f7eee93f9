from __future__ import annotations

import logging
import os
import sys

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from jobrelay.models.base import Base

logger = logging.getLogger("jobrelay.database")

SQLITE_BUSY_TIMEOUT_MS = 5000


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


class Database:
    """Owns the async engine and session factory for the job store.

    Constructed explicitly by whoever owns the job lifecycle and disposed with
    ``dispose()``; nothing in the package reaches for a module-level engine.
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        engine_kwargs: dict = {"echo": echo}

        # Under pytest each test may run on its own event loop; pooled
        # connections must not outlive the loop that opened them.
        if os.getenv("PYTEST_CURRENT_TEST") or ("pytest" in sys.modules):
            engine_kwargs["poolclass"] = NullPool
        elif not url.startswith("sqlite"):
            engine_kwargs["pool_pre_ping"] = True

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        if make_url(url).get_backend_name() == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _set_sqlite_pragmas)

        self._session_factory = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

    def session(self) -> AsyncSession:
        return self._session_factory()

    async def create_all(self) -> None:
        """Create missing tables. Alembic remains the source of truth for upgrades."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("schema_ready url=%s", make_url(self.url).render_as_string(hide_password=True))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("database_closed")
