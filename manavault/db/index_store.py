"""
Search index store.

Wraps the engine of the separate SQLite file that holds the rebuildable
index: card_search (canonical cards), card_search_printings (printing refs)
and card_search_fts (FTS5 search documents).

Only the index builder writes here, and only inside one transaction that
drops, recreates and refills all three tables.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import column, inspect, table
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from manavault.db.database import create_sqlite_engine
from manavault.models.db import CanonicalCardDB, IndexBase, PrintingRefDB
from manavault.models.failure import IndexUnavailableError

logger = logging.getLogger(__name__)

FTS_TABLE_NAME = "card_search_fts"

REQUIRED_TABLES = (
    CanonicalCardDB.__tablename__,
    PrintingRefDB.__tablename__,
    FTS_TABLE_NAME,
)

# Lightweight handle for inserts and joins against the virtual table
fts_table = table(
    FTS_TABLE_NAME,
    column("canonical_key"),
    column("name"),
    column("type_line"),
    column("oracle_text"),
)

_FTS_DROP = f"DROP TABLE IF EXISTS {FTS_TABLE_NAME}"
_FTS_CREATE = (
    f"CREATE VIRTUAL TABLE {FTS_TABLE_NAME} USING fts5("
    "canonical_key UNINDEXED, name, type_line, oracle_text, "
    "tokenize = 'unicode61 remove_diacritics 2')"
)


class IndexStore:
    """
    Handle to the search index store.

    Created once by the process entry point and shared by the builder and
    the search engine.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    @classmethod
    def open(cls, path: str | Path, echo: bool = False) -> "IndexStore":
        """Open (creating if needed) the index store file at `path`."""
        return cls(create_sqlite_engine(path, echo=echo))

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def missing_tables(self, conn: AsyncConnection | None = None) -> list[str]:
        """Names of required index tables that do not exist."""
        if conn is None:
            async with self.engine.connect() as own_conn:
                return await self.missing_tables(own_conn)

        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
        return [name for name in REQUIRED_TABLES if name not in existing]

    async def is_available(self) -> bool:
        """True if every required table exists."""
        try:
            return not await self.missing_tables()
        except DBAPIError as e:
            logger.warning("Search index unreadable: %s", e)
            return False

    async def ensure_available(self, conn: AsyncConnection | None = None) -> None:
        """
        Raise IndexUnavailableError unless the index has been built.

        Raises:
            IndexUnavailableError: If any required table is missing
        """
        missing = await self.missing_tables(conn)
        if missing:
            logger.info("Search index unavailable, missing tables: %s", ", ".join(missing))
            raise IndexUnavailableError(missing_tables=missing)

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[AsyncConnection]:
        """
        Connection for index reads, after checking the index is built.

        Any driver-level failure (unreadable or corrupt file, locked store)
        is reported as IndexUnavailableError.
        """
        try:
            async with self.engine.connect() as conn:
                await self.ensure_available(conn)
                yield conn
        except DBAPIError as e:
            logger.error("Search index read failed: %s", e)
            raise IndexUnavailableError(detail=str(e.orig or e)) from e

    @staticmethod
    async def recreate_tables(conn: AsyncConnection) -> None:
        """
        Drop and recreate every index table on an open transaction.

        Must be called inside the rebuild transaction so the drop only
        becomes visible together with the refilled tables.
        """
        await conn.exec_driver_sql(_FTS_DROP)
        await conn.run_sync(IndexBase.metadata.drop_all)
        await conn.run_sync(IndexBase.metadata.create_all)
        await conn.exec_driver_sql(_FTS_CREATE)
