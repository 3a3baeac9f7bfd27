"""
Database engine and session management.

Engines are created by the process entry point (application lifespan or a
job's main) and passed to the components that use them. Nothing here holds
a process-wide connection.
"""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from manavault.models.db import Base


def create_app_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the engine for the application store."""
    if database_url.startswith("sqlite"):
        _ensure_sqlite_parent(database_url)
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the application store."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def create_sqlite_engine(
    path: str | Path, read_only: bool = False, echo: bool = False
) -> AsyncEngine:
    """
    Create an engine for a SQLite file with transactional DDL.

    The driver's implicit transaction handling is disabled and replaced with
    an explicit BEGIN, so DROP/CREATE statements join the surrounding
    transaction and roll back with it. Writable stores use WAL journaling so
    readers keep the last committed snapshot while a rebuild is open.

    Args:
        path: SQLite file path
        read_only: Open with mode=ro (the upstream snapshot is never written)
    """
    path = Path(path)
    if read_only:
        url = f"sqlite+aiosqlite:///file:{path.as_posix()}?mode=ro&uri=true"
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite+aiosqlite:///{path.as_posix()}"

    engine = create_async_engine(url, echo=echo)

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        if not read_only:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


def _ensure_sqlite_parent(database_url: str) -> None:
    _, _, raw_path = database_url.partition(":///")
    if raw_path and not raw_path.startswith(":memory:") and not raw_path.startswith("file:"):
        Path(raw_path).parent.mkdir(parents=True, exist_ok=True)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides an application store session.

    Usage in FastAPI:
        @app.get("/items")
        async def get_items(session: AsyncSession = Depends(get_session)):
            ...
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize application store tables.

    Creates all tables defined in the application ORM models.
    Should be called once at application startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

