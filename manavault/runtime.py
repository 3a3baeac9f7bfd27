"""
Process runtime.

Opens the three stores once (application store, upstream snapshot, search
index) and wires the components that share them. Entry points (the
application lifespan and the CLI job) own the Runtime and close it on exit.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from manavault.config import Settings
from manavault.db.database import create_app_engine, create_session_factory, init_db
from manavault.db.index_store import IndexStore
from manavault.services.canonical_key import CanonicalKeyResolver
from manavault.services.index_builder import IndexBuilder
from manavault.services.rebuild import RebuildCoordinator
from manavault.services.search_engine import SearchEngine
from manavault.source.printings import UpstreamSource

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    app_engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    source: UpstreamSource
    index: IndexStore
    resolver: CanonicalKeyResolver
    builder: IndexBuilder
    search: SearchEngine
    rebuilds: RebuildCoordinator

    async def close(self) -> None:
        await self.rebuilds.shutdown()
        await self.index.dispose()
        await self.source.dispose()
        await self.app_engine.dispose()


async def open_runtime(settings: Settings) -> Runtime:
    """
    Open every store named in `settings` and build the services.

    The application store schema is created if missing and a rebuild left
    `running` by a previous process is marked failed.
    """
    app_engine = create_app_engine(settings.database_url, echo=settings.debug)
    await init_db(app_engine)
    session_factory = create_session_factory(app_engine)

    source = UpstreamSource.open(settings.mtgjson_db_path)
    index = IndexStore.open(settings.search_index_path)
    builder = IndexBuilder(source, index, progress_interval=settings.rebuild_progress_interval)
    rebuilds = RebuildCoordinator(builder, session_factory)
    await rebuilds.recover_interrupted()

    logger.info(
        "Opened stores: upstream=%s index=%s",
        settings.mtgjson_db_path,
        settings.search_index_path,
    )
    return Runtime(
        app_engine=app_engine,
        session_factory=session_factory,
        source=source,
        index=index,
        resolver=CanonicalKeyResolver(index, source),
        builder=builder,
        search=SearchEngine(index),
        rebuilds=rebuilds,
    )
