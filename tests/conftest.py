from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from manavault.config import Settings
from manavault.db.database import create_app_engine, create_session_factory, init_db
from manavault.db.index_store import IndexStore
from manavault.main import create_app
from manavault.runtime import Runtime, open_runtime
from manavault.services.index_builder import IndexBuilder
from manavault.services.search_engine import SearchEngine
from manavault.source.printings import UpstreamSource

CARD_COLUMNS = (
    "uuid",
    "name",
    "asciiName",
    "setCode",
    "rarity",
    "manaCost",
    "manaValue",
    "type",
    "text",
    "colors",
    "colorIdentity",
    "layout",
    "side",
    "keywords",
    "types",
    "power",
    "toughness",
    "loyalty",
    "artist",
    "flavorText",
    "number",
    "oracleId",
)

SAMPLE_SETS = [
    {"code": "LEA", "name": "Limited Edition Alpha", "releaseDate": "1993-08-05"},
    {"code": "M10", "name": "Magic 2010", "releaseDate": "2009-07-17"},
    {"code": "XLN", "name": "Ixalan", "releaseDate": "2017-09-29"},
    {"code": "DOM", "name": "Dominaria", "releaseDate": "2018-04-27"},
    {"code": "GRN", "name": "Guilds of Ravnica", "releaseDate": "2018-10-05"},
    {"code": "C21", "name": "Commander 2021", "releaseDate": "2021-04-23"},
    {"code": "MH2", "name": "Modern Horizons 2", "releaseDate": "2021-06-18"},
]

COUNTERSPELL = {
    "name": "Counterspell",
    "rarity": "uncommon",
    "manaCost": "{U}{U}",
    "manaValue": 2,
    "type": "Instant",
    "text": "Counter target spell.",
    "colors": "U",
    "colorIdentity": "U",
    "layout": "normal",
    "types": "Instant",
}

OPT = {
    "name": "Opt",
    "rarity": "common",
    "manaCost": "{U}",
    "manaValue": 1,
    "type": "Instant",
    "text": "Scry 1.\nDraw a card.",
    "colors": "U",
    "colorIdentity": "U",
    "layout": "normal",
    "types": "Instant",
}

LIGHTNING_BOLT = {
    "name": "Lightning Bolt",
    "rarity": "common",
    "manaCost": "{R}",
    "manaValue": 1,
    "type": "Instant",
    "text": "Lightning Bolt deals 3 damage to any target.",
    "colors": "R",
    "colorIdentity": "R",
    "layout": "normal",
    "types": "Instant",
    "oracleId": "oracle-bolt",
}

GOBLIN_SCOUT = {
    "name": "Goblin Scout",
    "rarity": "common",
    "type": "Creature — Goblin Scout",
    "text": "Haste",
    "layout": "normal",
    "types": "Creature",
    "power": "*",
    "toughness": "1",
}

SAMPLE_CARDS = [
    {**COUNTERSPELL, "uuid": "cs-lea", "setCode": "LEA", "artist": "Mark Poole", "number": "54"},
    {**COUNTERSPELL, "uuid": "cs-mh2", "setCode": "MH2", "artist": "Zack Stella", "number": "267"},
    {**OPT, "uuid": "opt-xln", "setCode": "XLN", "artist": "Tyler Jacobson", "number": "65"},
    {**OPT, "uuid": "opt-dom", "setCode": "DOM", "artist": "Craig J Spearing", "number": "60"},
    {
        **LIGHTNING_BOLT,
        "uuid": "bolt-lea",
        "setCode": "LEA",
        "artist": "Christopher Rush",
        "number": "161",
    },
    {
        **LIGHTNING_BOLT,
        "uuid": "bolt-m10",
        "setCode": "M10",
        "artist": "Christopher Moeller",
        "number": "146",
    },
    {
        "uuid": "niv-grn",
        "name": "Niv-Mizzet, Parun",
        "setCode": "GRN",
        "rarity": "rare",
        "manaCost": "{U}{U}{U}{R}{R}{R}",
        "manaValue": 6,
        "type": "Legendary Creature — Dragon Wizard",
        "text": "Flying\nWhenever you draw a card, Niv-Mizzet, Parun deals 1 damage to any target.",
        "colors": "R, U",
        "colorIdentity": "R, U",
        "layout": "normal",
        "keywords": "Flying",
        "types": "Creature",
        "power": "5",
        "toughness": "5",
        "artist": "Svetlin Velinov",
        "number": "192",
    },
    {
        "uuid": "sol-c21",
        "name": "Sol Ring",
        "setCode": "C21",
        "rarity": "uncommon",
        "manaCost": "{1}",
        "manaValue": 1,
        "type": "Artifact",
        "text": "{T}: Add {C}{C}.",
        "layout": "normal",
        "types": "Artifact",
        "artist": "Mike Bierek",
        "flavorText": "Lost to the ages, found again.",
        "number": "263",
    },
    # No oracle identifiers: grouped by name/layout/side
    {**GOBLIN_SCOUT, "uuid": "gob-tst", "setCode": "TST"},
    {**GOBLIN_SCOUT, "uuid": "gob-xln", "setCode": "XLN"},
]

SAMPLE_IDENTIFIERS = [
    {"uuid": "cs-lea", "scryfallOracleId": "oracle-counterspell"},
    {"uuid": "cs-mh2", "scryfallOracleId": "oracle-counterspell"},
    {"uuid": "opt-xln", "scryfallOracleId": "oracle-opt"},
    {"uuid": "opt-dom", "scryfallOracleId": "oracle-opt"},
    {"uuid": "niv-grn", "scryfallOracleId": "oracle-niv"},
    {"uuid": "sol-c21", "scryfallOracleId": "oracle-sol"},
]


async def write_upstream(
    path: Path,
    cards: Sequence[dict[str, Any]] = SAMPLE_CARDS,
    sets: Sequence[dict[str, Any]] | None = SAMPLE_SETS,
    identifiers: Sequence[dict[str, Any]] | None = SAMPLE_IDENTIFIERS,
    card_columns: Sequence[str] = CARD_COLUMNS,
) -> Path:
    """Write an MTGJSON-shaped SQLite snapshot. Passing None omits a side table."""

    async def create_table(
        conn: Any, name: str, columns: Sequence[str], rows: Sequence[dict[str, Any]]
    ) -> None:
        column_list = ", ".join(f'"{col}"' for col in columns)
        await conn.execute(text(f'CREATE TABLE "{name}" ({column_list})'))
        if rows:
            params = ", ".join(f":{col}" for col in columns)
            await conn.execute(
                text(f'INSERT INTO "{name}" ({column_list}) VALUES ({params})'),
                [{col: row.get(col) for col in columns} for row in rows],
            )

    engine = create_async_engine(f"sqlite+aiosqlite:///{path.as_posix()}")
    async with engine.begin() as conn:
        await create_table(conn, "cards", card_columns, cards)
        if sets is not None:
            await create_table(conn, "sets", ("code", "name", "releaseDate"), sets)
        if identifiers is not None:
            await create_table(conn, "cardIdentifiers", ("uuid", "scryfallOracleId"), identifiers)
    await engine.dispose()
    return path


@pytest.fixture
async def upstream_path(tmp_path: Path) -> Path:
    """Sample MTGJSON snapshot on disk."""
    return await write_upstream(tmp_path / "AllPrintings.sqlite")


@pytest.fixture
def make_upstream(tmp_path: Path):
    """Factory writing a custom snapshot into tmp_path (same arguments as write_upstream)."""

    async def _make(filename: str = "custom.sqlite", **kwargs: Any) -> Path:
        return await write_upstream(tmp_path / filename, **kwargs)

    return _make


@pytest.fixture
async def source(upstream_path: Path):
    """Read-only upstream source over the sample snapshot."""
    upstream = UpstreamSource.open(upstream_path)
    yield upstream
    await upstream.dispose()


@pytest.fixture
async def index(tmp_path: Path):
    """Empty index store (no tables until a rebuild)."""
    store = IndexStore.open(tmp_path / "search.sqlite")
    yield store
    await store.dispose()


@pytest.fixture
def builder(source: UpstreamSource, index: IndexStore) -> IndexBuilder:
    return IndexBuilder(source, index, progress_interval=2, ref_batch_size=3, card_batch_size=2)


@pytest.fixture
async def built_index(builder: IndexBuilder, index: IndexStore) -> IndexStore:
    """Index store populated from the sample snapshot."""
    await builder.rebuild()
    return index


@pytest.fixture
def search_engine(built_index: IndexStore) -> SearchEngine:
    return SearchEngine(built_index)


@pytest.fixture
async def app_engine(tmp_path: Path):
    """Application store on a temporary SQLite file."""
    engine = create_app_engine(f"sqlite+aiosqlite:///{(tmp_path / 'app.sqlite').as_posix()}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(app_engine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(app_engine)


@pytest.fixture
def api_settings(tmp_path: Path, upstream_path: Path) -> Settings:
    """Settings pointing every store at tmp_path."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{(tmp_path / 'api-app.sqlite').as_posix()}",
        mtgjson_db_path=str(upstream_path),
        search_index_path=str(tmp_path / "api-search.sqlite"),
        search_default_limit=4,
        search_max_limit=5,
    )


@pytest.fixture
async def runtime(api_settings: Settings):
    """Runtime opened the way the application lifespan opens it."""
    opened = await open_runtime(api_settings)
    yield opened
    await opened.close()


@pytest.fixture
async def client(api_settings: Settings, runtime: Runtime):
    """Async test client over an app wired to the test runtime (index not built)."""
    app = create_app(api_settings)
    app.state.settings = api_settings
    app.state.runtime = runtime
    app.state.session_factory = runtime.session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def built_client(client: AsyncClient, runtime: Runtime) -> AsyncClient:
    """Test client with the search index already built."""
    await runtime.rebuilds.run()
    return client
