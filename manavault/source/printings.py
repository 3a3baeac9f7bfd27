"""
Upstream printing source.

Reads printings from the read-only MTGJSON snapshot. The projection is
declared once, as (logical field, candidate physical columns) pairs, and
turned into a single SELECT by build_printing_select(). Fields the snapshot
lacks are selected as NULL, so the rest of the pipeline sees a stable shape.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import ColumnElement, Select, column, func, null, select, table
from sqlalchemy.ext.asyncio import AsyncEngine

from manavault.db.database import create_sqlite_engine
from manavault.models.card import Printing
from manavault.source.introspect import FieldSpec, SchemaIntrospector
from manavault.source.values import (
    clean_text,
    normalize_colors,
    normalize_string_list,
    to_float,
)

logger = logging.getLogger(__name__)

CARDS = "cards"
IDENTIFIERS = "cardIdentifiers"
SETS = "sets"

# Logical printing fields and where each may live, most preferred column first
PRINTING_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("printing_id", CARDS, ("uuid",)),
    FieldSpec("name", CARDS, ("name", "faceName")),
    FieldSpec("ascii_name", CARDS, ("asciiName",)),
    FieldSpec("set_code", CARDS, ("setCode", "set_code")),
    FieldSpec("card_release_date", CARDS, ("originalReleaseDate", "releaseDate")),
    FieldSpec("rarity", CARDS, ("rarity",)),
    FieldSpec("mana_cost", CARDS, ("manaCost",)),
    FieldSpec("mana_value", CARDS, ("manaValue", "convertedManaCost")),
    FieldSpec("type_line", CARDS, ("type", "typeLine")),
    FieldSpec("oracle_text", CARDS, ("text", "originalText")),
    FieldSpec("colors", CARDS, ("colors",)),
    FieldSpec("color_identity", CARDS, ("colorIdentity",)),
    FieldSpec("layout", CARDS, ("layout",)),
    FieldSpec("side", CARDS, ("side",)),
    FieldSpec("keywords", CARDS, ("keywords",)),
    FieldSpec("types", CARDS, ("types",)),
    FieldSpec("power", CARDS, ("power",)),
    FieldSpec("toughness", CARDS, ("toughness",)),
    FieldSpec("loyalty", CARDS, ("loyalty", "defense")),
    FieldSpec("artist", CARDS, ("artist",)),
    FieldSpec("flavor_text", CARDS, ("flavorText",)),
    FieldSpec("collector_number", CARDS, ("number",)),
    FieldSpec("card_oracle_id", CARDS, ("oracleId",)),
    FieldSpec("scryfall_oracle_id", IDENTIFIERS, ("scryfallOracleId",)),
    FieldSpec("identifier_oracle_id", IDENTIFIERS, ("oracleId",)),
    FieldSpec("set_release_date", SETS, ("releaseDate",)),
)

# Join keys for the side tables
JOIN_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("identifiers_uuid", IDENTIFIERS, ("uuid",)),
    FieldSpec("sets_code", SETS, ("code", "setCode")),
)

_TABLE_ALIASES = {CARDS: "c", IDENTIFIERS: "ci", SETS: "s"}


class UpstreamSchemaError(Exception):
    """The snapshot lacks the columns that identify a printing (cards.uuid, cards.name)."""


@dataclass(frozen=True, slots=True)
class SourceSummary:
    """What the upstream snapshot contains."""

    tables: list[str]
    printing_count: int

    @property
    def ok(self) -> bool:
        return CARDS in self.tables and SETS in self.tables


def printing_from_row(row: Mapping[str, Any]) -> Printing:
    """Build a Printing from one row of build_printing_select()."""
    set_code = clean_text(row.get("set_code"))
    rarity = clean_text(row.get("rarity"))
    return Printing(
        printing_id=str(row["printing_id"]),
        name=clean_text(row.get("name")) or str(row["printing_id"]),
        ascii_name=clean_text(row.get("ascii_name")),
        set_code=set_code.upper() if set_code else None,
        release_date=clean_text(row.get("card_release_date"))
        or clean_text(row.get("set_release_date")),
        rarity=rarity.lower() if rarity else None,
        mana_cost=clean_text(row.get("mana_cost")),
        mana_value=to_float(row.get("mana_value")),
        type_line=clean_text(row.get("type_line")),
        oracle_text=clean_text(row.get("oracle_text")),
        colors=normalize_colors(row.get("colors")),
        color_identity=normalize_colors(row.get("color_identity")),
        layout=clean_text(row.get("layout")),
        side=clean_text(row.get("side")),
        keywords=normalize_string_list(row.get("keywords")),
        types=normalize_string_list(row.get("types")),
        power=clean_text(row.get("power")),
        toughness=clean_text(row.get("toughness")),
        loyalty=clean_text(row.get("loyalty")),
        artist=clean_text(row.get("artist")),
        flavor_text=clean_text(row.get("flavor_text")),
        collector_number=clean_text(row.get("collector_number")),
        scryfall_oracle_id=clean_text(row.get("scryfall_oracle_id")),
        identifier_oracle_id=clean_text(row.get("identifier_oracle_id")),
        card_oracle_id=clean_text(row.get("card_oracle_id")),
    )


class UpstreamSource:
    """
    Read-only access to printings in the MTGJSON snapshot.

    All column knowledge goes through the SchemaIntrospector; the select is
    built once and reused.
    """

    def __init__(self, engine: AsyncEngine, introspector: SchemaIntrospector | None = None) -> None:
        self.engine = engine
        self.introspector = introspector or SchemaIntrospector(engine)
        self._select: tuple[Select[Any], ColumnElement[Any]] | None = None

    @classmethod
    def open(cls, path: str | Path, echo: bool = False) -> "UpstreamSource":
        """Open the snapshot at `path` read-only."""
        return cls(create_sqlite_engine(path, read_only=True, echo=echo))

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def build_printing_select(self) -> tuple[Select[Any], ColumnElement[Any]]:
        """
        Build the printing projection for this snapshot.

        Returns:
            (select statement, printing id column) - the id column is used
            for ordering and point lookups.

        Raises:
            UpstreamSchemaError: If cards.uuid or cards.name is missing
        """
        if self._select is not None:
            return self._select

        resolved = await self.introspector.resolve(PRINTING_FIELDS)
        join_keys = await self.introspector.resolve(JOIN_FIELDS)

        if resolved["printing_id"] is None or resolved["name"] is None:
            raise UpstreamSchemaError(
                f"Upstream table '{CARDS}' must provide uuid and name columns"
            )

        aliases = {}
        for table_name, alias in _TABLE_ALIASES.items():
            columns = await self.introspector.columns_of(table_name)
            if columns:
                aliases[table_name] = table(
                    table_name, *(column(name) for name in sorted(columns))
                ).alias(alias)

        cards = aliases[CARDS]
        from_clause: Any = cards
        joined = {CARDS}

        identifiers_key = join_keys["identifiers_uuid"]
        if identifiers_key and IDENTIFIERS in aliases:
            identifiers = aliases[IDENTIFIERS]
            from_clause = from_clause.outerjoin(
                identifiers,
                identifiers.c[identifiers_key[1]] == cards.c[resolved["printing_id"][1]],
            )
            joined.add(IDENTIFIERS)

        sets_key = join_keys["sets_code"]
        if sets_key and resolved["set_code"] and SETS in aliases:
            sets = aliases[SETS]
            from_clause = from_clause.outerjoin(
                sets,
                sets.c[sets_key[1]] == cards.c[resolved["set_code"][1]],
            )
            joined.add(SETS)

        selected: list[ColumnElement[Any]] = []
        for field in PRINTING_FIELDS:
            location = resolved[field.name]
            if location is None or location[0] not in joined:
                selected.append(null().label(field.name))
            else:
                table_name, column_name = location
                selected.append(aliases[table_name].c[column_name].label(field.name))

        id_column = cards.c[resolved["printing_id"][1]]
        self._select = (select(*selected).select_from(from_clause), id_column)
        return self._select

    async def iter_printings(self) -> AsyncIterator[Printing]:
        """
        Stream every printing in the snapshot, ordered by printing id.

        Rows are fetched through a server-side cursor; nothing beyond the
        current row is held in memory here.
        """
        stmt, id_column = await self.build_printing_select()
        async with self.engine.connect() as conn:
            result = await conn.stream(stmt.order_by(id_column))
            async for row in result.mappings():
                yield printing_from_row(row)

    async def fetch_printing(self, printing_id: str) -> Printing | None:
        """Point lookup of one printing by id."""
        stmt, id_column = await self.build_printing_select()
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt.where(id_column == printing_id).limit(1))
            row = result.mappings().first()
        return printing_from_row(row) if row else None

    async def summarize(self) -> SourceSummary:
        """Tables present and number of printings (for verification)."""
        tables = [
            name for name in (CARDS, SETS, IDENTIFIERS) if await self.introspector.has_table(name)
        ]
        count = 0
        if CARDS in tables:
            async with self.engine.connect() as conn:
                result = await conn.execute(select(func.count()).select_from(table(CARDS)))
                count = int(result.scalar_one())
        return SourceSummary(tables=tables, printing_count=count)
