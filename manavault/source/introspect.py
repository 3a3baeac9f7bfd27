"""
Schema introspection for the upstream snapshot.

MTGJSON renames, adds and drops columns between snapshot versions. Every
upstream query is built from what the snapshot actually has:

- columns_of(table) -> set of column names (empty if the table is absent)
- pick_column(table, candidates) -> first candidate present, or None

A missing table or column is never an error. Callers treat it as "value
unavailable". Results are cached for the lifetime of the introspector, since
the snapshot is read-only while the process runs.
"""

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass

from sqlalchemy import Connection, inspect
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """
    One logical field and the physical columns that may hold it.

    Attributes:
        name: Logical field name (used as the result label)
        table: Upstream table the field is read from
        candidates: Physical column names, most preferred first
    """

    name: str
    table: str
    candidates: tuple[str, ...]


def pick_first(columns: Collection[str], candidates: Sequence[str]) -> str | None:
    """Return the first candidate present in `columns`, or None."""
    for candidate in candidates:
        if candidate in columns:
            return candidate
    return None


class SchemaIntrospector:
    """Memoized view of which upstream tables and columns exist."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._columns: dict[str, frozenset[str]] = {}
        self._reported_drift: set[tuple[str, tuple[str, ...]]] = set()

    async def columns_of(self, table_name: str) -> frozenset[str]:
        """
        Column names of `table_name`.

        Returns an empty set if the table does not exist.
        """
        cached = self._columns.get(table_name)
        if cached is not None:
            return cached

        def _load(sync_conn: Connection) -> frozenset[str]:
            inspector = inspect(sync_conn)
            if not inspector.has_table(table_name):
                return frozenset()
            return frozenset(col["name"] for col in inspector.get_columns(table_name))

        async with self._engine.connect() as conn:
            columns = await conn.run_sync(_load)

        if not columns:
            logger.debug("Upstream table %s not present", table_name)
        self._columns[table_name] = columns
        return columns

    async def has_table(self, table_name: str) -> bool:
        return bool(await self.columns_of(table_name))

    async def pick_column(self, table_name: str, candidates: Sequence[str]) -> str | None:
        """First candidate column that exists in `table_name`, or None."""
        picked = pick_first(await self.columns_of(table_name), candidates)
        if picked is None:
            key = (table_name, tuple(candidates))
            if key not in self._reported_drift:
                self._reported_drift.add(key)
                logger.debug(
                    "No column among %s in upstream table %s", list(candidates), table_name
                )
        return picked

    async def resolve(self, fields: Sequence[FieldSpec]) -> dict[str, tuple[str, str] | None]:
        """
        Resolve each logical field to its (table, column), or None.

        This is the single place query construction learns which optional
        fields the current snapshot can supply.
        """
        resolved: dict[str, tuple[str, str] | None] = {}
        for field in fields:
            column = await self.pick_column(field.table, field.candidates)
            resolved[field.name] = (field.table, column) if column else None
        return resolved
