"""
Search engine over the index store.

Translates SearchFilters + SearchOptions into a single indexed SELECT:
- full-text: one FTS5 MATCH expression, present only when there are terms
- colors: colorless = empty, multicolor = 2+ colors, letters = all present
- numeric ranges: independent eq/min/max; NULL only excluded when filtered
- categorical: set membership (rarity on the card, set code on any printing)
- sort: requested key, nulls last, then name, set code and key as tie-breaks
- pagination: limit/offset

Every read goes through IndexStore.reader(), which raises
IndexUnavailableError when the index is not built or cannot be read, so
"not built" never looks like "no hits".
"""

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, exists, func, literal_column, or_, select
from sqlalchemy.engine import RowMapping

from manavault.db.index_store import FTS_TABLE_NAME, IndexStore, fts_table
from manavault.models.card import CanonicalCard, PrintingRef
from manavault.models.db import CanonicalCardDB, PrintingRefDB
from manavault.models.search import (
    COLOR_ORDER,
    COLORLESS,
    MULTICOLOR,
    NumericRange,
    SearchFilters,
    SearchOptions,
    SortDirection,
    SortKey,
)

logger = logging.getLogger(__name__)

# FTS5 column filters for per-field terms
FTS_COLUMN_PREFIXES = {
    "name_terms": "name",
    "oracle_terms": "oracle_text",
    "type_terms": "type_line",
}


# --- Full-text ---


def escape_fts_term(term: str) -> str:
    """
    Quote a term as an FTS5 prefix string.

    Embedded quotes are doubled; the result matches the term as a phrase
    with the last token as a prefix ("lightning bol" matches Lightning Bolt).
    """
    sanitized = term.replace('"', '""')
    return f'"{sanitized}"*'


def build_fts_query(filters: SearchFilters) -> str | None:
    """
    FTS5 MATCH expression for the term lists, or None if there are none.

    Per-field terms use column filters ({name} : "x"*); free-text terms
    match any indexed column. All clauses are ANDed.
    """
    parts: list[str] = []
    for attribute, fts_column in FTS_COLUMN_PREFIXES.items():
        for term in getattr(filters, attribute):
            if term.strip():
                parts.append(f"{fts_column} : {escape_fts_term(term.strip())}")
    for term in filters.text_terms:
        if term.strip():
            parts.append(escape_fts_term(term.strip()))
    return " AND ".join(parts) if parts else None


# --- Structured filters ---


def build_color_clause(
    colors_column: Any, count_column: Any | None, selected: Sequence[str] | None
) -> ColumnElement[bool] | None:
    """
    Color-set condition for one color column.

    C -> column is empty; M -> more than one color; letters -> every selected
    letter present. Requested sub-clauses are ORed together.
    """
    if not selected:
        return None

    letters = [color for color in COLOR_ORDER if color in selected]
    clauses: list[ColumnElement[bool]] = []

    if COLORLESS in selected:
        clauses.append(or_(colors_column.is_(None), colors_column == ""))
    if letters:
        clauses.append(and_(*(colors_column.contains(letter) for letter in letters)))
    if MULTICOLOR in selected:
        if count_column is not None:
            clauses.append(count_column > 1)
        else:
            clauses.append(func.length(colors_column) > 1)

    if not clauses:
        return None
    return clauses[0] if len(clauses) == 1 else or_(*clauses)


def build_range_clauses(column: Any, bounds: NumericRange | None) -> list[ColumnElement[bool]]:
    if bounds is None:
        return []
    clauses: list[ColumnElement[bool]] = []
    if bounds.eq is not None:
        clauses.append(column == bounds.eq)
    if bounds.min is not None:
        clauses.append(column >= bounds.min)
    if bounds.max is not None:
        clauses.append(column <= bounds.max)
    return clauses


def build_where_clauses(filters: SearchFilters) -> list[ColumnElement[bool]]:
    """Every non-full-text condition implied by `filters`."""
    card = CanonicalCardDB
    clauses: list[ColumnElement[bool]] = []

    color_clause = build_color_clause(card.colors, card.color_count, filters.colors)
    if color_clause is not None:
        clauses.append(color_clause)

    identity_clause = build_color_clause(card.color_identity, None, filters.color_identity)
    if identity_clause is not None:
        clauses.append(identity_clause)

    clauses.extend(build_range_clauses(card.mana_value, filters.mana_value))
    clauses.extend(build_range_clauses(card.power_value, filters.power))
    clauses.extend(build_range_clauses(card.toughness_value, filters.toughness))

    if filters.mana_cost:
        clauses.append(card.mana_cost.contains(filters.mana_cost))

    if filters.rarities:
        clauses.append(card.rarity.in_([rarity.lower() for rarity in filters.rarities]))

    if filters.set_codes:
        codes = [code.upper() for code in filters.set_codes]
        clauses.append(
            exists().where(
                PrintingRefDB.canonical_key == card.canonical_key,
                PrintingRefDB.set_code.in_(codes),
            )
        )

    if filters.card_types:
        clauses.append(or_(*(card.type_line.icontains(t) for t in filters.card_types)))

    if filters.artist:
        clauses.append(card.artist.icontains(filters.artist))

    if filters.flavor:
        clauses.append(card.flavor_text.icontains(filters.flavor))

    return clauses


# --- Sorting ---


def _directed(column: Any, direction: SortDirection) -> Any:
    ordered = column.desc() if direction == SortDirection.DESC else column.asc()
    return ordered.nulls_last()


def build_order_by(key: SortKey, direction: SortDirection) -> list[Any]:
    """
    ORDER BY for a sort key.

    Nulls sort last in both directions. Name ascending, then set code, then
    canonical key always follow, so equal primary keys order the same way
    on every request.
    """
    card = CanonicalCardDB
    primary: list[Any]

    if key == SortKey.RELEASE_DATE:
        primary = [_directed(card.latest_release_date, direction)]
    elif key == SortKey.SET_NUMBER:
        primary = [
            _directed(card.latest_set_code, direction),
            _directed(card.collector_number_value, direction),
            _directed(card.collector_number, direction),
        ]
    elif key == SortKey.RARITY:
        primary = [_directed(card.rarity_rank, direction)]
    elif key == SortKey.COLOR:
        primary = [_directed(card.color_count, direction), _directed(card.colors, direction)]
    elif key == SortKey.MANA_VALUE:
        primary = [_directed(card.mana_value, direction)]
    elif key == SortKey.POWER:
        primary = [_directed(card.power_value, direction)]
    elif key == SortKey.TOUGHNESS:
        primary = [_directed(card.toughness_value, direction)]
    elif key == SortKey.ARTIST:
        primary = [_directed(card.artist, direction)]
    else:
        primary = [_directed(card.name, direction)]

    tie_breaks = [
        card.name.asc(),
        card.latest_set_code.asc().nulls_last(),
        card.canonical_key.asc(),
    ]
    return [*primary, *tie_breaks]


def build_search_statement(filters: SearchFilters, options: SearchOptions) -> Select[Any]:
    """The single SELECT that answers a search request."""
    stmt = select(CanonicalCardDB.__table__)

    fts_query = build_fts_query(filters)
    if fts_query:
        stmt = stmt.join(fts_table, fts_table.c.canonical_key == CanonicalCardDB.canonical_key)
        stmt = stmt.where(literal_column(FTS_TABLE_NAME).match(fts_query))

    clauses = build_where_clauses(filters)
    if clauses:
        stmt = stmt.where(*clauses)

    return (
        stmt.order_by(*build_order_by(options.sort_key, options.direction))
        .limit(max(0, options.limit))
        .offset(max(0, options.offset))
    )


# --- Row mapping ---


def _split(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(entry for entry in value.split(",") if entry)


def card_from_row(row: RowMapping) -> CanonicalCard:
    return CanonicalCard(
        canonical_key=row["canonical_key"],
        representative_printing_id=row["representative_printing_id"],
        name=row["name"],
        ascii_name=row["ascii_name"],
        mana_cost=row["mana_cost"],
        mana_value=row["mana_value"],
        type_line=row["type_line"],
        oracle_text=row["oracle_text"],
        colors=tuple(row["colors"] or ""),
        color_identity=tuple(row["color_identity"] or ""),
        rarity=row["rarity"],
        keywords=_split(row["keywords"]),
        types=_split(row["types"]),
        power=row["power"],
        toughness=row["toughness"],
        loyalty=row["loyalty"],
        artist=row["artist"],
        flavor_text=row["flavor_text"],
        collector_number=row["collector_number"],
        latest_set_code=row["latest_set_code"],
        latest_release_date=row["latest_release_date"],
    )


class SearchEngine:
    """
    Read-only queries against the index store.

    Stateless apart from the store handle; safe to share across requests.
    """

    def __init__(self, index: IndexStore) -> None:
        self._index = index

    async def search(
        self, filters: SearchFilters, options: SearchOptions | None = None
    ) -> list[CanonicalCard]:
        """
        Cards matching `filters`, sorted and paginated.

        Raises:
            IndexUnavailableError: If the index is not built or cannot be read
        """
        options = options or SearchOptions()
        stmt = build_search_statement(filters, options)
        async with self._index.reader() as conn:
            result = await conn.execute(stmt)
            rows = result.mappings().all()
        return [card_from_row(row) for row in rows]

    async def get_card(self, canonical_key: str) -> CanonicalCard | None:
        """The canonical card for a key (its representative's fields)."""
        cards = await self.get_cards([canonical_key])
        return cards[0] if cards else None

    async def get_cards(self, canonical_keys: Sequence[str]) -> list[CanonicalCard]:
        """Canonical cards for several keys, in the order given; unknown keys are skipped."""
        if not canonical_keys:
            return []
        async with self._index.reader() as conn:
            result = await conn.execute(
                select(CanonicalCardDB.__table__).where(
                    CanonicalCardDB.canonical_key.in_(list(canonical_keys))
                )
            )
            by_key = {row["canonical_key"]: card_from_row(row) for row in result.mappings()}
        return [by_key[key] for key in canonical_keys if key in by_key]

    async def printings_for(self, canonical_key: str) -> list[PrintingRef]:
        """All printings of a card, newest first, then by set code."""
        async with self._index.reader() as conn:
            result = await conn.execute(
                select(PrintingRefDB.__table__)
                .where(PrintingRefDB.canonical_key == canonical_key)
                .order_by(
                    PrintingRefDB.release_date.desc().nulls_last(),
                    PrintingRefDB.set_code.asc().nulls_last(),
                    PrintingRefDB.printing_id.asc(),
                )
            )
            return [
                PrintingRef(
                    canonical_key=row["canonical_key"],
                    printing_id=row["printing_id"],
                    set_code=row["set_code"],
                    release_date=row["release_date"],
                )
                for row in result.mappings()
            ]

    async def printing_ids_for_keys(self, canonical_keys: Sequence[str]) -> dict[str, list[str]]:
        """Printing ids per canonical key (keys with no printings are omitted)."""
        if not canonical_keys:
            return {}
        async with self._index.reader() as conn:
            result = await conn.execute(
                select(PrintingRefDB.canonical_key, PrintingRefDB.printing_id)
                .where(PrintingRefDB.canonical_key.in_(list(canonical_keys)))
                .order_by(PrintingRefDB.canonical_key, PrintingRefDB.printing_id)
            )
            grouped: dict[str, list[str]] = {}
            for key, printing_id in result:
                grouped.setdefault(key, []).append(printing_id)
        return grouped

    async def count_cards_in_set(self, set_code: str) -> int:
        """Number of distinct canonical cards with a printing in `set_code`."""
        async with self._index.reader() as conn:
            result = await conn.execute(
                select(func.count(PrintingRefDB.canonical_key.distinct())).where(
                    PrintingRefDB.set_code == set_code.upper()
                )
            )
            return int(result.scalar_one())
