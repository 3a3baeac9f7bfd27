"""
Search Index Builder.

Rebuilds the index store from the upstream snapshot in one transaction:

    Idle -> Scanning -> Aggregating -> Writing -> Idle

Scanning streams every printing once, computes its canonical key, writes a
printing ref and offers the printing to the representative accumulator.
Aggregating materializes one canonical card per key. Writing bulk-inserts
the canonical cards and their search documents.

INVARIANTS:
1. The drop/recreate of all index tables and every insert share a single
   transaction; a failure anywhere rolls back to the previous index
2. Representative = greatest non-null release date; absent dates never
   replace a present one; ties keep the first printing seen
3. Two rebuilds from the same snapshot produce identical rows
4. Only one rebuild runs at a time per builder
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncConnection

from manavault.config import CARD_BATCH_SIZE, PRINTING_REF_BATCH_SIZE
from manavault.db.index_store import IndexStore, fts_table
from manavault.models.card import CanonicalCard, Printing
from manavault.models.db import CanonicalCardDB, PrintingRefDB
from manavault.models.failure import RebuildFailedError, RebuildInProgressError
from manavault.models.search import RARITY_RANK
from manavault.services.canonical_key import canonical_key, normalize_name
from manavault.source.printings import UpstreamSource
from manavault.source.values import parse_collector_number, parse_stat_value

logger = logging.getLogger(__name__)


class BuildPhase(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    AGGREGATING = "aggregating"
    WRITING = "writing"


@dataclass
class BuildStats:
    """Counters for one rebuild."""

    printing_count: int = 0
    card_count: int = 0
    duplicate_count: int = 0


def is_newer(candidate: Printing, current: Printing) -> bool:
    """
    True if `candidate` should replace `current` as representative.

    Strictly greater release date only; a missing date never wins.
    """
    if candidate.release_date is None:
        return False
    if current.release_date is None:
        return True
    return candidate.release_date > current.release_date


class RepresentativeAccumulator:
    """Tracks the current representative printing for each canonical key."""

    def __init__(self) -> None:
        self._by_key: dict[str, Printing] = {}

    def __len__(self) -> int:
        return len(self._by_key)

    def offer(self, key: str, printing: Printing) -> None:
        current = self._by_key.get(key)
        if current is None or is_newer(printing, current):
            self._by_key[key] = printing

    def representative(self, key: str) -> Printing | None:
        return self._by_key.get(key)

    def cards(self) -> list[CanonicalCard]:
        """One canonical card per key, ordered by key."""
        return [
            CanonicalCard.from_printing(key, self._by_key[key]) for key in sorted(self._by_key)
        ]


def card_row(card: CanonicalCard) -> dict[str, Any]:
    """Row for card_search, including the derived sort/filter columns."""
    return {
        "canonical_key": card.canonical_key,
        "representative_printing_id": card.representative_printing_id,
        "name": card.name,
        "normalized_name": normalize_name(card.name),
        "ascii_name": card.ascii_name,
        "mana_cost": card.mana_cost,
        "mana_value": card.mana_value,
        "type_line": card.type_line,
        "oracle_text": card.oracle_text,
        "colors": "".join(card.colors),
        "color_identity": "".join(card.color_identity),
        "color_count": len(card.colors),
        "rarity": card.rarity,
        "rarity_rank": RARITY_RANK.get(card.rarity or ""),
        "keywords": ",".join(card.keywords),
        "types": ",".join(card.types),
        "power": card.power,
        "toughness": card.toughness,
        "power_value": parse_stat_value(card.power),
        "toughness_value": parse_stat_value(card.toughness),
        "loyalty": card.loyalty,
        "artist": card.artist,
        "flavor_text": card.flavor_text,
        "collector_number": card.collector_number,
        "collector_number_value": parse_collector_number(card.collector_number),
        "latest_set_code": card.latest_set_code,
        "latest_release_date": card.latest_release_date,
    }


def search_document(card: CanonicalCard) -> dict[str, Any]:
    """Row for card_search_fts."""
    return {
        "canonical_key": card.canonical_key,
        "name": card.name,
        "type_line": card.type_line or "",
        "oracle_text": card.oracle_text or "",
    }


def printing_ref_row(key: str, printing: Printing) -> dict[str, Any]:
    """Row for card_search_printings."""
    return {
        "canonical_key": key,
        "printing_id": printing.printing_id,
        "set_code": printing.set_code,
        "release_date": printing.release_date,
    }


class IndexBuilder:
    """
    Owns write access to the index store.

    Usage:
        builder = IndexBuilder(source, index)
        stats = await builder.rebuild()
    """

    def __init__(
        self,
        source: UpstreamSource,
        index: IndexStore,
        progress_interval: int = 5000,
        ref_batch_size: int = PRINTING_REF_BATCH_SIZE,
        card_batch_size: int = CARD_BATCH_SIZE,
    ) -> None:
        self._source = source
        self._index = index
        self._progress_interval = max(1, progress_interval)
        self._ref_batch_size = ref_batch_size
        self._card_batch_size = card_batch_size
        self._lock = asyncio.Lock()
        self._phase = BuildPhase.IDLE

    @property
    def phase(self) -> BuildPhase:
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def rebuild(self) -> BuildStats:
        """
        Replace the index with a fresh build from the upstream snapshot.

        Returns:
            Counters for the completed build

        Raises:
            RebuildInProgressError: If another rebuild holds the builder
            RebuildFailedError: If anything failed; the previous index is intact
        """
        if self._lock.locked():
            raise RebuildInProgressError()

        async with self._lock:
            logger.info("Search index rebuild started")
            try:
                stats = await self._rebuild()
            except Exception as e:
                logger.error("Search index rebuild failed during %s: %s", self._phase.value, e)
                raise RebuildFailedError(e) from e
            finally:
                self._phase = BuildPhase.IDLE

        logger.info(
            "Search index rebuild complete: %d printings, %d cards",
            stats.printing_count,
            stats.card_count,
        )
        return stats

    async def _rebuild(self) -> BuildStats:
        stats = BuildStats()
        accumulator = RepresentativeAccumulator()

        async with self._index.engine.begin() as conn:
            await IndexStore.recreate_tables(conn)

            self._phase = BuildPhase.SCANNING
            await self._scan(conn, accumulator, stats)

            self._phase = BuildPhase.AGGREGATING
            cards = accumulator.cards()
            stats.card_count = len(cards)
            logger.info("Aggregated %d canonical cards", stats.card_count)

            self._phase = BuildPhase.WRITING
            await self._write_cards(conn, cards)

        return stats

    async def _scan(
        self,
        conn: AsyncConnection,
        accumulator: RepresentativeAccumulator,
        stats: BuildStats,
    ) -> None:
        seen: set[str] = set()
        pending: list[dict[str, Any]] = []

        async for printing in self._source.iter_printings():
            # Side-table joins can repeat a printing
            if printing.printing_id in seen:
                stats.duplicate_count += 1
                continue
            seen.add(printing.printing_id)

            key = canonical_key(printing)
            pending.append(printing_ref_row(key, printing))
            accumulator.offer(key, printing)
            stats.printing_count += 1

            if len(pending) >= self._ref_batch_size:
                await conn.execute(insert(PrintingRefDB.__table__), pending)
                pending = []

            if stats.printing_count % self._progress_interval == 0:
                logger.info("Scanned %d printings...", stats.printing_count)

        if pending:
            await conn.execute(insert(PrintingRefDB.__table__), pending)

        if stats.duplicate_count:
            logger.warning("Skipped %d duplicate printing rows", stats.duplicate_count)
        logger.info("Scanned %d printings", stats.printing_count)

    async def _write_cards(self, conn: AsyncConnection, cards: list[CanonicalCard]) -> None:
        for start in range(0, len(cards), self._card_batch_size):
            batch = cards[start : start + self._card_batch_size]
            await conn.execute(insert(CanonicalCardDB.__table__), [card_row(c) for c in batch])
            await conn.execute(insert(fts_table), [search_document(c) for c in batch])
        logger.info("Wrote %d canonical cards and search documents", len(cards))
