"""
Canonical Key Resolution.

Groups printings into logical cards.

INVARIANTS:
1. canonical_key() is pure; the bulk rebuild and the single-printing lookup
   both call it, so the same printing always gets the same key
2. Oracle identifiers win, in fixed priority order:
   scryfallOracleId (identifiers table) > oracleId (identifiers table)
   > oracleId (cards table)
3. Without any identifier the key is "<normalized name>::<layout>::<side>"

The fallback composite can merge unrelated printings that share a name,
layout and side but carry no identifier. That is accepted as a known
approximation.
"""

import logging
import re

from sqlalchemy import select

from manavault.db.index_store import IndexStore
from manavault.models.card import Printing
from manavault.models.db import PrintingRefDB
from manavault.models.failure import IndexUnavailableError
from manavault.source.printings import UpstreamSchemaError, UpstreamSource

logger = logging.getLogger(__name__)

NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")

DEFAULT_LAYOUT = "unknown"
DEFAULT_SIDE = "front"
KEY_SEPARATOR = "::"


def normalize_name(value: str) -> str:
    """
    Lower-case, collapse non-alphanumeric runs to "-", trim hyphens.

    "Lightning Bolt" -> "lightning-bolt"
    "LIGHTNING BOLT!!" -> "lightning-bolt"

    A name with no alphanumerics at all normalizes to its trimmed lower-case
    form rather than to an empty string.
    """
    trimmed = value.strip().lower()
    normalized = NON_ALPHANUMERIC.sub("-", trimmed).strip("-")
    return normalized or trimmed


def oracle_identity(printing: Printing) -> str | None:
    """First non-empty oracle identifier in priority order, or None."""
    for candidate in (
        printing.scryfall_oracle_id,
        printing.identifier_oracle_id,
        printing.card_oracle_id,
    ):
        if candidate is not None and str(candidate).strip():
            return str(candidate).strip()
    return None


def canonical_key(printing: Printing) -> str:
    """
    Compute the logical-card key for a printing.

    Args:
        printing: Any printing; only identity fields are read

    Returns:
        The oracle identifier if present, else the name/layout/side composite
    """
    identity = oracle_identity(printing)
    if identity:
        return identity

    name = normalize_name(printing.ascii_name or printing.name or printing.printing_id)
    layout = (printing.layout or "").strip().lower() or DEFAULT_LAYOUT
    side = (printing.side or "").strip().lower() or DEFAULT_SIDE
    return KEY_SEPARATOR.join((name, layout, side))


class CanonicalKeyResolver:
    """
    Resolves a single known printing id to its canonical key.

    Consults the built index first (the key it stored during the last
    rebuild), then falls back to reading the printing from the upstream
    snapshot and computing the key with canonical_key().
    """

    def __init__(self, index: IndexStore, source: UpstreamSource) -> None:
        self._index = index
        self._source = source

    async def lookup_indexed(self, printing_id: str) -> str | None:
        """Key recorded for `printing_id` by the last rebuild, or None."""
        try:
            async with self._index.reader() as conn:
                result = await conn.execute(
                    select(PrintingRefDB.canonical_key)
                    .where(PrintingRefDB.printing_id == printing_id)
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except IndexUnavailableError:
            return None

    async def resolve(self, printing_id: str) -> str | None:
        """
        Canonical key for `printing_id`.

        Returns:
            The key, or None if the printing is unknown to both the index
            and the upstream snapshot
        """
        indexed = await self.lookup_indexed(printing_id)
        if indexed is not None:
            return indexed

        try:
            printing = await self._source.fetch_printing(printing_id)
        except UpstreamSchemaError as e:
            logger.warning("Cannot resolve %s from upstream: %s", printing_id, e)
            return None
        if printing is None:
            logger.debug("Printing %s not found upstream", printing_id)
            return None
        return canonical_key(printing)
