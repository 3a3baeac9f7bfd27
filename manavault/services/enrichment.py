"""
Ownership enrichment.

Search results are produced from the index store alone; owned quantities
live in the application store and are attached afterwards, summed over
every printing of each canonical card.
"""

from collections.abc import Collection, Sequence
from typing import Protocol

from manavault.models.card import OwnedQuantity
from manavault.services.search_engine import SearchEngine


class OwnershipStore(Protocol):
    """Per-printing ownership ledger."""

    async def get_quantities(self, printing_ids: Collection[str]) -> dict[str, OwnedQuantity]: ...

    async def adjust_quantity(
        self, printing_id: str, delta: int, foil: bool = False
    ) -> OwnedQuantity: ...


async def summarize_ownership(
    engine: SearchEngine,
    store: OwnershipStore,
    canonical_keys: Sequence[str],
) -> dict[str, OwnedQuantity]:
    """
    Owned quantities per canonical key.

    Every requested key is present in the result; keys with no owned
    printings map to OwnedQuantity().
    """
    printing_ids = await engine.printing_ids_for_keys(canonical_keys)
    all_ids = [pid for ids in printing_ids.values() for pid in ids]
    owned = await store.get_quantities(all_ids)

    totals: dict[str, OwnedQuantity] = {}
    for key in canonical_keys:
        total = OwnedQuantity()
        for printing_id in printing_ids.get(key, []):
            if printing_id in owned:
                total = total + owned[printing_id]
        totals[key] = total
    return totals
