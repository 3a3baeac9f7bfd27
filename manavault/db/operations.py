"""
Application store operations.

Provides async functions for the ownership ledger (keyed by printing id)
and for the search index rebuild status record.
"""

from collections.abc import Collection
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.models.card import OwnedQuantity
from manavault.models.db import CardOwnershipDB, IndexStatusDB

# Single status row for the search index
INDEX_STATUS_ID = "search_index"


class IndexStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


# --- Ownership Operations ---


async def get_quantities(
    session: AsyncSession, printing_ids: Collection[str]
) -> dict[str, OwnedQuantity]:
    """
    Owned quantities for the given printings.

    Printings with no ownership row are omitted.
    """
    if not printing_ids:
        return {}
    result = await session.execute(
        select(CardOwnershipDB).where(CardOwnershipDB.printing_id.in_(list(printing_ids)))
    )
    return {
        row.printing_id: OwnedQuantity(quantity=row.quantity, foil_quantity=row.foil_quantity)
        for row in result.scalars()
    }


async def adjust_quantity(
    session: AsyncSession,
    printing_id: str,
    delta: int,
    foil: bool = False,
) -> OwnedQuantity:
    """
    Add `delta` copies (negative to remove) of one printing.

    Quantities never drop below zero. A row whose counts both reach zero
    is deleted.
    """
    ownership = await session.get(CardOwnershipDB, printing_id)
    current = (
        OwnedQuantity(quantity=ownership.quantity, foil_quantity=ownership.foil_quantity)
        if ownership is not None
        else OwnedQuantity()
    )

    if foil:
        owned = OwnedQuantity(
            quantity=current.quantity, foil_quantity=max(0, current.foil_quantity + delta)
        )
    else:
        owned = OwnedQuantity(
            quantity=max(0, current.quantity + delta), foil_quantity=current.foil_quantity
        )

    if owned.total == 0:
        if ownership is not None:
            await session.delete(ownership)
    elif ownership is None:
        session.add(
            CardOwnershipDB(
                printing_id=printing_id,
                quantity=owned.quantity,
                foil_quantity=owned.foil_quantity,
            )
        )
    else:
        ownership.quantity = owned.quantity
        ownership.foil_quantity = owned.foil_quantity

    await session.flush()
    return owned


class SqlOwnershipStore:
    """Ownership ledger backed by the application store."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_quantities(self, printing_ids: Collection[str]) -> dict[str, OwnedQuantity]:
        return await get_quantities(self._session, printing_ids)

    async def adjust_quantity(
        self, printing_id: str, delta: int, foil: bool = False
    ) -> OwnedQuantity:
        return await adjust_quantity(self._session, printing_id, delta, foil=foil)


# --- Index Status Operations ---


async def get_index_status(session: AsyncSession) -> IndexStatusDB | None:
    """Current rebuild status row, or None if no rebuild was ever recorded."""
    return await session.get(IndexStatusDB, INDEX_STATUS_ID)


async def _get_or_create_status(session: AsyncSession) -> IndexStatusDB:
    status = await get_index_status(session)
    if status is None:
        status = IndexStatusDB(id=INDEX_STATUS_ID, status=IndexStatus.IDLE.value)
        session.add(status)
    return status


async def mark_rebuild_started(session: AsyncSession) -> IndexStatusDB:
    """Record that a rebuild is running."""
    status = await _get_or_create_status(session)
    status.status = IndexStatus.RUNNING.value
    status.last_run_at = datetime.now(UTC)
    status.finished_at = None
    status.error = None
    await session.flush()
    return status


async def mark_rebuild_complete(
    session: AsyncSession, card_count: int, printing_count: int
) -> IndexStatusDB:
    """Record a successful rebuild and its counts."""
    status = await _get_or_create_status(session)
    status.status = IndexStatus.COMPLETE.value
    status.finished_at = datetime.now(UTC)
    status.card_count = card_count
    status.printing_count = printing_count
    status.error = None
    await session.flush()
    return status


async def mark_rebuild_failed(session: AsyncSession, error: str) -> IndexStatusDB:
    """Record a failed rebuild; counts of the last good build are kept."""
    status = await _get_or_create_status(session)
    status.status = IndexStatus.FAILED.value
    status.finished_at = datetime.now(UTC)
    status.error = error
    await session.flush()
    return status
