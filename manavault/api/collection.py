"""
Collection API endpoints.

Owned quantities are keyed by printing id, so they survive index rebuilds.
"""

from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import Field

from manavault.api.deps import OwnershipDep
from manavault.api.schemas import CamelModel

router = APIRouter(prefix="/collection", tags=["collection"])


class OwnedQuantityResponse(CamelModel):
    printing_id: str
    quantity: int = 0
    foil_quantity: int = 0


class CollectionResponse(CamelModel):
    """Owned quantities for the requested printings (unowned ones omitted)."""

    printings: list[OwnedQuantityResponse] = Field(default_factory=list)


class AdjustRequest(CamelModel):
    delta: int = Field(
        ...,
        description="Copies to add; negative to remove. Totals never go below zero.",
        examples=[1, -1],
    )
    foil: bool = False


@router.get("", response_model=CollectionResponse)
async def get_owned(
    ownership: OwnershipDep,
    printing_ids: Annotated[list[str] | None, Query(alias="printingId")] = None,
) -> CollectionResponse:
    quantities = await ownership.get_quantities(printing_ids or [])
    return CollectionResponse(
        printings=[
            OwnedQuantityResponse(
                printing_id=printing_id,
                quantity=owned.quantity,
                foil_quantity=owned.foil_quantity,
            )
            for printing_id, owned in sorted(quantities.items())
        ]
    )


@router.post("/{printing_id}/adjust", response_model=OwnedQuantityResponse)
async def adjust_owned(
    printing_id: str,
    request: AdjustRequest,
    ownership: OwnershipDep,
) -> OwnedQuantityResponse:
    """Add or remove copies of one printing."""
    owned = await ownership.adjust_quantity(printing_id, request.delta, foil=request.foil)
    return OwnedQuantityResponse(
        printing_id=printing_id,
        quantity=owned.quantity,
        foil_quantity=owned.foil_quantity,
    )
