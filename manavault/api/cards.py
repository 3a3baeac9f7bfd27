"""
Card lookup endpoints.

- GET  /cards/{canonical_key}               card detail with all printings
- POST /cards/batch                         several cards by key
- GET  /printings/{printing_id}/canonical   printing id -> canonical key
- GET  /sets/{set_code}/count               distinct cards printed in a set
"""

from fastapi import APIRouter, HTTPException, status
from pydantic import Field

from manavault.api.deps import OwnershipDep, RuntimeDep
from manavault.api.schemas import CamelModel, CardResponse, PrintingRefResponse
from manavault.services.enrichment import summarize_ownership

router = APIRouter(tags=["cards"])


class CardDetailResponse(CamelModel):
    card: CardResponse
    printings: list[PrintingRefResponse] = Field(
        default_factory=list,
        description="Newest first, then by set code",
    )


class CardBatchRequest(CamelModel):
    canonical_keys: list[str] = Field(..., max_length=500)


class CardBatchResponse(CamelModel):
    cards: list[CardResponse]


class CanonicalKeyResponse(CamelModel):
    printing_id: str
    canonical_key: str


class SetCountResponse(CamelModel):
    set_code: str
    card_count: int


@router.get("/cards/{canonical_key}", response_model=CardDetailResponse)
async def get_card(
    canonical_key: str,
    runtime: RuntimeDep,
    ownership: OwnershipDep,
) -> CardDetailResponse:
    """Canonical card and every printing grouped under its key."""
    card = await runtime.search.get_card(canonical_key)
    if card is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No card with key {canonical_key}",
        )

    printings = await runtime.search.printings_for(canonical_key)
    owned = await summarize_ownership(runtime.search, ownership, [canonical_key])
    return CardDetailResponse(
        card=CardResponse.from_card(card, owned[canonical_key]),
        printings=[PrintingRefResponse.from_ref(ref) for ref in printings],
    )


@router.post("/cards/batch", response_model=CardBatchResponse)
async def get_cards(
    request: CardBatchRequest,
    runtime: RuntimeDep,
    ownership: OwnershipDep,
) -> CardBatchResponse:
    """Cards for the requested keys in request order; unknown keys are skipped."""
    cards = await runtime.search.get_cards(request.canonical_keys)
    owned = await summarize_ownership(
        runtime.search, ownership, [card.canonical_key for card in cards]
    )
    return CardBatchResponse(
        cards=[CardResponse.from_card(card, owned[card.canonical_key]) for card in cards]
    )


@router.get("/printings/{printing_id}/canonical", response_model=CanonicalKeyResponse)
async def get_canonical_key(printing_id: str, runtime: RuntimeDep) -> CanonicalKeyResponse:
    """
    Resolve a printing id to its canonical key.

    Uses the built index when present, else computes the key from the
    upstream snapshot.
    """
    key = await runtime.resolver.resolve(printing_id)
    if key is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown printing {printing_id}",
        )
    return CanonicalKeyResponse(printing_id=printing_id, canonical_key=key)


@router.get("/sets/{set_code}/count", response_model=SetCountResponse)
async def count_set_cards(set_code: str, runtime: RuntimeDep) -> SetCountResponse:
    count = await runtime.search.count_cards_in_set(set_code)
    return SetCountResponse(set_code=set_code.upper(), card_count=count)
