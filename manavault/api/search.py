"""
Search API endpoint.

GET /search accepts the compact query string `q` and structured filters,
merged into one SearchFilters, plus sort and pagination parameters.
Results carry owned quantities summed over each card's printings.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from manavault.api.deps import OwnershipDep, RuntimeDep, SettingsDep
from manavault.api.schemas import CamelModel, CardResponse
from manavault.models.search import SearchOptions, SortDirection, SortKey
from manavault.parsers.search_query import filters_from_params, parse_sort
from manavault.services.enrichment import summarize_ownership

router = APIRouter(tags=["search"])


class SearchMeta(CamelModel):
    sort_key: SortKey
    sort_dir: SortDirection
    limit: int
    offset: int


class SearchResponse(CamelModel):
    """One page of results. Callers page until an empty page is returned."""

    results: list[CardResponse]
    meta: SearchMeta


OptionalParam = Annotated[str | None, Query()]


@router.get("/search", response_model=SearchResponse)
async def search_cards(
    runtime: RuntimeDep,
    app_settings: SettingsDep,
    ownership: OwnershipDep,
    q: OptionalParam = None,
    name: OptionalParam = None,
    oracle: OptionalParam = None,
    type_line: Annotated[str | None, Query(alias="type")] = None,
    mana_cost: Annotated[str | None, Query(alias="manaCost")] = None,
    colors: OptionalParam = None,
    identity: OptionalParam = None,
    rarity: OptionalParam = None,
    sets: Annotated[str | None, Query(alias="set")] = None,
    types: OptionalParam = None,
    mv_min: Annotated[str | None, Query(alias="mvMin")] = None,
    mv_max: Annotated[str | None, Query(alias="mvMax")] = None,
    power_min: Annotated[str | None, Query(alias="powerMin")] = None,
    power_max: Annotated[str | None, Query(alias="powerMax")] = None,
    toughness_min: Annotated[str | None, Query(alias="toughnessMin")] = None,
    toughness_max: Annotated[str | None, Query(alias="toughnessMax")] = None,
    artist: OptionalParam = None,
    flavor: OptionalParam = None,
    sort: OptionalParam = None,
    sort_key: Annotated[str | None, Query(alias="sortKey")] = None,
    sort_dir: Annotated[str | None, Query(alias="sortDir")] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> SearchResponse:
    """
    Search canonical cards.

    Returns 503 with kind `index_unavailable` if the index has not been
    built, so an unbuilt index is never reported as zero results.
    """
    filters = filters_from_params(
        q=q,
        name=name,
        oracle=oracle,
        type_line=type_line,
        mana_cost=mana_cost,
        colors=colors,
        identity=identity,
        rarity=rarity,
        sets=sets,
        types=types,
        mv_min=mv_min,
        mv_max=mv_max,
        power_min=power_min,
        power_max=power_max,
        toughness_min=toughness_min,
        toughness_max=toughness_max,
        artist=artist,
        flavor=flavor,
    )
    key, direction = parse_sort(sort_key, sort_dir, legacy_sort=sort)
    options = SearchOptions(
        limit=min(limit or app_settings.search_default_limit, app_settings.search_max_limit),
        offset=offset,
        sort_key=key,
        sort_dir=direction,
    )

    cards = await runtime.search.search(filters, options)
    owned = await summarize_ownership(
        runtime.search, ownership, [card.canonical_key for card in cards]
    )

    return SearchResponse(
        results=[CardResponse.from_card(card, owned.get(card.canonical_key)) for card in cards],
        meta=SearchMeta(
            sort_key=options.sort_key,
            sort_dir=options.direction,
            limit=options.limit,
            offset=options.offset,
        ),
    )
