"""
Search filter and sort models.

SearchFilters is produced by the query parser (from a query string, from
structured parameters, or both merged) and consumed by the search engine.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

# Pseudo-colors accepted by color filters in addition to WUBRG
COLORLESS = "C"
MULTICOLOR = "M"

# Canonical color order used for storage and display
COLOR_ORDER = ("W", "U", "B", "R", "G")


@dataclass
class NumericRange:
    """
    Inclusive numeric bounds for one field.

    Strict bounds (mv<3) are represented as epsilon-adjusted inclusive bounds.
    """

    eq: float | None = None
    min: float | None = None
    max: float | None = None

    def merged(self, other: "NumericRange | None") -> "NumericRange":
        """Return a range with `other`'s bounds overriding this one's where set."""
        if other is None:
            return replace(self)
        return NumericRange(
            eq=other.eq if other.eq is not None else self.eq,
            min=other.min if other.min is not None else self.min,
            max=other.max if other.max is not None else self.max,
        )


@dataclass
class SearchFilters:
    """
    Everything a search can constrain.

    Term lists feed the full-text condition. None means "no filter" for the
    optional facets; an empty list is treated the same way.
    """

    name_terms: list[str] = field(default_factory=list)
    oracle_terms: list[str] = field(default_factory=list)
    type_terms: list[str] = field(default_factory=list)
    text_terms: list[str] = field(default_factory=list)
    colors: list[str] | None = None
    color_identity: list[str] | None = None
    mana_value: NumericRange | None = None
    mana_cost: str | None = None
    rarities: list[str] | None = None
    set_codes: list[str] | None = None
    card_types: list[str] | None = None
    power: NumericRange | None = None
    toughness: NumericRange | None = None
    artist: str | None = None
    flavor: str | None = None

    @property
    def has_text_terms(self) -> bool:
        return bool(self.name_terms or self.oracle_terms or self.type_terms or self.text_terms)

    def merge(self, other: "SearchFilters") -> "SearchFilters":
        """
        Combine two filter sets.

        Term lists and categorical lists are unioned (order preserved).
        For single-valued facets and ranges, `other` wins where it is set.
        """

        def union(left: list[str] | None, right: list[str] | None) -> list[str] | None:
            if not left and not right:
                return None
            merged: list[str] = []
            for value in [*(left or []), *(right or [])]:
                if value not in merged:
                    merged.append(value)
            return merged

        def merge_range(
            left: NumericRange | None, right: NumericRange | None
        ) -> NumericRange | None:
            if left is None:
                return right
            return left.merged(right)

        return SearchFilters(
            name_terms=union(self.name_terms, other.name_terms) or [],
            oracle_terms=union(self.oracle_terms, other.oracle_terms) or [],
            type_terms=union(self.type_terms, other.type_terms) or [],
            text_terms=union(self.text_terms, other.text_terms) or [],
            colors=other.colors or self.colors,
            color_identity=other.color_identity or self.color_identity,
            mana_value=merge_range(self.mana_value, other.mana_value),
            mana_cost=other.mana_cost or self.mana_cost,
            rarities=union(self.rarities, other.rarities),
            set_codes=union(self.set_codes, other.set_codes),
            card_types=union(self.card_types, other.card_types),
            power=merge_range(self.power, other.power),
            toughness=merge_range(self.toughness, other.toughness),
            artist=other.artist or self.artist,
            flavor=other.flavor or self.flavor,
        )


class SortKey(str, Enum):
    """Sortable result columns."""

    NAME = "name"
    RELEASE_DATE = "releaseDate"
    SET_NUMBER = "setNumber"
    RARITY = "rarity"
    COLOR = "color"
    MANA_VALUE = "manaValue"
    POWER = "power"
    TOUGHNESS = "toughness"
    ARTIST = "artist"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


DEFAULT_SORT_DIRECTION: dict[SortKey, SortDirection] = {
    SortKey.NAME: SortDirection.ASC,
    SortKey.RELEASE_DATE: SortDirection.DESC,
    SortKey.SET_NUMBER: SortDirection.ASC,
    SortKey.RARITY: SortDirection.ASC,
    SortKey.COLOR: SortDirection.ASC,
    SortKey.MANA_VALUE: SortDirection.ASC,
    SortKey.POWER: SortDirection.DESC,
    SortKey.TOUGHNESS: SortDirection.DESC,
    SortKey.ARTIST: SortDirection.ASC,
}

# Rarity rank used by the rarity sort; unknown rarities sort last
RARITY_RANK: dict[str, int] = {
    "common": 1,
    "uncommon": 2,
    "rare": 3,
    "mythic": 4,
    "special": 5,
    "bonus": 6,
}


@dataclass(frozen=True, slots=True)
class SearchOptions:
    """Sort and pagination for one search request."""

    limit: int = 50
    offset: int = 0
    sort_key: SortKey = SortKey.NAME
    sort_dir: SortDirection | None = None

    @property
    def direction(self) -> SortDirection:
        """Requested direction, or the sort key's default."""
        return self.sort_dir or DEFAULT_SORT_DIRECTION[self.sort_key]
