"""
Parser for search queries.

Supports two inputs that produce the same SearchFilters shape:
- Query string: bare words, key:value facets, and mv comparisons
    lightning n:bolt o:"deal 3" t:instant c:r id:ur r:common set:lea mv<=3
- Structured parameters (from the HTTP query surface), merged on top

The string parser never raises. Anything it cannot interpret becomes a
free-text term, and if tokenizing itself fails the whole input is split on
whitespace into free-text terms.
"""

import logging
import re

from manavault.models.search import (
    COLOR_ORDER,
    COLORLESS,
    MULTICOLOR,
    NumericRange,
    SearchFilters,
    SortDirection,
    SortKey,
)

logger = logging.getLogger(__name__)

# A token is an optional prefix glued to a quoted phrase (o:"draw a card"),
# or any run of non-whitespace
TOKEN_PATTERN = re.compile(r'[^\s"]*"[^"]*"|\S+')

# mv=3, mv<3, mv<=3, mv>3, mv>=3 (decimals allowed)
MANA_VALUE_PATTERN = re.compile(r"^mv(<=|>=|=|<|>)(\d+(?:\.\d+)?)$", re.IGNORECASE)

# Strict comparisons become inclusive bounds shifted by this amount
STRICT_EPSILON = 0.0001

# Letters recognized in c: and id: values
QUERY_COLOR_LETTERS = frozenset((*COLOR_ORDER, COLORLESS))

# Letters recognized in structured color parameters (adds multicolor)
PARAM_COLOR_LETTERS = frozenset((*COLOR_ORDER, COLORLESS, MULTICOLOR))

# Legacy single-value sort parameter
LEGACY_SORTS: dict[str, tuple[SortKey, SortDirection]] = {
    "newest": (SortKey.RELEASE_DATE, SortDirection.DESC),
    "oldest": (SortKey.RELEASE_DATE, SortDirection.ASC),
    "mana": (SortKey.MANA_VALUE, SortDirection.ASC),
    "name": (SortKey.NAME, SortDirection.ASC),
}


def normalize_value(raw: str) -> str:
    """Strip whitespace and one pair of surrounding double quotes."""
    trimmed = raw.strip()
    if len(trimmed) >= 2 and trimmed.startswith('"') and trimmed.endswith('"'):
        return trimmed[1:-1].strip()
    return trimmed


def add_unique(values: list[str], value: str) -> None:
    if value and value not in values:
        values.append(value)


def parse_color_string(raw: str, allowed: frozenset[str] = QUERY_COLOR_LETTERS) -> list[str]:
    """
    Extract recognized color letters, case-insensitive, in first-seen order.

    "ur" -> ["U", "R"], "W,U" -> ["W", "U"], "xyz" -> []
    """
    colors: list[str] = []
    for char in raw.upper():
        if char in allowed and char not in colors:
            colors.append(char)
    return colors


def apply_mana_value_token(token: str, filters: SearchFilters) -> bool:
    """
    Apply an mv<OP><number> token to `filters`.

    Returns:
        True if the token was a mana value comparison
    """
    match = MANA_VALUE_PATTERN.match(token)
    if not match:
        return False

    operator, value = match.group(1), float(match.group(2))
    mana_value = filters.mana_value or NumericRange()
    if operator == "=":
        mana_value.eq = value
    elif operator == "<":
        mana_value.max = value - STRICT_EPSILON
    elif operator == "<=":
        mana_value.max = value
    elif operator == ">":
        mana_value.min = value + STRICT_EPSILON
    elif operator == ">=":
        mana_value.min = value
    filters.mana_value = mana_value
    return True


def _apply_token(token: str, filters: SearchFilters) -> None:
    if apply_mana_value_token(token, filters):
        return

    key, separator, raw_value = token.partition(":")
    if not separator or not key:
        add_unique(filters.text_terms, normalize_value(token))
        return

    key = key.lower()
    value = normalize_value(raw_value)

    if key in ("name", "n"):
        add_unique(filters.name_terms, value)
    elif key == "o":
        add_unique(filters.oracle_terms, value)
    elif key == "t":
        add_unique(filters.type_terms, value)
    elif key == "c":
        colors = parse_color_string(value)
        if colors:
            filters.colors = colors
    elif key == "id":
        colors = parse_color_string(value)
        if colors:
            filters.color_identity = colors
    elif key == "mv":
        apply_mana_value_token(f"mv={value}", filters)
    elif key == "r":
        if value:
            filters.rarities = filters.rarities or []
            add_unique(filters.rarities, value.lower())
    elif key == "set":
        if value:
            filters.set_codes = filters.set_codes or []
            add_unique(filters.set_codes, value.upper())
    else:
        add_unique(filters.text_terms, normalize_value(token))


def parse_search_query(text: str) -> SearchFilters:
    """
    Parse a compact query string into SearchFilters.

    Grammar:
        word            free-text term
        "two words"     one free-text term
        name:x / n:x    name term
        o:x             oracle text term
        t:x             type line term
        c:x / id:x      colors / color identity (letters from WUBRGC)
        r:x             rarity
        set:x           set code
        mv<OP>n         mana value, OP in =, <, <=, >, >=

    Never raises; unparseable input becomes free-text terms.
    """
    filters = SearchFilters()
    if not text or not text.strip():
        return filters

    try:
        for raw_token in TOKEN_PATTERN.findall(text):
            token = raw_token.strip()
            if token:
                _apply_token(token, filters)
    except (ValueError, TypeError, re.error) as e:
        logger.debug("Falling back to free-text for query %r: %s", text, e)
        return SearchFilters(text_terms=text.split())

    return filters


# --- Structured parameters ---


def parse_list(value: str | None) -> list[str]:
    """Split a comma-separated parameter, dropping blanks."""
    if not value:
        return []
    return [entry.strip() for entry in value.split(",") if entry.strip()]


def parse_number(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None


def to_terms(value: str | None) -> list[str]:
    """Whitespace-split a free-text parameter into terms."""
    if not value:
        return []
    return [entry for entry in value.split() if entry]


def _range(low: float | None, high: float | None) -> NumericRange | None:
    if low is None and high is None:
        return None
    return NumericRange(min=low, max=high)


def filters_from_params(
    *,
    q: str | None = None,
    name: str | None = None,
    oracle: str | None = None,
    type_line: str | None = None,
    mana_cost: str | None = None,
    colors: str | None = None,
    identity: str | None = None,
    rarity: str | None = None,
    sets: str | None = None,
    types: str | None = None,
    mv_min: str | None = None,
    mv_max: str | None = None,
    power_min: str | None = None,
    power_max: str | None = None,
    toughness_min: str | None = None,
    toughness_max: str | None = None,
    artist: str | None = None,
    flavor: str | None = None,
) -> SearchFilters:
    """
    Build SearchFilters from structured parameters, merged over the parsed `q`.

    Values are raw strings as received; unparseable numbers are ignored.
    """
    structured = SearchFilters(
        name_terms=to_terms(name),
        oracle_terms=to_terms(oracle),
        type_terms=to_terms(type_line),
        colors=parse_color_string(colors or "", PARAM_COLOR_LETTERS) or None,
        color_identity=parse_color_string(identity or "", PARAM_COLOR_LETTERS) or None,
        mana_value=_range(parse_number(mv_min), parse_number(mv_max)),
        mana_cost=mana_cost.strip() if mana_cost and mana_cost.strip() else None,
        rarities=[value.lower() for value in parse_list(rarity)] or None,
        set_codes=[value.upper() for value in parse_list(sets)] or None,
        card_types=[value.lower() for value in parse_list(types)] or None,
        power=_range(parse_number(power_min), parse_number(power_max)),
        toughness=_range(parse_number(toughness_min), parse_number(toughness_max)),
        artist=artist.strip() if artist and artist.strip() else None,
        flavor=flavor.strip() if flavor and flavor.strip() else None,
    )
    return parse_search_query(q or "").merge(structured)


def parse_sort(
    sort_key: str | None,
    sort_dir: str | None,
    legacy_sort: str | None = None,
) -> tuple[SortKey, SortDirection | None]:
    """
    Resolve sort parameters.

    A legacy `sort` value (newest, oldest, mana, name) wins when recognized.
    Unknown keys fall back to name; an unknown direction falls back to the
    key's default (returned as None).
    """
    if legacy_sort and legacy_sort in LEGACY_SORTS:
        return LEGACY_SORTS[legacy_sort]

    try:
        key = SortKey(sort_key) if sort_key else SortKey.NAME
    except ValueError:
        key = SortKey.NAME

    try:
        direction = SortDirection(sort_dir) if sort_dir else None
    except ValueError:
        direction = None

    return key, direction
