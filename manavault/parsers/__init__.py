from manavault.parsers.search_query import (
    filters_from_params,
    parse_color_string,
    parse_search_query,
    parse_sort,
)

__all__ = [
    "filters_from_params",
    "parse_color_string",
    "parse_search_query",
    "parse_sort",
]
