from manavault.models.card import CanonicalCard, OwnedQuantity, Printing, PrintingRef
from manavault.models.failure import (
    FailureDetail,
    FailureKind,
    FailureResponse,
    IndexUnavailableError,
    KnownError,
    RebuildFailedError,
    RebuildInProgressError,
)
from manavault.models.search import (
    DEFAULT_SORT_DIRECTION,
    NumericRange,
    SearchFilters,
    SearchOptions,
    SortDirection,
    SortKey,
)

__all__ = [
    "DEFAULT_SORT_DIRECTION",
    "CanonicalCard",
    "FailureDetail",
    "FailureKind",
    "FailureResponse",
    "IndexUnavailableError",
    "KnownError",
    "NumericRange",
    "OwnedQuantity",
    "Printing",
    "PrintingRef",
    "RebuildFailedError",
    "RebuildInProgressError",
    "SearchFilters",
    "SearchOptions",
    "SortDirection",
    "SortKey",
]
