"""
ManaVault services.

Canonical key resolution, index building and search over the index store.
"""

from manavault.services.canonical_key import (
    CanonicalKeyResolver,
    canonical_key,
    normalize_name,
)
from manavault.services.enrichment import OwnershipStore, summarize_ownership
from manavault.services.index_builder import BuildStats, IndexBuilder
from manavault.services.rebuild import RebuildCoordinator
from manavault.services.search_engine import SearchEngine

__all__ = [
    "BuildStats",
    "CanonicalKeyResolver",
    "IndexBuilder",
    "OwnershipStore",
    "RebuildCoordinator",
    "SearchEngine",
    "canonical_key",
    "normalize_name",
    "summarize_ownership",
]
