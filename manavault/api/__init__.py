from manavault.api.cards import router as cards_router
from manavault.api.collection import router as collection_router
from manavault.api.health import router as health_router
from manavault.api.index import router as index_router
from manavault.api.search import router as search_router

__all__ = [
    "cards_router",
    "collection_router",
    "health_router",
    "index_router",
    "search_router",
]
