from manavault.db.database import (
    create_app_engine,
    create_session_factory,
    create_sqlite_engine,
    get_session,
    init_db,
)
from manavault.db.index_store import IndexStore
from manavault.db.operations import (
    IndexStatus,
    SqlOwnershipStore,
    adjust_quantity,
    get_index_status,
    get_quantities,
    mark_rebuild_complete,
    mark_rebuild_failed,
    mark_rebuild_started,
)

__all__ = [
    "IndexStatus",
    "IndexStore",
    "SqlOwnershipStore",
    "adjust_quantity",
    "create_app_engine",
    "create_session_factory",
    "create_sqlite_engine",
    "get_index_status",
    "get_quantities",
    "get_session",
    "init_db",
    "mark_rebuild_complete",
    "mark_rebuild_failed",
    "mark_rebuild_started",
]
