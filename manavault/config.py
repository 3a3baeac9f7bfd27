from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "ManaVault"
    debug: bool = False

    # Application store: ownership ledger and rebuild status
    database_url: str = "sqlite+aiosqlite:///./data/app/app.sqlite"

    # Read-only MTGJSON AllPrintings snapshot
    mtgjson_db_path: str = "./data/mtgjson/AllPrintings.sqlite"

    # Rebuildable search index (card_search, card_search_printings, card_search_fts)
    search_index_path: str = "./data/app/search.sqlite"

    search_default_limit: int = 50
    search_max_limit: int = 200

    # Log a progress line every N scanned printings during a rebuild
    rebuild_progress_interval: int = 5000


settings = Settings()


# =============================================================================
# INDEX BUILD LIMITS
# =============================================================================

# Printing refs are flushed to the open rebuild transaction in batches of this size
PRINTING_REF_BATCH_SIZE = 1000

# Canonical cards and search documents are inserted in batches of this size
CARD_BATCH_SIZE = 500
