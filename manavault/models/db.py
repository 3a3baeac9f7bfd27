"""
SQLAlchemy ORM models for persistent storage.

Two independent metadata trees:
- Base: the application store (ownership ledger, rebuild status)
- IndexBase: the search index store, dropped and recreated by every rebuild

The full-text table of the index store is an FTS5 virtual table and is
managed by manavault.db.index_store, not by the ORM.
"""

from datetime import datetime

from sqlalchemy import (
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for application store models."""

    pass


class IndexBase(DeclarativeBase):
    """Base class for search index store models."""

    pass


# --- Application store ---


class CardOwnershipDB(Base):
    """
    Owned copies of one printing.

    Keyed by printing id so ownership survives index rebuilds; totals per
    logical card are summed across the card's printings at read time.
    """

    __tablename__ = "card_ownership"

    printing_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    foil_quantity: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<CardOwnershipDB(printing={self.printing_id}, qty={self.quantity}, "
            f"foil={self.foil_quantity})>"
        )


class IndexStatusDB(Base):
    """
    Status of the most recent search index rebuild.

    Lives in the application store so it stays readable while the index
    store itself is being replaced.
    """

    __tablename__ = "index_status"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    status: Mapped[str] = mapped_column(String(16), default="idle")
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    card_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    printing_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<IndexStatusDB(status={self.status}, last_run_at={self.last_run_at})>"


# --- Search index store ---


class CanonicalCardDB(IndexBase):
    """
    One row per canonical key: the representative printing's display fields.

    Derived columns (normalized_name, color_count, rarity_rank, *_value)
    exist only to make filters and sorts indexable.
    """

    __tablename__ = "card_search"
    __table_args__ = (
        Index("ix_card_search_name", "name"),
        Index("ix_card_search_mana_value", "mana_value"),
        Index("ix_card_search_rarity", "rarity"),
        Index("ix_card_search_latest_set_code", "latest_set_code"),
        Index("ix_card_search_latest_release_date", "latest_release_date"),
    )

    canonical_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    representative_printing_id: Mapped[str] = mapped_column(String(64))
    name: Mapped[str] = mapped_column(Text)
    normalized_name: Mapped[str] = mapped_column(Text)
    ascii_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    mana_cost: Mapped[str | None] = mapped_column(Text, nullable=True)
    mana_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    type_line: Mapped[str | None] = mapped_column(Text, nullable=True)
    oracle_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    # WUBRG-ordered letter strings; "" for colorless
    colors: Mapped[str] = mapped_column(String(5), default="")
    color_identity: Mapped[str] = mapped_column(String(5), default="")
    color_count: Mapped[int] = mapped_column(Integer, default=0)

    rarity: Mapped[str | None] = mapped_column(String(16), nullable=True)
    rarity_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Comma-joined lists
    keywords: Mapped[str] = mapped_column(Text, default="")
    types: Mapped[str] = mapped_column(Text, default="")

    power: Mapped[str | None] = mapped_column(String(16), nullable=True)
    toughness: Mapped[str | None] = mapped_column(String(16), nullable=True)
    power_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    toughness_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    loyalty: Mapped[str | None] = mapped_column(String(16), nullable=True)
    artist: Mapped[str | None] = mapped_column(Text, nullable=True)
    flavor_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    collector_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    collector_number_value: Mapped[int | None] = mapped_column(Integer, nullable=True)

    latest_set_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    latest_release_date: Mapped[str | None] = mapped_column(String(10), nullable=True)

    def __repr__(self) -> str:
        return f"<CanonicalCardDB(key={self.canonical_key}, name={self.name})>"


class PrintingRefDB(IndexBase):
    """Membership of one printing in one canonical card."""

    __tablename__ = "card_search_printings"
    __table_args__ = (
        Index("ix_card_search_printings_printing_id", "printing_id"),
        Index("ix_card_search_printings_set_code", "set_code"),
    )

    canonical_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    printing_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    set_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(10), nullable=True)

    def __repr__(self) -> str:
        return f"<PrintingRefDB(key={self.canonical_key}, printing={self.printing_id})>"
