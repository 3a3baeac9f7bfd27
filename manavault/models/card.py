"""
Card identity models.

INVARIANTS:
- Printing is an immutable snapshot of one upstream row (one card in one set)
- CanonicalCard is derived from exactly one representative Printing
- Every CanonicalCard has at least one PrintingRef, and its
  representative_printing_id is one of them
- All models are frozen (immutable after construction)
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Printing:
    """
    One physical edition of a card, as read from the upstream snapshot.

    Any field the snapshot does not carry is None (or empty for sequences).

    Attributes:
        printing_id: Source-assigned unique identifier (MTGJSON uuid)
        scryfall_oracle_id: Oracle id from the identifiers side table
        identifier_oracle_id: Secondary oracle id from the identifiers side table
        card_oracle_id: Oracle id embedded in the cards table itself
        colors: Color letters in WUBRG order
        release_date: ISO date string (YYYY-MM-DD) or None
    """

    printing_id: str
    name: str
    ascii_name: str | None = None
    set_code: str | None = None
    release_date: str | None = None
    rarity: str | None = None
    mana_cost: str | None = None
    mana_value: float | None = None
    type_line: str | None = None
    oracle_text: str | None = None
    colors: tuple[str, ...] = ()
    color_identity: tuple[str, ...] = ()
    layout: str | None = None
    side: str | None = None
    keywords: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    power: str | None = None
    toughness: str | None = None
    loyalty: str | None = None
    artist: str | None = None
    flavor_text: str | None = None
    collector_number: str | None = None
    scryfall_oracle_id: str | None = None
    identifier_oracle_id: str | None = None
    card_oracle_id: str | None = None


@dataclass(frozen=True, slots=True)
class CanonicalCard:
    """
    One logical card: display fields copied from its representative printing.

    latest_set_code and latest_release_date are the representative's, since
    the representative is the most recently released printing.
    """

    canonical_key: str
    representative_printing_id: str
    name: str
    ascii_name: str | None = None
    mana_cost: str | None = None
    mana_value: float | None = None
    type_line: str | None = None
    oracle_text: str | None = None
    colors: tuple[str, ...] = ()
    color_identity: tuple[str, ...] = ()
    rarity: str | None = None
    keywords: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    power: str | None = None
    toughness: str | None = None
    loyalty: str | None = None
    artist: str | None = None
    flavor_text: str | None = None
    collector_number: str | None = None
    latest_set_code: str | None = None
    latest_release_date: str | None = None

    @classmethod
    def from_printing(cls, canonical_key: str, printing: Printing) -> "CanonicalCard":
        """Denormalize a representative printing into a canonical card."""
        return cls(
            canonical_key=canonical_key,
            representative_printing_id=printing.printing_id,
            name=printing.name,
            ascii_name=printing.ascii_name,
            mana_cost=printing.mana_cost,
            mana_value=printing.mana_value,
            type_line=printing.type_line,
            oracle_text=printing.oracle_text,
            colors=printing.colors,
            color_identity=printing.color_identity,
            rarity=printing.rarity,
            keywords=printing.keywords,
            types=printing.types,
            power=printing.power,
            toughness=printing.toughness,
            loyalty=printing.loyalty,
            artist=printing.artist,
            flavor_text=printing.flavor_text,
            collector_number=printing.collector_number,
            latest_set_code=printing.set_code,
            latest_release_date=printing.release_date,
        )


@dataclass(frozen=True, slots=True)
class PrintingRef:
    """One (canonical key, printing) membership row."""

    canonical_key: str
    printing_id: str
    set_code: str | None = None
    release_date: str | None = None


@dataclass(frozen=True, slots=True)
class OwnedQuantity:
    """
    Owned copies of one printing, or the sum across a card's printings.

    Attributes:
        quantity: Non-foil copies
        foil_quantity: Foil copies
    """

    quantity: int = 0
    foil_quantity: int = 0

    @property
    def total(self) -> int:
        return self.quantity + self.foil_quantity

    def __add__(self, other: "OwnedQuantity") -> "OwnedQuantity":
        return OwnedQuantity(
            quantity=self.quantity + other.quantity,
            foil_quantity=self.foil_quantity + other.foil_quantity,
        )
