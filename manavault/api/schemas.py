"""
Response bodies shared by the card-facing routers.

Fields are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from manavault.models.card import CanonicalCard, OwnedQuantity, PrintingRef


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CardResponse(CamelModel):
    """One canonical card as returned by search and lookups."""

    canonical_key: str
    representative_printing_id: str
    name: str
    ascii_name: str | None = None
    mana_cost: str | None = None
    mana_value: float | None = None
    type_line: str | None = None
    oracle_text: str | None = None
    colors: list[str] = Field(default_factory=list)
    color_identity: list[str] = Field(default_factory=list)
    rarity: str | None = None
    keywords: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)
    power: str | None = None
    toughness: str | None = None
    loyalty: str | None = None
    artist: str | None = None
    flavor_text: str | None = None
    collector_number: str | None = None
    latest_set_code: str | None = None
    latest_release_date: str | None = None
    owned_quantity: int = Field(default=0, description="Owned copies across all printings")
    owned_foil_quantity: int = Field(
        default=0, description="Owned foil copies across all printings"
    )

    @classmethod
    def from_card(cls, card: CanonicalCard, owned: OwnedQuantity | None = None) -> "CardResponse":
        owned = owned or OwnedQuantity()
        return cls(
            canonical_key=card.canonical_key,
            representative_printing_id=card.representative_printing_id,
            name=card.name,
            ascii_name=card.ascii_name,
            mana_cost=card.mana_cost,
            mana_value=card.mana_value,
            type_line=card.type_line,
            oracle_text=card.oracle_text,
            colors=list(card.colors),
            color_identity=list(card.color_identity),
            rarity=card.rarity,
            keywords=list(card.keywords),
            types=list(card.types),
            power=card.power,
            toughness=card.toughness,
            loyalty=card.loyalty,
            artist=card.artist,
            flavor_text=card.flavor_text,
            collector_number=card.collector_number,
            latest_set_code=card.latest_set_code,
            latest_release_date=card.latest_release_date,
            owned_quantity=owned.quantity,
            owned_foil_quantity=owned.foil_quantity,
        )


class PrintingRefResponse(CamelModel):
    printing_id: str
    set_code: str | None = None
    release_date: str | None = None

    @classmethod
    def from_ref(cls, ref: PrintingRef) -> "PrintingRefResponse":
        return cls(
            printing_id=ref.printing_id, set_code=ref.set_code, release_date=ref.release_date
        )
