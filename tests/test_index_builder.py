"""Tests for the search index builder."""

import asyncio
from collections.abc import AsyncIterator

import pytest
from sqlalchemy import select, text

from manavault.db.index_store import IndexStore
from manavault.models.card import CanonicalCard, Printing
from manavault.models.db import CanonicalCardDB, PrintingRefDB
from manavault.models.failure import RebuildFailedError, RebuildInProgressError
from manavault.services.index_builder import (
    BuildPhase,
    IndexBuilder,
    RepresentativeAccumulator,
    card_row,
    is_newer,
)
from manavault.services.search_engine import SearchEngine
from manavault.source.printings import UpstreamSource


def make_printing(printing_id: str, release_date: str | None, **kwargs) -> Printing:
    return Printing(printing_id=printing_id, name="Opt", release_date=release_date, **kwargs)


class FailingSource(UpstreamSource):
    """Yields a few printings, then fails mid-scan."""

    async def iter_printings(self) -> AsyncIterator[Printing]:
        printings = super().iter_printings()
        try:
            count = 0
            async for printing in printings:
                if count == 4:
                    raise RuntimeError("snapshot truncated")
                count += 1
                yield printing
        finally:
            await printings.aclose()


async def dump_index(index: IndexStore) -> tuple[list[tuple], list[tuple], list[tuple]]:
    async with index.engine.connect() as conn:
        cards = (
            await conn.execute(
                select(CanonicalCardDB.__table__).order_by(CanonicalCardDB.canonical_key)
            )
        ).all()
        refs = (
            await conn.execute(
                select(PrintingRefDB.__table__).order_by(
                    PrintingRefDB.canonical_key, PrintingRefDB.printing_id
                )
            )
        ).all()
        documents = (
            await conn.execute(
                text("SELECT canonical_key, name, type_line, oracle_text FROM card_search_fts")
            )
        ).all()
    return (
        [tuple(row) for row in cards],
        [tuple(row) for row in refs],
        sorted(tuple(row) for row in documents),
    )


class TestRepresentativeSelection:
    def test_newer_date_wins(self) -> None:
        assert is_newer(make_printing("b", "2021-01-01"), make_printing("a", "2020-01-01"))

    def test_equal_date_does_not_replace(self) -> None:
        assert not is_newer(make_printing("b", "2020-01-01"), make_printing("a", "2020-01-01"))

    def test_missing_date_never_wins(self) -> None:
        assert not is_newer(make_printing("b", None), make_printing("a", "2020-01-01"))
        assert not is_newer(make_printing("b", None), make_printing("a", None))

    def test_dated_replaces_undated(self) -> None:
        assert is_newer(make_printing("b", "1993-08-05"), make_printing("a", None))

    def test_accumulator_keeps_first_on_ties(self) -> None:
        accumulator = RepresentativeAccumulator()
        accumulator.offer("k", make_printing("first", "2020-01-01"))
        accumulator.offer("k", make_printing("second", "2020-01-01"))
        accumulator.offer("k", make_printing("undated", None))

        representative = accumulator.representative("k")
        assert representative is not None
        assert representative.printing_id == "first"

    def test_accumulator_cards_sorted_by_key(self) -> None:
        accumulator = RepresentativeAccumulator()
        accumulator.offer("b", make_printing("p2", None))
        accumulator.offer("a", make_printing("p1", None))

        assert [card.canonical_key for card in accumulator.cards()] == ["a", "b"]
        assert len(accumulator) == 2


class TestCardRow:
    def test_derived_columns(self) -> None:
        card = CanonicalCard(
            canonical_key="k",
            representative_printing_id="p",
            name="Niv-Mizzet, Parun",
            colors=("U", "R"),
            rarity="rare",
            keywords=("Flying",),
            power="5",
            toughness="*",
            collector_number="192a",
        )

        row = card_row(card)

        assert row["normalized_name"] == "niv-mizzet-parun"
        assert row["colors"] == "UR"
        assert row["color_count"] == 2
        assert row["rarity_rank"] == 3
        assert row["keywords"] == "Flying"
        assert row["power_value"] == 5.0
        assert row["toughness_value"] is None
        assert row["collector_number_value"] == 192


class TestIndexBuilder:
    async def test_rebuild_counts(self, builder: IndexBuilder, index: IndexStore) -> None:
        stats = await builder.rebuild()

        assert stats.printing_count == 10
        assert stats.card_count == 6
        assert stats.duplicate_count == 0
        assert builder.phase == BuildPhase.IDLE
        assert await index.is_available() is True

    async def test_printings_collapse_to_one_card(self, search_engine: SearchEngine) -> None:
        """Counterspell from LEA and MH2 is one card represented by MH2."""
        card = await search_engine.get_card("oracle-counterspell")

        assert card is not None
        assert card.representative_printing_id == "cs-mh2"
        assert card.latest_set_code == "MH2"
        assert card.latest_release_date == "2021-06-18"
        assert card.artist == "Zack Stella"

        printings = await search_engine.printings_for("oracle-counterspell")
        assert [ref.printing_id for ref in printings] == ["cs-mh2", "cs-lea"]

    async def test_older_printing_seen_later_does_not_replace(
        self, search_engine: SearchEngine
    ) -> None:
        """opt-dom (2018) is scanned before opt-xln (2017) and stays representative."""
        card = await search_engine.get_card("oracle-opt")

        assert card is not None
        assert card.representative_printing_id == "opt-dom"

    async def test_dated_printing_beats_undated(self, search_engine: SearchEngine) -> None:
        card = await search_engine.get_card("goblin-scout::normal::front")

        assert card is not None
        assert card.representative_printing_id == "gob-xln"
        assert card.latest_set_code == "XLN"

    async def test_every_card_has_its_representative_ref(self, built_index: IndexStore) -> None:
        engine = SearchEngine(built_index)
        cards, refs, documents = await dump_index(built_index)
        ref_pairs = {(ref[0], ref[1]) for ref in refs}

        assert len(refs) == 10
        assert len(documents) == len(cards) == 6
        for card in await engine.get_cards([row[0] for row in cards]):
            assert (card.canonical_key, card.representative_printing_id) in ref_pairs

    async def test_rebuild_is_idempotent(self, builder: IndexBuilder, index: IndexStore) -> None:
        await builder.rebuild()
        first = await dump_index(index)

        await builder.rebuild()
        second = await dump_index(index)

        assert first == second

    async def test_failed_rebuild_keeps_previous_index(
        self, built_index: IndexStore, source: UpstreamSource
    ) -> None:
        before = await dump_index(built_index)
        failing = IndexBuilder(FailingSource(source.engine), built_index, ref_batch_size=2)

        with pytest.raises(RebuildFailedError) as exc_info:
            await failing.rebuild()

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert "snapshot truncated" in (exc_info.value.detail or "")
        assert failing.phase == BuildPhase.IDLE
        assert await dump_index(built_index) == before

    async def test_failed_first_build_leaves_index_unavailable(
        self, index: IndexStore, source: UpstreamSource
    ) -> None:
        failing = IndexBuilder(FailingSource(source.engine), index)

        with pytest.raises(RebuildFailedError):
            await failing.rebuild()

        assert await index.is_available() is False

    async def test_concurrent_rebuild_rejected(self, builder: IndexBuilder) -> None:
        results = await asyncio.gather(
            builder.rebuild(), builder.rebuild(), return_exceptions=True
        )

        assert sum(isinstance(r, RebuildInProgressError) for r in results) == 1
        assert sum(not isinstance(r, BaseException) for r in results) == 1
        assert builder.is_running is False
