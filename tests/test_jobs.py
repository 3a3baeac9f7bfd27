"""Tests for the index rebuild job."""

from unittest.mock import patch

import pytest

from manavault.config import Settings
from manavault.db.index_store import IndexStore
from manavault.jobs.rebuild_index import run_rebuild
from manavault.models.failure import RebuildFailedError


class TestRunRebuild:
    async def test_builds_configured_index(self, api_settings: Settings) -> None:
        with patch("manavault.jobs.rebuild_index.settings", api_settings):
            await run_rebuild()

        index = IndexStore.open(api_settings.search_index_path)
        try:
            assert await index.is_available() is True
        finally:
            await index.dispose()

    async def test_failure_propagates(self, api_settings: Settings, make_upstream) -> None:
        broken = await make_upstream(
            "broken.sqlite", cards=[{"name": "Opt"}], card_columns=("name",)
        )
        job_settings = api_settings.model_copy(update={"mtgjson_db_path": str(broken)})

        with (
            patch("manavault.jobs.rebuild_index.settings", job_settings),
            pytest.raises(RebuildFailedError),
        ):
            await run_rebuild()
