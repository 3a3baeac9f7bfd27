"""
Rebuild the search index.

Run this job after downloading a new MTGJSON snapshot:

    python -m manavault.jobs.rebuild_index
"""

import asyncio
import logging

from manavault.config import settings
from manavault.runtime import open_runtime

logger = logging.getLogger(__name__)


async def run_rebuild() -> None:
    """Rebuild the index from the configured snapshot and record the outcome."""
    runtime = await open_runtime(settings)
    try:
        summary = await runtime.source.summarize()
        if not summary.ok:
            logger.warning("Upstream snapshot is missing tables; found %s", summary.tables)
        logger.info("Rebuilding search index from %d printings...", summary.printing_count)

        stats = await runtime.rebuilds.run()
        logger.info(
            "Indexed %d cards from %d printings into %s",
            stats.card_count,
            stats.printing_count,
            settings.search_index_path,
        )
    except Exception as e:
        logger.error("Failed to rebuild search index: %s", e)
        raise
    finally:
        await runtime.close()


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_rebuild())


if __name__ == "__main__":
    main()
