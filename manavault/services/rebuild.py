"""
Rebuild coordination.

Connects the IndexBuilder to the status record in the application store.
The HTTP trigger runs the rebuild as a background task; the CLI job runs
it inline. Both paths record running -> complete | failed.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from manavault.db.operations import (
    IndexStatus,
    get_index_status,
    mark_rebuild_complete,
    mark_rebuild_failed,
    mark_rebuild_started,
)
from manavault.models.db import IndexStatusDB
from manavault.models.failure import RebuildFailedError, RebuildInProgressError
from manavault.services.index_builder import BuildStats, IndexBuilder

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Rebuild interrupted before it finished"


class RebuildCoordinator:
    def __init__(
        self,
        builder: IndexBuilder,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._builder = builder
        self._session_factory = session_factory
        self._task: asyncio.Task[BuildStats | None] | None = None
        # Set synchronously before the first await so concurrent callers see it
        self._claimed = False

    @property
    def is_running(self) -> bool:
        return (
            self._claimed
            or self._builder.is_running
            or (self._task is not None and not self._task.done())
        )

    def _claim(self) -> None:
        if self.is_running:
            raise RebuildInProgressError()
        self._claimed = True

    async def _mark_started(self) -> None:
        async with self._session_factory() as session:
            await mark_rebuild_started(session)
            await session.commit()

    async def _record_outcome(self, stats: BuildStats | None, error: Exception | None) -> None:
        async with self._session_factory() as session:
            if error is None and stats is not None:
                await mark_rebuild_complete(session, stats.card_count, stats.printing_count)
            else:
                message = error.detail if isinstance(error, RebuildFailedError) else str(error)
                await mark_rebuild_failed(session, message or "Unknown error")
            await session.commit()

    async def _execute(self) -> BuildStats:
        try:
            stats = await self._builder.rebuild()
        except RebuildFailedError as e:
            await self._record_outcome(None, e)
            raise
        await self._record_outcome(stats, None)
        return stats

    async def run(self) -> BuildStats:
        """
        Rebuild inline and record the outcome.

        Raises:
            RebuildInProgressError: If a rebuild is already running
            RebuildFailedError: If the rebuild failed (status records the error)
        """
        self._claim()
        try:
            await self._mark_started()
            return await self._execute()
        finally:
            self._claimed = False

    async def _run_in_background(self) -> BuildStats | None:
        try:
            return await self._execute()
        except RebuildFailedError:
            # Already logged by the builder and recorded in the status row
            return None

    async def trigger(self) -> None:
        """
        Mark the status running and start a rebuild in the background.

        Raises:
            RebuildInProgressError: If a rebuild is already running
        """
        self._claim()
        try:
            await self._mark_started()
        except BaseException:
            self._claimed = False
            raise
        # The task keeps is_running true from here on
        self._task = asyncio.create_task(self._run_in_background())
        self._claimed = False

    async def wait(self) -> BuildStats | None:
        """Wait for the background rebuild, if any."""
        if self._task is None:
            return None
        return await self._task

    async def status(self) -> IndexStatusDB | None:
        async with self._session_factory() as session:
            return await get_index_status(session)

    async def recover_interrupted(self) -> None:
        """
        Mark a status left at `running` by a previous process as failed.

        Called at startup, before any rebuild can be triggered.
        """
        async with self._session_factory() as session:
            status = await get_index_status(session)
            if status is not None and status.status == IndexStatus.RUNNING.value:
                logger.warning("Found interrupted rebuild from %s", status.last_run_at)
                await mark_rebuild_failed(session, INTERRUPTED_MESSAGE)
                await session.commit()

    async def shutdown(self) -> None:
        """Cancel a background rebuild; its transaction rolls back."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
