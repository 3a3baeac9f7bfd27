"""
Search index lifecycle endpoints.

Rebuild failures are reported through GET /index/status, never through
search responses.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, status
from pydantic import Field
from sqlalchemy.exc import SQLAlchemyError

from manavault.api.deps import RuntimeDep
from manavault.api.schemas import CamelModel
from manavault.db.index_store import REQUIRED_TABLES
from manavault.db.operations import IndexStatus
from manavault.source.printings import SourceSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/index", tags=["index"])


class IndexStatusResponse(CamelModel):
    import_status: IndexStatus = IndexStatus.IDLE
    last_run_at: datetime | None = None
    finished_at: datetime | None = None
    card_count: int | None = None
    printing_count: int | None = None
    error: str | None = None


class RebuildAcceptedResponse(CamelModel):
    import_status: IndexStatus = IndexStatus.RUNNING
    message: str = "Search index rebuild started"


class VerifyResponse(CamelModel):
    index_available: bool
    missing_tables: list[str] = Field(default_factory=list)
    upstream_tables: list[str] = Field(default_factory=list)
    upstream_ok: bool = Field(..., description="Snapshot has both cards and sets tables")
    upstream_printing_count: int = 0


@router.post(
    "/rebuild",
    response_model=RebuildAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_rebuild(runtime: RuntimeDep) -> RebuildAcceptedResponse:
    """
    Start a rebuild in the background.

    Returns 409 if one is already running. Poll /index/status for the
    outcome.
    """
    await runtime.rebuilds.trigger()
    return RebuildAcceptedResponse()


@router.get("/status", response_model=IndexStatusResponse)
async def get_status(runtime: RuntimeDep) -> IndexStatusResponse:
    record = await runtime.rebuilds.status()
    if record is None:
        return IndexStatusResponse()

    import_status = IndexStatus(record.status)
    if runtime.rebuilds.is_running:
        import_status = IndexStatus.RUNNING

    return IndexStatusResponse(
        import_status=import_status,
        last_run_at=record.last_run_at,
        finished_at=record.finished_at,
        card_count=record.card_count,
        printing_count=record.printing_count,
        error=record.error,
    )


@router.get("/verify", response_model=VerifyResponse)
async def verify(runtime: RuntimeDep) -> VerifyResponse:
    """Report whether the index is built and what the upstream snapshot holds."""
    try:
        missing = await runtime.index.missing_tables()
    except SQLAlchemyError as e:
        logger.warning("Search index unreadable: %s", e)
        missing = list(REQUIRED_TABLES)
    try:
        summary = await runtime.source.summarize()
    except SQLAlchemyError as e:
        logger.warning("Upstream snapshot unreadable: %s", e)
        summary = SourceSummary(tables=[], printing_count=0)
    return VerifyResponse(
        index_available=not missing,
        missing_tables=missing,
        upstream_tables=summary.tables,
        upstream_ok=summary.ok,
        upstream_printing_count=summary.printing_count,
    )
