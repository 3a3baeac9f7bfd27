"""
Failure classification for the index and query surfaces.

Three failure shapes are user-visible:
- IndexUnavailable: the search index has not been built (or is missing tables).
  Callers must be able to tell this apart from "zero results".
- RebuildInProgress: a rebuild was triggered while another is still running.
- RebuildFailed: the rebuild transaction rolled back; the previous index
  remains the queryable one.

Schema drift in the upstream snapshot and malformed query strings are NOT
failures. They degrade to missing values and broad free-text matching.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Resource failures
    NOT_FOUND = "not_found"

    # Index lifecycle failures
    INDEX_UNAVAILABLE = "index_unavailable"
    REBUILD_IN_PROGRESS = "rebuild_in_progress"
    REBUILD_FAILED = "rebuild_failed"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )


class FailureResponse(BaseModel):
    """Error body returned for every KnownError."""

    failure: FailureDetail


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to a FailureDetail."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )

    def to_response(self) -> FailureResponse:
        """Convert to the error body."""
        return FailureResponse(failure=self.to_detail())


class IndexUnavailableError(KnownError):
    """
    The search index store is absent or missing required tables.

    Raised by every read path against the index so that "index not built yet"
    never looks like an empty result page.
    """

    def __init__(self, missing_tables: list[str] | None = None, detail: str | None = None):
        self.missing_tables = list(missing_tables or [])
        if detail is None and self.missing_tables:
            detail = f"Missing tables: {', '.join(self.missing_tables)}"
        super().__init__(
            kind=FailureKind.INDEX_UNAVAILABLE,
            message="The search index is not available.",
            detail=detail,
            suggestion="Run `manavault-rebuild` or POST /index/rebuild.",
            status_code=503,
        )


class RebuildInProgressError(KnownError):
    """A rebuild was requested while another one is still running."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.REBUILD_IN_PROGRESS,
            message="A search index rebuild is already running.",
            suggestion="Poll GET /index/status until the current rebuild finishes.",
            status_code=409,
        )


class RebuildFailedError(KnownError):
    """
    The rebuild transaction failed and was rolled back.

    The previous index (if any) is still the visible one.
    """

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(
            kind=FailureKind.REBUILD_FAILED,
            message="The search index rebuild failed; the previous index is unchanged.",
            detail=f"{type(cause).__name__}: {cause}",
            suggestion="Check the upstream MTGJSON snapshot and retry the rebuild.",
            status_code=500,
        )
