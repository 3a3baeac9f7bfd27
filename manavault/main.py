import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from manavault.api import (
    cards_router,
    collection_router,
    health_router,
    index_router,
    search_router,
)
from manavault.config import Settings, settings
from manavault.models.failure import KnownError
from manavault.runtime import open_runtime

logger = logging.getLogger(__name__)


async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render a KnownError as {"failure": FailureDetail} with its status code."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.kind.value, exc.detail or exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Build the application; stores are opened by the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        runtime = await open_runtime(app_settings)
        app.state.settings = app_settings
        app.state.runtime = runtime
        app.state.session_factory = runtime.session_factory
        try:
            yield
        finally:
            await runtime.close()

    app = FastAPI(
        title=app_settings.app_name,
        version=pkg_version("manavault"),
        lifespan=lifespan,
    )

    app.include_router(cards_router)
    app.include_router(collection_router)
    app.include_router(health_router)
    app.include_router(index_router)
    app.include_router(search_router)

    app.add_exception_handler(KnownError, known_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Tighten in production
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


app = create_app()
