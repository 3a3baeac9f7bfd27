"""FastAPI dependencies for the runtime components opened by the lifespan."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from manavault.config import Settings
from manavault.db.database import get_session
from manavault.db.operations import SqlOwnershipStore
from manavault.runtime import Runtime


def get_runtime(request: Request) -> Runtime:
    runtime: Runtime = request.app.state.runtime
    return runtime


def get_settings(request: Request) -> Settings:
    app_settings: Settings = request.app.state.settings
    return app_settings


def get_ownership_store(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SqlOwnershipStore:
    return SqlOwnershipStore(session)


RuntimeDep = Annotated[Runtime, Depends(get_runtime)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
OwnershipDep = Annotated[SqlOwnershipStore, Depends(get_ownership_store)]
