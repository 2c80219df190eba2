"""FastAPI dependency injection for the workspace store and activity table.

Usage in route handlers::

    @router.get("/things")
    async def list_things(store: Store) -> list[ThingResponse]:
        ...

Dependencies raise HTTP 503 while the controller is not initialised.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from wsmanager.controller.activity.base import ActivityRecorder
from wsmanager.controller.store.base import WorkspaceStore, WorkspaceWriter


async def get_store(request: Request) -> WorkspaceStore:
    store: WorkspaceStore | None = request.app.state.store
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Workspace store not initialised.",
        )
    return store


async def get_writer(store: Annotated[WorkspaceStore, Depends(get_store)]) -> WorkspaceWriter:
    if not isinstance(store, WorkspaceWriter):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Workspace store is read-only.",
        )
    return store


async def get_activity(request: Request) -> ActivityRecorder:
    activity: ActivityRecorder | None = getattr(request.app.state, "activity", None)
    if activity is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Activity tracking not initialised.",
        )
    return activity


# -- Annotated type aliases for concise route signatures ---------------------

Store = Annotated[WorkspaceStore, Depends(get_store)]
"""Annotated dependency: the shared workspace store."""

Writer = Annotated[WorkspaceWriter, Depends(get_writer)]
"""Annotated dependency: the same store, through its collaborator write side."""

Activity = Annotated[ActivityRecorder, Depends(get_activity)]
"""Annotated dependency: the last-activity table."""
