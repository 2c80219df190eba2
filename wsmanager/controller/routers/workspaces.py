"""Workspace endpoints (RPC-style).

All write operations use POST; reads use GET.  The reconcilers own phase
and the Deployed, Failed and Timeout conditions; the write routes here
stand in for the collaborators around them (workspace creators, the pod
observer, user-facing services and heartbeats).
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, status
from loguru import logger

from wsmanager.controller.deps import Activity, Store, Writer
from wsmanager.controller.errors import WorkspaceNotFoundError
from wsmanager.controller.models.api import ActivityRecord, ConditionWrite, WorkspaceCreate, WorkspaceResponse
from wsmanager.controller.models.conditions import new_condition
from wsmanager.controller.models.enums import WorkspacePhase
from wsmanager.controller.models.pod import Pod
from wsmanager.controller.models.workspace import Workspace
from wsmanager.controller.store.base import WorkspaceStore

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


async def _get_or_404(store: WorkspaceStore, workspace_id: str) -> Workspace:
    try:
        return await store.get_workspace(workspace_id)
    except WorkspaceNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.") from None


# -- Workspaces --------------------------------------------------------------


@router.post("/create", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, store: Store, writer: Writer) -> WorkspaceResponse:
    """Register a new workspace.  The reconcilers pick it up from the watch."""
    try:
        await store.get_workspace(body.id)
    except WorkspaceNotFoundError:
        pass
    else:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=f"Workspace '{body.id}' already exists.")

    workspace = Workspace(
        id=body.id,
        creation_timestamp=body.creation_timestamp or datetime.now(UTC),
        headless=body.headless,
        custom_timeout=body.custom_timeout,
    )
    stored = await writer.put_workspace(workspace)
    logger.info("API: created workspace {}", stored.id)
    return WorkspaceResponse.from_workspace(stored)


@router.get("/list", response_model=list[WorkspaceResponse])
async def list_workspaces(store: Store, phase: WorkspacePhase | None = None) -> list[WorkspaceResponse]:
    """List workspaces, optionally filtered by phase, ordered by creation time (newest first)."""
    workspaces = await store.list_workspaces()
    if phase is not None:
        workspaces = [w for w in workspaces if w.phase == phase]
    workspaces.sort(key=lambda w: w.creation_timestamp, reverse=True)
    return [WorkspaceResponse.from_workspace(w) for w in workspaces]


@router.get("/{workspace_id}/get", response_model=WorkspaceResponse)
async def get_workspace(workspace_id: str, store: Store) -> WorkspaceResponse:
    """Get a single workspace's status by ID."""
    return WorkspaceResponse.from_workspace(await _get_or_404(store, workspace_id))


@router.post("/{workspace_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(workspace_id: str, store: Store, writer: Writer) -> None:
    """Delete a workspace and its pods."""
    await _get_or_404(store, workspace_id)
    await writer.delete_workspace(workspace_id)
    logger.info("API: deleted workspace {}", workspace_id)


# -- Collaborator writes -----------------------------------------------------


@router.post("/{workspace_id}/conditions/set", response_model=WorkspaceResponse)
async def set_condition(workspace_id: str, body: ConditionWrite, writer: Writer) -> WorkspaceResponse:
    """Upsert a collaborator-owned condition (e.g. ``Closed``, ``BackupComplete``)."""
    condition = new_condition(body.type, status=body.status, message=body.message, reason=body.reason)
    try:
        stored = await writer.set_condition(workspace_id, condition)
    except WorkspaceNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.") from None
    return WorkspaceResponse.from_workspace(stored)


@router.post("/{workspace_id}/activity", status_code=status.HTTP_204_NO_CONTENT)
async def record_activity(workspace_id: str, body: ActivityRecord, store: Store, activity: Activity) -> None:
    """Record a heartbeat for a workspace."""
    await _get_or_404(store, workspace_id)
    await activity.record(workspace_id, body.timestamp)


# -- Pods --------------------------------------------------------------------


@router.post("/{workspace_id}/pods/put", status_code=status.HTTP_204_NO_CONTENT)
async def put_pod(workspace_id: str, pod: Pod, store: Store, writer: Writer) -> None:
    """Report the observed state of a pod backing the workspace."""
    if not pod.name:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Pod name is required.")
    await _get_or_404(store, workspace_id)
    await writer.put_pod(workspace_id, pod)


@router.post("/{workspace_id}/pods/{pod_name}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pod(workspace_id: str, pod_name: str, writer: Writer) -> None:
    """Report that a pod is gone.  No-op if it was never seen."""
    await writer.delete_pod(workspace_id, pod_name)
