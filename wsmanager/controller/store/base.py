"""Workspace store interface.

The store is the controller's view of the cluster API: it yields Workspace
and Pod objects, delivers change notifications, and accepts conditional
status writes.  Writes are optimistic: ``update_status`` succeeds only if
the caller's ``resource_version`` is still current.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from wsmanager.controller.models.conditions import Condition
from wsmanager.controller.models.enums import WatchEventKind
from wsmanager.controller.models.pod import Pod
from wsmanager.controller.models.workspace import Workspace


@dataclass(frozen=True)
class WatchEvent:
    """A change notification for one workspace (or its pod)."""

    kind: WatchEventKind
    workspace_id: str


@runtime_checkable
class WorkspaceStore(Protocol):
    """Async protocol for reading workspaces and pods and writing status.

    Pods are selected by workspace id; a healthy workspace has at most one.
    """

    async def get_workspace(self, workspace_id: str) -> Workspace:
        """Fetch a workspace.  Raises ``WorkspaceNotFoundError`` if missing."""
        ...

    async def list_workspaces(self) -> list[Workspace]:
        """Return all workspaces."""
        ...

    async def list_pods(self, workspace_id: str) -> list[Pod]:
        """Return the pods matching the workspace's selector."""
        ...

    async def update_status(self, workspace: Workspace) -> Workspace:
        """Persist phase, conditions and runtime of *workspace*.

        Raises ``WorkspaceNotFoundError`` if the workspace is gone and
        ``ConflictError`` if ``workspace.resource_version`` is stale.
        Returns the stored object with its new resource version.
        """
        ...

    def watch(self) -> AsyncIterator[WatchEvent]:
        """Yield change notifications until the consumer stops iterating."""
        ...


@runtime_checkable
class WorkspaceWriter(Protocol):
    """Writes made by the collaborators around the controller.

    Workspace creators, pod observers and user-facing services use these.
    The reconcilers never call them.
    """

    async def put_workspace(self, workspace: Workspace) -> Workspace:
        """Create or replace a workspace.  Returns the stored object."""
        ...

    async def delete_workspace(self, workspace_id: str) -> None:
        """Remove a workspace and its pods.  No-op if missing."""
        ...

    async def set_condition(self, workspace_id: str, condition: Condition) -> Workspace:
        """Upsert a condition.  Raises ``WorkspaceNotFoundError`` if missing."""
        ...

    async def put_pod(self, workspace_id: str, pod: Pod) -> None:
        ...

    async def delete_pod(self, workspace_id: str, pod_name: str) -> None:
        ...
