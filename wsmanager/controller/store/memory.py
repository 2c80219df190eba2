"""In-memory workspace store.

Implements the ``WorkspaceStore`` protocol on plain dictionaries.  Used by
the local ``run`` mode and the test-suite, and doubles as the reference for
the semantics a cluster-backed store must provide:

- every write bumps ``resource_version``;
- ``update_status`` only touches phase, conditions and runtime, and fails
  with ``ConflictError`` on a stale version;
- every change fans out a ``WatchEvent`` to all active watchers.

The ``put_*`` / ``delete_*`` / ``set_condition`` methods are the
collaborator side (workspace creation, the kubelet, disposal, the user
closing an editor).  The reconcilers never call them.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from loguru import logger

from wsmanager.controller.errors import ConflictError, WorkspaceNotFoundError
from wsmanager.controller.models.conditions import Condition
from wsmanager.controller.models.enums import WatchEventKind
from wsmanager.controller.models.pod import Pod
from wsmanager.controller.models.workspace import Workspace
from wsmanager.controller.store.base import WatchEvent


class InMemoryWorkspaceStore:
    """Dictionary-backed implementation of the WorkspaceStore protocol."""

    def __init__(self) -> None:
        self._workspaces: dict[str, Workspace] = {}
        self._pods: dict[str, dict[str, Pod]] = {}
        self._watchers: set[asyncio.Queue[WatchEvent]] = set()
        self._lock = asyncio.Lock()

    # -- Read ------------------------------------------------------------------

    async def get_workspace(self, workspace_id: str) -> Workspace:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError(workspace_id)
        return workspace

    async def list_workspaces(self) -> list[Workspace]:
        return list(self._workspaces.values())

    async def list_pods(self, workspace_id: str) -> list[Pod]:
        return list(self._pods.get(workspace_id, {}).values())

    # -- Conditional status write ----------------------------------------------

    async def update_status(self, workspace: Workspace) -> Workspace:
        async with self._lock:
            current = self._workspaces.get(workspace.id)
            if current is None:
                raise WorkspaceNotFoundError(workspace.id)
            if current.resource_version != workspace.resource_version:
                raise ConflictError(workspace.id, workspace.resource_version, current.resource_version)

            stored = current.model_copy(
                update={
                    "phase": workspace.phase,
                    "conditions": workspace.conditions,
                    "runtime": workspace.runtime,
                    "resource_version": current.resource_version + 1,
                }
            )
            self._workspaces[workspace.id] = stored

        self._notify(WatchEventKind.WORKSPACE, workspace.id)
        return stored

    # -- Collaborator side -----------------------------------------------------

    async def put_workspace(self, workspace: Workspace) -> Workspace:
        """Create or replace a workspace object as an external writer would."""
        async with self._lock:
            current = self._workspaces.get(workspace.id)
            version = current.resource_version + 1 if current is not None else 1
            stored = workspace.model_copy(update={"resource_version": version})
            self._workspaces[workspace.id] = stored
        self._notify(WatchEventKind.WORKSPACE, workspace.id)
        return stored

    async def set_condition(self, workspace_id: str, condition: Condition) -> Workspace:
        """Upsert a condition on behalf of an external actor."""
        async with self._lock:
            current = self._workspaces.get(workspace_id)
            if current is None:
                raise WorkspaceNotFoundError(workspace_id)
            stored = current.model_copy(
                update={
                    "conditions": current.conditions.upsert(condition),
                    "resource_version": current.resource_version + 1,
                }
            )
            self._workspaces[workspace_id] = stored
        self._notify(WatchEventKind.WORKSPACE, workspace_id)
        return stored

    async def delete_workspace(self, workspace_id: str) -> None:
        """Remove a workspace and its pods.  No-op if missing."""
        async with self._lock:
            removed = self._workspaces.pop(workspace_id, None)
            self._pods.pop(workspace_id, None)
        if removed is not None:
            self._notify(WatchEventKind.DELETED, workspace_id)

    async def put_pod(self, workspace_id: str, pod: Pod) -> None:
        """Create or replace a pod selected by *workspace_id*."""
        async with self._lock:
            self._pods.setdefault(workspace_id, {})[pod.name] = pod
        self._notify(WatchEventKind.POD, workspace_id)

    async def delete_pod(self, workspace_id: str, pod_name: str) -> None:
        async with self._lock:
            pods = self._pods.get(workspace_id, {})
            removed = pods.pop(pod_name, None)
        if removed is not None:
            self._notify(WatchEventKind.POD, workspace_id)

    # -- Watch -----------------------------------------------------------------

    async def watch(self) -> AsyncIterator[WatchEvent]:
        queue: asyncio.Queue[WatchEvent] = asyncio.Queue()
        self._watchers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._watchers.discard(queue)

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    def _notify(self, kind: WatchEventKind, workspace_id: str) -> None:
        event = WatchEvent(kind=kind, workspace_id=workspace_id)
        logger.trace("Store: {} event for {}", kind, workspace_id)
        for queue in self._watchers:
            queue.put_nowait(event)
