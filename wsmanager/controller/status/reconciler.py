"""Status reconciler -- derives phase and conditions from the backing pod.

``update_workspace_status`` is the pure mapping from ``(Workspace, pods)``
to an updated Workspace.  ``StatusReconciler`` wraps it in a reconcile pass:
read, compute, and write back through the store's conditional update only
when something actually changed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from loguru import logger

from wsmanager.controller.errors import ConflictError, WorkspaceNotFoundError
from wsmanager.controller.models.conditions import new_condition
from wsmanager.controller.models.enums import ConditionType, WorkspacePhase
from wsmanager.controller.models.workspace import WorkspaceRuntime
from wsmanager.controller.reconcile import ReconcileResult
from wsmanager.controller.status.failure import extract_failure
from wsmanager.controller.status.phase import DEFAULT_POD_FINALIZER, decide_phase

if TYPE_CHECKING:
    from wsmanager.controller.models.pod import Pod
    from wsmanager.controller.models.workspace import Workspace
    from wsmanager.controller.store.base import WorkspaceStore

MULTIPLE_PODS_MESSAGE = "multiple pods exists - this should never happen"


# ---------------------------------------------------------------------------
# Pure mapping
# ---------------------------------------------------------------------------


def update_workspace_status(
    workspace: Workspace,
    pods: Sequence[Pod],
    *,
    now: datetime | None = None,
    finalizer: str = DEFAULT_POD_FINALIZER,
) -> Workspace:
    """Return *workspace* with phase, conditions and runtime recomputed from *pods*."""
    now = now or datetime.now(UTC)

    if not pods:
        phase = workspace.phase
        if phase == WorkspacePhase.UNSET:
            phase = WorkspacePhase.PENDING
        elif phase != WorkspacePhase.PENDING:
            # It had a pod once and now has none: it has terminated.
            phase = WorkspacePhase.STOPPED
        return workspace.model_copy(update={"phase": phase})

    if len(pods) > 1:
        # The selector is unique per workspace; report, don't heal.
        conditions = workspace.conditions.upsert(
            new_condition(ConditionType.FAILED, message=MULTIPLE_PODS_MESSAGE, now=now),
        )
        return workspace.model_copy(update={"conditions": conditions})

    pod = pods[0]
    conditions = workspace.conditions.upsert(new_condition(ConditionType.DEPLOYED, now=now))
    runtime = _fill_runtime(workspace.runtime, pod)

    # The override only seeds the phase.  The phase rules at the end always
    # match (the last one is a catch-all), so they have the final word.
    failure, forced_phase = extract_failure(workspace, pod)
    phase = forced_phase if forced_phase is not None else workspace.phase

    if failure and not conditions.present_and_true(ConditionType.FAILED):
        # A workspace fails only once; the first reason sticks.
        conditions = conditions.upsert(new_condition(ConditionType.FAILED, message=failure, now=now))

    updated = workspace.model_copy(update={"phase": phase, "conditions": conditions, "runtime": runtime})
    return updated.model_copy(update={"phase": decide_phase(updated, pod, finalizer=finalizer)})


def _fill_runtime(runtime: WorkspaceRuntime | None, pod: Pod) -> WorkspaceRuntime:
    current = runtime or WorkspaceRuntime()
    observed = {
        "node_name": pod.node_name,
        "host_ip": pod.host_ip,
        "pod_ip": pod.pod_ip,
        "pod_name": pod.name,
    }
    changes = {key: value for key, value in observed.items() if value and not getattr(current, key)}
    if not changes and runtime is not None:
        return runtime
    return current.model_copy(update=changes)


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class StatusReconciler:
    """Keeps a workspace's phase and conditions in line with its pod."""

    name = "status"

    def __init__(
        self,
        store: WorkspaceStore,
        *,
        finalizer: str = DEFAULT_POD_FINALIZER,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._finalizer = finalizer
        self._clock = clock or (lambda: datetime.now(UTC))

    async def reconcile(self, workspace_id: str) -> ReconcileResult:
        log = logger.bind(workspace=workspace_id)

        try:
            workspace = await self._store.get_workspace(workspace_id)
        except WorkspaceNotFoundError:
            # Deleted between trigger and read; no further notification will come.
            log.debug("Status: workspace {} not found, ignoring", workspace_id)
            return ReconcileResult()

        pods = await self._store.list_pods(workspace_id)
        if not pods:
            log.debug("Status: no pod matches workspace {}", workspace_id)

        updated = update_workspace_status(workspace, pods, now=self._clock(), finalizer=self._finalizer)
        if updated.status_equals(workspace):
            return ReconcileResult()

        if updated.phase != workspace.phase:
            log.info("Workspace {} phase: {!r} -> {!r}", workspace_id, workspace.phase, updated.phase)
        failed = updated.conditions.get(ConditionType.FAILED)
        if failed is not None and failed is not workspace.conditions.get(ConditionType.FAILED):
            log.warning("Workspace {} failed: {}", workspace_id, failed.message)

        try:
            await self._store.update_status(updated)
        except ConflictError:
            log.debug("Status: stale write for {}, requeueing", workspace_id)
            return ReconcileResult(requeue=True)
        except WorkspaceNotFoundError:
            log.debug("Status: workspace {} vanished before write", workspace_id)
            return ReconcileResult()

        return ReconcileResult()
