"""Timeout reconciler -- latches a ``Timeout`` condition when a workspace overstays.

Every pass on an existing workspace schedules the next one after
``reconcile_interval``, half the heartbeat interval.  Sampling at twice the
heartbeat rate means a timed-out workspace is noticed within half a
heartbeat period.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from loguru import logger

from wsmanager.controller.activity.base import resolve_last_activity
from wsmanager.controller.errors import ConflictError, WorkspaceNotFoundError
from wsmanager.controller.models.conditions import new_condition
from wsmanager.controller.models.enums import ConditionType, WorkspacePhase
from wsmanager.controller.reconcile import ReconcileResult
from wsmanager.controller.timeout.policy import is_workspace_timed_out

if TYPE_CHECKING:
    from wsmanager.controller.activity.base import ActivityLookup
    from wsmanager.controller.models.pod import Pod
    from wsmanager.controller.models.workspace import Workspace
    from wsmanager.controller.settings import TimeoutConfiguration
    from wsmanager.controller.store.base import WorkspaceStore


def reconcile_interval_for(heartbeat_interval: timedelta) -> timedelta:
    """Sampling period for a given heartbeat interval."""
    return heartbeat_interval / 2


class TimeoutReconciler:
    """Checks workspaces against the timeout policy on a fixed schedule."""

    name = "timeout"

    def __init__(
        self,
        store: WorkspaceStore,
        timeouts: TimeoutConfiguration,
        *,
        heartbeat_interval: timedelta,
        activity: ActivityLookup | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._timeouts = timeouts
        self._activity = activity
        self._clock = clock or (lambda: datetime.now(UTC))
        self.reconcile_interval = reconcile_interval_for(heartbeat_interval)

    async def reconcile(self, workspace_id: str) -> ReconcileResult:
        log = logger.bind(workspace=workspace_id)
        log.debug("Timeout: reconciling workspace {}", workspace_id)

        try:
            workspace = await self._store.get_workspace(workspace_id)
        except WorkspaceNotFoundError:
            # A new notification will come if it ever reappears.
            return ReconcileResult()

        # The workspace exists: from here on, always look again later.
        next_pass = ReconcileResult(requeue_after=self.reconcile_interval)

        if workspace.phase == WorkspacePhase.STOPPED:
            return next_pass
        if workspace.conditions.present_and_true(ConditionType.TIMEOUT):
            return next_pass

        now = self._clock()
        reason = is_workspace_timed_out(
            workspace,
            await self._pod_for(workspace),
            self._timeouts,
            last_activity=await self._last_activity(workspace),
            now=now,
        )
        if not reason:
            return next_pass

        log.info("Workspace {} timed out: {} (custom timeout={})", workspace_id, reason, workspace.custom_timeout)
        updated = workspace.model_copy(
            update={"conditions": workspace.conditions.upsert(new_condition(ConditionType.TIMEOUT, message=reason, now=now))},
        )

        try:
            await self._store.update_status(updated)
        except ConflictError:
            log.debug("Timeout: stale write for {}, requeueing", workspace_id)
            return ReconcileResult(requeue=True)
        except WorkspaceNotFoundError:
            return ReconcileResult()

        return next_pass

    async def _pod_for(self, workspace: Workspace) -> Pod | None:
        # Only the stopping policy looks at the pod.
        if workspace.phase != WorkspacePhase.STOPPING:
            return None
        pods = await self._store.list_pods(workspace.id)
        return pods[0] if len(pods) == 1 else None

    async def _last_activity(self, workspace: Workspace) -> datetime | None:
        if workspace.phase != WorkspacePhase.RUNNING:
            return None
        return await resolve_last_activity(self._activity, workspace)
