"""Tests for TimeoutReconciler against the in-memory store."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

from wsmanager.controller.activity.memory import InMemoryActivity
from wsmanager.controller.errors import ConflictError
from wsmanager.controller.models.conditions import Condition, ConditionSet
from wsmanager.controller.models.enums import ConditionType, WorkspacePhase
from wsmanager.controller.models.pod import Pod
from wsmanager.controller.models.workspace import Workspace
from wsmanager.controller.reconcile import ReconcileResult
from wsmanager.controller.timeout.reconciler import TimeoutReconciler, reconcile_interval_for

HEARTBEAT = timedelta(minutes=4)


def test_reconcile_interval_is_half_the_heartbeat() -> None:
    assert reconcile_interval_for(timedelta(minutes=4)) == timedelta(minutes=2)
    assert reconcile_interval_for(timedelta(seconds=30)) == timedelta(seconds=15)


async def test_not_found_is_not_requeued(store, timeouts, clock) -> None:
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)
    assert await reconciler.reconcile("missing") == ReconcileResult()


async def test_healthy_workspace_is_checked_again(store, timeouts, clock, make_workspace) -> None:
    await store.put_workspace(make_workspace(phase=WorkspacePhase.PENDING, age=timedelta(minutes=5)))
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    result = await reconciler.reconcile("ws-1")

    assert result == ReconcileResult(requeue_after=timedelta(minutes=2))
    assert ConditionType.TIMEOUT not in (await store.get_workspace("ws-1")).conditions


async def test_timed_out_workspace_gets_condition(store, timeouts, clock, make_workspace, now) -> None:
    await store.put_workspace(make_workspace(phase=WorkspacePhase.PENDING, age=timedelta(minutes=31)))
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    result = await reconciler.reconcile("ws-1")

    assert result == ReconcileResult(requeue_after=timedelta(minutes=2))
    condition = (await store.get_workspace("ws-1")).conditions.get(ConditionType.TIMEOUT)
    assert condition is not None
    assert condition.is_true
    assert condition.last_transition_time == now
    assert "00h31m" in condition.message
    assert "00h30m" in condition.message


async def test_timeout_is_written_once(store, timeouts, clock, make_workspace) -> None:
    await store.put_workspace(make_workspace(phase=WorkspacePhase.PENDING, age=timedelta(hours=2)))
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    await reconciler.reconcile("ws-1")
    version = (await store.get_workspace("ws-1")).resource_version
    result = await reconciler.reconcile("ws-1")

    assert result.requeue_after == timedelta(minutes=2)
    assert (await store.get_workspace("ws-1")).resource_version == version


async def test_stopped_workspace_is_left_alone(store, timeouts, clock, make_workspace) -> None:
    await store.put_workspace(make_workspace(phase=WorkspacePhase.STOPPED, age=timedelta(days=3)))
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    result = await reconciler.reconcile("ws-1")

    assert result == ReconcileResult(requeue_after=timedelta(minutes=2))
    assert (await store.get_workspace("ws-1")).resource_version == 1


async def test_running_uses_recorded_activity(store, timeouts, clock, make_workspace, now) -> None:
    await store.put_workspace(make_workspace(phase=WorkspacePhase.RUNNING, age=timedelta(hours=3)))
    activity = InMemoryActivity()
    await activity.record("ws-1", now - timedelta(minutes=10))
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, activity=activity, clock=clock)

    await reconciler.reconcile("ws-1")
    assert ConditionType.TIMEOUT not in (await store.get_workspace("ws-1")).conditions

    await activity.record("ws-1", now - timedelta(minutes=45))
    await reconciler.reconcile("ws-1")
    condition = (await store.get_workspace("ws-1")).conditions.get(ConditionType.TIMEOUT)
    assert "period of inactivity (00h45m)" in condition.message


async def test_running_falls_back_to_user_activity_condition(
    store, timeouts, clock, make_workspace, make_condition, now
) -> None:
    workspace = make_workspace(
        phase=WorkspacePhase.RUNNING,
        age=timedelta(hours=3),
        conditions=[make_condition(ConditionType.USER_ACTIVITY, at=now - timedelta(minutes=5))],
    )
    await store.put_workspace(workspace)
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    await reconciler.reconcile("ws-1")

    assert ConditionType.TIMEOUT not in (await store.get_workspace("ws-1")).conditions


async def test_stopping_reads_the_pod(store, timeouts, clock, make_workspace, make_pod) -> None:
    await store.put_workspace(make_workspace(phase=WorkspacePhase.STOPPING))
    await store.put_pod("ws-1", make_pod(deleted_ago=timedelta(minutes=90)))
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    await reconciler.reconcile("ws-1")

    condition = (await store.get_workspace("ws-1")).conditions.get(ConditionType.TIMEOUT)
    assert condition.message == "workspace timed out after stopping (01h30m) took longer than 01h00m"


async def test_stopping_with_multiple_pods_never_times_out(store, timeouts, clock, make_workspace, make_pod) -> None:
    await store.put_workspace(make_workspace(phase=WorkspacePhase.STOPPING))
    await store.put_pod("ws-1", make_pod(name="a", deleted_ago=timedelta(hours=5)))
    await store.put_pod("ws-1", make_pod(name="b", deleted_ago=timedelta(hours=5)))
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    await reconciler.reconcile("ws-1")

    assert ConditionType.TIMEOUT not in (await store.get_workspace("ws-1")).conditions


async def test_pods_are_only_listed_while_stopping(timeouts, clock, make_workspace) -> None:
    store = AsyncMock()
    store.get_workspace.return_value = make_workspace(phase=WorkspacePhase.PENDING)
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    await reconciler.reconcile("ws-1")

    store.list_pods.assert_not_awaited()


async def test_conflict_requeues_immediately(timeouts, clock, make_workspace) -> None:
    store = AsyncMock()
    store.get_workspace.return_value = make_workspace(phase=WorkspacePhase.PENDING, age=timedelta(hours=2))
    store.update_status.side_effect = ConflictError("ws-1", 1, 2)
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    assert await reconciler.reconcile("ws-1") == ReconcileResult(requeue=True)


async def test_naive_timestamps_are_read_as_utc(store, timeouts, clock) -> None:
    workspace = Workspace.model_validate(
        {"id": "ws-1", "creation_timestamp": "2020-01-01T00:00:00", "phase": "Pending"},
    )
    await store.put_workspace(workspace)
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    result = await reconciler.reconcile("ws-1")

    assert result == ReconcileResult(requeue_after=timedelta(minutes=2))
    condition = (await store.get_workspace("ws-1")).conditions.get(ConditionType.TIMEOUT)
    assert condition.message.startswith("workspace timed out after initialization")


async def test_naive_user_activity_and_deletion_times(store, timeouts, clock, now) -> None:
    naive_now = now.replace(tzinfo=None)
    running = Workspace(
        id="ws-1",
        creation_timestamp=naive_now - timedelta(hours=3),
        phase=WorkspacePhase.RUNNING,
        conditions=ConditionSet(
            (Condition(type=ConditionType.USER_ACTIVITY, last_transition_time=naive_now - timedelta(minutes=45)),),
        ),
    )
    stopping = Workspace(id="ws-2", creation_timestamp=naive_now, phase=WorkspacePhase.STOPPING)
    await store.put_workspace(running)
    await store.put_workspace(stopping)
    await store.put_pod("ws-2", Pod(name="ws-2-pod", deletion_timestamp=naive_now - timedelta(hours=2)))
    reconciler = TimeoutReconciler(store, timeouts, heartbeat_interval=HEARTBEAT, clock=clock)

    await reconciler.reconcile("ws-1")
    await reconciler.reconcile("ws-2")

    inactive = (await store.get_workspace("ws-1")).conditions.get(ConditionType.TIMEOUT)
    stuck = (await store.get_workspace("ws-2")).conditions.get(ConditionType.TIMEOUT)
    assert "period of inactivity (00h45m)" in inactive.message
    assert "after stopping (02h00m)" in stuck.message
