"""Shared fixtures for controller tests: factories and an in-memory store."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from wsmanager.controller.activity.memory import InMemoryActivity
from wsmanager.controller.app import app
from wsmanager.controller.models.conditions import Condition, ConditionSet, new_condition
from wsmanager.controller.models.enums import ConditionStatus, PodPhase, WorkspacePhase
from wsmanager.controller.models.pod import (
    ContainerState,
    ContainerStateTerminated,
    ContainerStateWaiting,
    ContainerStatus,
    Pod,
)
from wsmanager.controller.models.workspace import Workspace, WorkspaceRuntime
from wsmanager.controller.settings import TimeoutConfiguration
from wsmanager.controller.status.phase import DEFAULT_POD_FINALIZER
from wsmanager.controller.store.memory import InMemoryWorkspaceStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def timeouts() -> TimeoutConfiguration:
    return TimeoutConfiguration()


@pytest.fixture
def store() -> InMemoryWorkspaceStore:
    return InMemoryWorkspaceStore()


@pytest.fixture
def activity() -> InMemoryActivity:
    return InMemoryActivity()


@pytest.fixture
def make_condition() -> Callable[..., Condition]:
    def _make(
        condition_type: str,
        status: bool | ConditionStatus = True,
        *,
        message: str = "",
        reason: str = "",
        at: datetime = NOW,
    ) -> Condition:
        if isinstance(status, bool):
            status = ConditionStatus.TRUE if status else ConditionStatus.FALSE
        return new_condition(condition_type, status=status, message=message, reason=reason, now=at)

    return _make


@pytest.fixture
def make_workspace() -> Callable[..., Workspace]:
    def _make(
        *,
        workspace_id: str = "ws-1",
        phase: WorkspacePhase = WorkspacePhase.UNSET,
        age: timedelta = timedelta(minutes=5),
        headless: bool = False,
        conditions: Iterable[Condition] = (),
        custom_timeout: timedelta | None = None,
        runtime: WorkspaceRuntime | None = None,
    ) -> Workspace:
        return Workspace(
            id=workspace_id,
            creation_timestamp=NOW - age,
            phase=phase,
            headless=headless,
            conditions=ConditionSet(tuple(conditions)),
            custom_timeout=custom_timeout,
            runtime=runtime,
        )

    return _make


@pytest.fixture
def make_pod() -> Callable[..., Pod]:
    def _make(
        *,
        name: str = "ws-1-pod",
        phase: PodPhase = PodPhase.RUNNING,
        ready: bool = False,
        waiting: ContainerStateWaiting | None = None,
        terminated: ContainerStateTerminated | None = None,
        last_terminated: ContainerStateTerminated | None = None,
        deleted_ago: timedelta | None = None,
        finalizers: tuple[str, ...] = (DEFAULT_POD_FINALIZER,),
        reason: str = "",
        message: str = "",
        containers: int = 1,
    ) -> Pod:
        status = ContainerStatus(
            name="workspace",
            ready=ready,
            state=ContainerState(waiting=waiting, terminated=terminated),
            last_termination_state=ContainerState(terminated=last_terminated),
        )
        return Pod(
            name=name,
            node_name="node-a",
            host_ip="10.0.0.1",
            pod_ip="10.1.0.7",
            phase=phase,
            reason=reason,
            message=message,
            deletion_timestamp=NOW - deleted_ago if deleted_ago is not None else None,
            finalizers=finalizers,
            container_statuses=(status,) * containers,
        )

    return _make


@pytest.fixture
async def client(store: InMemoryWorkspaceStore, activity: InMemoryActivity) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with the in-memory ``store`` and ``activity``.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are pre-set and no controllers are started.
    """
    app.state.store = store
    app.state.redis = None
    app.state.manager = None
    app.state.activity = activity

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.store = None
    app.state.activity = None
