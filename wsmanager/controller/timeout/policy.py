"""Timeout policy -- decides whether a workspace has overstayed its phase.

Pure function of the workspace's phase and timestamps, its pod's deletion
time, the timeout configuration and the last activity.  It never mutates
anything; the timeout reconciler turns a non-empty reason into a
``Timeout`` condition.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from wsmanager.controller.models.enums import ConditionType, WorkspacePhase

if TYPE_CHECKING:
    from wsmanager.controller.models.pod import Pod
    from wsmanager.controller.models.workspace import Workspace
    from wsmanager.controller.settings import TimeoutConfiguration


class Activity(StrEnum):
    """What the workspace was doing when it ran out of time."""

    INIT = "initialization"
    STARTUP = "startup"
    CREATING_CONTAINERS = "creating containers"
    RUNNING_HEADLESS = "running the headless workspace"
    NONE = "period of inactivity"
    MAX_LIFETIME = "maximum lifetime"
    CLOSED = "after being closed"
    STOPPING = "stopping"
    BACKUP = "backup"


def format_duration(value: timedelta) -> str:
    """Format as ``HHhMMm`` after rounding to the nearest minute."""
    minutes = math.floor(value.total_seconds() / 60 + 0.5)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}h{minutes:02d}m"


def _decide(now: datetime, start: datetime, timeout: timedelta, activity: Activity) -> str:
    elapsed = now - start
    if elapsed < timeout:
        return ""
    return (
        f"workspace timed out after {activity} ({format_duration(elapsed)}) "
        f"took longer than {format_duration(timeout)}"
    )


def is_workspace_timed_out(
    workspace: Workspace,
    pod: Pod | None,
    timeouts: TimeoutConfiguration,
    *,
    last_activity: datetime | None,
    now: datetime,
) -> str:
    """Return the timeout reason, or ``""`` if the workspace has not timed out.

    *pod* is only consulted while stopping; ``None`` means "no pod observed".
    """
    start = workspace.creation_timestamp
    phase = workspace.phase

    if phase == WorkspacePhase.PENDING:
        return _decide(now, start, timeouts.initialization, Activity.INIT)

    if phase == WorkspacePhase.INITIALIZING:
        return _decide(now, start, timeouts.total_startup, Activity.STARTUP)

    if phase == WorkspacePhase.CREATING:
        return _decide(now, start, timeouts.total_startup, Activity.CREATING_CONTAINERS)

    if phase == WorkspacePhase.RUNNING:
        return _running_timeout(workspace, timeouts, last_activity=last_activity, now=now)

    if phase == WorkspacePhase.STOPPING:
        if pod is None or pod.deletion_timestamp is None:
            # Pods that have not been deleted have never timed out.
            return ""
        if workspace.conditions.present_and_true(ConditionType.BACKUP_COMPLETE):
            return _decide(now, pod.deletion_timestamp, timeouts.content_finalization, Activity.BACKUP)
        return _decide(now, pod.deletion_timestamp, timeouts.stopping, Activity.STOPPING)

    # Stopped (and unknown / unset): nothing left to time out.
    return ""


def _running_timeout(
    workspace: Workspace,
    timeouts: TimeoutConfiguration,
    *,
    last_activity: datetime | None,
    now: datetime,
) -> str:
    start = workspace.creation_timestamp

    # Max lifetime always wins, however active the workspace is.
    reason = _decide(now, start, timeouts.max_lifetime, Activity.MAX_LIFETIME)
    if reason:
        return reason

    if workspace.headless:
        return _decide(now, start, timeouts.headless_workspace, Activity.RUNNING_HEADLESS)

    if last_activity is None:
        # Up and running, but the user never produced any activity.
        return _decide(now, start, timeouts.total_startup, Activity.NONE)

    if workspace.closed:
        return _decide(now, last_activity, timeouts.after_close, Activity.CLOSED)

    timeout = timeouts.regular_workspace
    if workspace.custom_timeout is not None:
        timeout = workspace.custom_timeout
    return _decide(now, last_activity, timeout, Activity.NONE)
