"""Data models for the workspace controller."""

from wsmanager.controller.models.api import (
    ActivityRecord,
    ConditionWrite,
    HealthResponse,
    WorkspaceCreate,
    WorkspaceResponse,
)
from wsmanager.controller.models.conditions import (
    STICKY_CONDITIONS,
    Condition,
    ConditionSet,
    new_condition,
)
from wsmanager.controller.models.duration import Duration, parse_duration
from wsmanager.controller.models.enums import (
    ConditionStatus,
    ConditionType,
    PodPhase,
    WatchEventKind,
    WorkspacePhase,
)
from wsmanager.controller.models.pod import (
    ContainerState,
    ContainerStateRunning,
    ContainerStateTerminated,
    ContainerStateWaiting,
    ContainerStatus,
    Pod,
)
from wsmanager.controller.models.timestamps import UTCDateTime, ensure_utc
from wsmanager.controller.models.workspace import Workspace, WorkspaceRuntime

__all__ = [
    "STICKY_CONDITIONS",
    # API schemas
    "ActivityRecord",
    # Conditions
    "Condition",
    "ConditionSet",
    # Enums
    "ConditionStatus",
    "ConditionType",
    "ConditionWrite",
    # Pod
    "ContainerState",
    "ContainerStateRunning",
    "ContainerStateTerminated",
    "ContainerStateWaiting",
    "ContainerStatus",
    # Duration
    "Duration",
    "HealthResponse",
    "Pod",
    "PodPhase",
    # Timestamps
    "UTCDateTime",
    "WatchEventKind",
    # Workspace
    "Workspace",
    "WorkspaceCreate",
    "WorkspacePhase",
    "WorkspaceResponse",
    "WorkspaceRuntime",
    "ensure_utc",
    "new_condition",
    "parse_duration",
]
