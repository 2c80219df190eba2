"""Shared enumerations used across the workspace controller."""

from __future__ import annotations

from enum import StrEnum

# -- Workspace ---------------------------------------------------------------


class WorkspacePhase(StrEnum):
    """Coarse lifecycle stage of a workspace.

    ``UNSET`` is the phase of a freshly created workspace that no reconciler
    has looked at yet.
    """

    UNSET = ""
    PENDING = "Pending"
    CREATING = "Creating"
    INITIALIZING = "Initializing"
    RUNNING = "Running"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    UNKNOWN = "Unknown"


class ConditionType(StrEnum):
    """Named facts attached to a workspace."""

    # Written by the reconcilers
    DEPLOYED = "Deployed"
    FAILED = "Failed"
    TIMEOUT = "Timeout"

    # Written by disposal / content collaborators
    BACKUP_COMPLETE = "BackupComplete"
    BACKUP_FAILURE = "BackupFailure"
    CONTENT_READY = "ContentReady"
    EVER_READY = "EverReady"

    # Written by user-facing collaborators
    CLOSED = "Closed"
    USER_ACTIVITY = "UserActivity"
    ABORTED = "Aborted"
    STOPPED_BY_REQUEST = "StoppedByRequest"


class ConditionStatus(StrEnum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


# -- Pod ---------------------------------------------------------------------


class PodPhase(StrEnum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


# -- Watch -------------------------------------------------------------------


class WatchEventKind(StrEnum):
    """Kind of change delivered by a store watch."""

    WORKSPACE = "workspace"
    POD = "pod"
    DELETED = "deleted"
