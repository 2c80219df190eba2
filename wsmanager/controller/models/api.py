"""HTTP request and response schemas for the status and collaborator surface."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from wsmanager.controller.models.conditions import Condition
from wsmanager.controller.models.duration import Duration
from wsmanager.controller.models.enums import ConditionStatus, ConditionType, WorkspacePhase
from wsmanager.controller.models.timestamps import UTCDateTime
from wsmanager.controller.models.workspace import Workspace, WorkspaceRuntime

RECONCILER_CONDITIONS: frozenset[str] = frozenset(
    {ConditionType.DEPLOYED, ConditionType.FAILED, ConditionType.TIMEOUT},
)


# -- Requests ----------------------------------------------------------------


class WorkspaceCreate(BaseModel):
    """Input for registering a new workspace."""

    id: str = Field(min_length=1)
    headless: bool = False
    custom_timeout: Duration | None = Field(default=None, description="Inactivity timeout override, e.g. '90m'.")
    creation_timestamp: UTCDateTime | None = Field(default=None, description="Defaults to the time of the request.")


class ConditionWrite(BaseModel):
    """A condition written by a collaborator (closed, backup, user activity, ...)."""

    type: str
    status: ConditionStatus = ConditionStatus.TRUE
    message: str = ""
    reason: str = ""

    @field_validator("type")
    @classmethod
    def _not_reconciler_owned(cls, value: str) -> str:
        if value in RECONCILER_CONDITIONS:
            msg = f"condition {value!r} is written by the reconcilers"
            raise ValueError(msg)
        return value


class ActivityRecord(BaseModel):
    """Heartbeat from a workspace.  An omitted timestamp means now."""

    timestamp: UTCDateTime | None = None


# -- Responses ---------------------------------------------------------------


class WorkspaceResponse(BaseModel):
    """Workspace status as exposed to CLI / dashboard consumers."""

    id: str
    phase: WorkspacePhase
    headless: bool
    closed: bool
    creation_timestamp: datetime
    conditions: list[Condition] = Field(default_factory=list)
    runtime: WorkspaceRuntime | None = None
    resource_version: int

    @classmethod
    def from_workspace(cls, workspace: Workspace) -> WorkspaceResponse:
        return cls(
            id=workspace.id,
            phase=workspace.phase,
            headless=workspace.headless,
            closed=workspace.closed,
            creation_timestamp=workspace.creation_timestamp,
            conditions=list(workspace.conditions),
            runtime=workspace.runtime,
            resource_version=workspace.resource_version,
        )


class HealthResponse(BaseModel):
    status: str
    controllers: dict[str, int] = Field(default_factory=dict, description="Queue depth per reconciler")
