"""Workspace data model.

A workspace is the reconciled entity: an ephemeral compute environment
backed by exactly one pod.  The reconcilers own ``phase``, ``conditions``
and ``runtime``; everything else is set at creation and never changes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from wsmanager.controller.models.conditions import ConditionSet
from wsmanager.controller.models.duration import Duration
from wsmanager.controller.models.enums import ConditionType, WorkspacePhase
from wsmanager.controller.models.timestamps import UTCDateTime


class WorkspaceRuntime(BaseModel):
    """Where the workspace pod landed.  Each field is first-write-wins."""

    model_config = ConfigDict(frozen=True)

    node_name: str = ""
    host_ip: str = ""
    pod_ip: str = ""
    pod_name: str = ""


class Workspace(BaseModel):
    """Workspace object as read from (and written back to) the store."""

    model_config = ConfigDict(frozen=True)

    id: str
    creation_timestamp: UTCDateTime
    headless: bool = False
    custom_timeout: Duration | None = Field(default=None, description="Per-workspace inactivity timeout override")

    phase: WorkspacePhase = WorkspacePhase.UNSET
    conditions: ConditionSet = Field(default_factory=ConditionSet)
    runtime: WorkspaceRuntime | None = None

    resource_version: int = Field(default=0, description="Bumped by the store on every write")

    @property
    def closed(self) -> bool:
        return self.conditions.present_and_true(ConditionType.CLOSED)

    def status_equals(self, other: Workspace) -> bool:
        """Compare the reconciler-owned fields only."""
        return self.phase == other.phase and self.conditions == other.conditions and self.runtime == other.runtime
