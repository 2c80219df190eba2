"""Pod value records.

A read-only snapshot of the pod backing a workspace, reduced to the fields
the reconcilers inspect.  Shapes follow the Kubernetes core/v1 Pod object
with snake_case names.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from wsmanager.controller.models.enums import PodPhase
from wsmanager.controller.models.timestamps import UTCDateTime


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ContainerStateWaiting(_Frozen):
    reason: str = ""
    message: str = ""


class ContainerStateRunning(_Frozen):
    started_at: UTCDateTime | None = None


class ContainerStateTerminated(_Frozen):
    exit_code: int = 0
    reason: str = ""
    message: str = ""


class ContainerState(_Frozen):
    """At most one of the members is set."""

    waiting: ContainerStateWaiting | None = None
    running: ContainerStateRunning | None = None
    terminated: ContainerStateTerminated | None = None


class ContainerStatus(_Frozen):
    name: str = ""
    ready: bool = False
    state: ContainerState = Field(default_factory=ContainerState)
    last_termination_state: ContainerState = Field(default_factory=ContainerState)


class Pod(_Frozen):
    """Observed pod spec and status."""

    name: str = ""
    node_name: str = ""
    deletion_timestamp: UTCDateTime | None = None
    finalizers: tuple[str, ...] = ()

    phase: PodPhase = PodPhase.PENDING
    reason: str = ""
    message: str = ""
    host_ip: str = ""
    pod_ip: str = ""
    container_statuses: tuple[ContainerStatus, ...] = ()

    @property
    def is_being_deleted(self) -> bool:
        # The deletion timestamp is the only marker we get for a pod on its way out.
        return self.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers
