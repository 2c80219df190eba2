"""Phase decision table for a workspace with exactly one pod.

The rules are evaluated top to bottom on an immutable snapshot of the
workspace and its pod; the first rule whose guard matches decides the
phase.  The final rule always matches.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from wsmanager.controller.models.enums import ConditionType, PodPhase, WorkspacePhase
from wsmanager.controller.models.pod import Pod
from wsmanager.controller.models.workspace import Workspace

DEFAULT_POD_FINALIZER = "gitpod.io/finalizer"

CREATING_REASONS = frozenset({"ContainerCreating", "ImagePullBackOff", "ErrImagePull"})


@dataclass(frozen=True)
class PhaseInput:
    workspace: Workspace
    pod: Pod
    finalizer: str = DEFAULT_POD_FINALIZER


@dataclass(frozen=True)
class PhaseRule:
    name: str
    guard: Callable[[PhaseInput], bool]
    decide: Callable[[PhaseInput], WorkspacePhase]


# -- Rule bodies ---------------------------------------------------------------


def _disposal_finished(workspace: Workspace) -> bool:
    conditions = workspace.conditions
    return (
        conditions.present_and_true(ConditionType.BACKUP_COMPLETE)
        or conditions.present_and_true(ConditionType.BACKUP_FAILURE)
        or conditions.with_status_and_reason(ConditionType.CONTENT_READY, False, "InitializationFailure")
    )


def _decide_deleted(snapshot: PhaseInput) -> WorkspacePhase:
    if not snapshot.pod.has_finalizer(snapshot.finalizer):
        # Pods only get the finalizer once running.  One that failed earlier
        # never sees a disposal outcome, so it must not wait for one.
        return WorkspacePhase.STOPPED
    if _disposal_finished(snapshot.workspace):
        return WorkspacePhase.STOPPED
    return WorkspacePhase.STOPPING


def _decide_pending(snapshot: PhaseInput) -> WorkspacePhase:
    for status in snapshot.pod.container_statuses:
        waiting = status.state.waiting
        if waiting is not None and waiting.reason in CREATING_REASONS:
            return WorkspacePhase.CREATING
    return WorkspacePhase.PENDING


def _decide_running(snapshot: PhaseInput) -> WorkspacePhase:
    # Not ready yet means content initialisation is still in progress.
    if any(status.ready for status in snapshot.pod.container_statuses):
        return WorkspacePhase.RUNNING
    return WorkspacePhase.INITIALIZING


def _decide_unknown(snapshot: PhaseInput) -> WorkspacePhase:
    if snapshot.pod.phase != PodPhase.UNKNOWN:
        logger.warning(
            "Cannot determine phase of workspace {} (pod phase={})",
            snapshot.workspace.id,
            snapshot.pod.phase,
        )
    return WorkspacePhase.UNKNOWN


PHASE_RULES: tuple[PhaseRule, ...] = (
    PhaseRule("deleted", lambda s: s.pod.is_being_deleted, _decide_deleted),
    PhaseRule("pending", lambda s: s.pod.phase == PodPhase.PENDING, _decide_pending),
    PhaseRule("running", lambda s: s.pod.phase == PodPhase.RUNNING, _decide_running),
    PhaseRule(
        "headless-finished",
        lambda s: s.workspace.headless and s.pod.phase in (PodPhase.SUCCEEDED, PodPhase.FAILED),
        lambda _: WorkspacePhase.STOPPING,
    ),
    PhaseRule("unknown", lambda _: True, _decide_unknown),
)


def decide_phase(
    workspace: Workspace,
    pod: Pod,
    *,
    finalizer: str = DEFAULT_POD_FINALIZER,
    rules: tuple[PhaseRule, ...] = PHASE_RULES,
) -> WorkspacePhase:
    """Return the phase of the first matching rule."""
    snapshot = PhaseInput(workspace=workspace, pod=pod, finalizer=finalizer)
    for rule in rules:
        if rule.guard(snapshot):
            return rule.decide(snapshot)
    return WorkspacePhase.UNKNOWN
