"""Failure extraction from pod status.

Turns a pod's status and its containers' termination records into a
human-readable failure reason, plus an optional phase the caller should
force before running the phase rules.
"""

from __future__ import annotations

import json

from wsmanager.controller.models.enums import PodPhase, WorkspacePhase
from wsmanager.controller.models.pod import ContainerStateTerminated, ContainerStatus, Pod
from wsmanager.controller.models.workspace import Workspace

# Exit code Kubernetes uses for a container killed by the system.  Such
# containers get restarted if they are supposed to run; we never kill a
# container like this deliberately.
CONTAINER_KILLED_EXIT_CODE = 137

# Exit code containerd reports when it cannot determine why a container stopped.
CONTAINER_UNKNOWN_EXIT_CODE = 255

IMAGE_PULL_FAILURES = frozenset({"ImagePullBackOff", "ErrImagePull"})


def extract_failure(workspace: Workspace, pod: Pod) -> tuple[str, WorkspacePhase | None]:
    """Return ``(failure, phase)`` for *pod*.

    ``failure`` is empty when the pod has not failed.  ``phase`` is ``None``
    when the caller should determine the phase itself.
    """
    if pod.phase == PodPhase.FAILED and (pod.reason or pod.message):
        # No phase override: the phase rules may still detect e.g. stopping.
        return f"{pod.reason}: {pod.message}", None

    for status in pod.container_statuses:
        waiting = status.state.waiting
        if waiting is not None and waiting.reason in IMAGE_PULL_FAILURES:
            # A failed pull means we were creating, unless the pod is already
            # being deleted -- then the deletion rule decides.
            phase = None if pod.is_being_deleted else WorkspacePhase.CREATING
            return f"cannot pull image: {waiting.message}", phase

        terminated = status.state.terminated or status.last_termination_state.terminated
        if terminated is None:
            continue

        result = _termination_failure(workspace, pod, status, terminated)
        if result is not None:
            return result

    return "", None


def _termination_failure(
    workspace: Workspace,
    pod: Pod,
    status: ContainerStatus,
    terminated: ContainerStateTerminated,
) -> tuple[str, WorkspacePhase | None] | None:
    """Classify a terminated container.  ``None`` means "keep scanning"."""
    deleting = pod.is_being_deleted

    if terminated.exit_code != 0 and terminated.message:
        # The container told us why it terminated.  If it wasn't deleted it
        # must have been running, otherwise we'd end up in unknown.
        phase = None if deleting else WorkspacePhase.RUNNING
        return extract_failure_from_logs(terminated.message.encode()), phase

    if terminated.reason == "Error":
        if not deleting and terminated.exit_code != CONTAINER_KILLED_EXIT_CODE:
            return (
                f"container {status.name} ran with an error: exit code {terminated.exit_code}",
                WorkspacePhase.RUNNING,
            )
        return None

    if terminated.reason == "Completed" and not deleting:
        if workspace.headless:
            # Headless workspaces are expected to finish.
            return "", None
        return f"container {status.name} completed; containers of a workspace pod are not supposed to do that", None

    if not deleting and terminated.exit_code != CONTAINER_UNKNOWN_EXIT_CODE:
        return (
            f"workspace container {status.name} terminated for an unknown reason: "
            f"({terminated.reason}) {terminated.message}",
            WorkspacePhase.UNKNOWN,
        )

    return None


def extract_failure_from_logs(logs: bytes) -> str:
    """Extract the last error message from a container's trailing log output.

    Scans backward line by line for the last JSON record with a non-empty
    ``message`` and returns ``message`` or ``"message: error"``.  Falls back
    to the raw text when no line qualifies.
    """
    for line in reversed(logs.split(b"\n")):
        if not line.strip():
            continue
        record = _parse_record(line)
        if record is None:
            continue
        message, error = record
        if not message:
            continue
        if not error:
            return message
        return f"{message}: {error}"

    return logs.decode("utf-8", errors="replace")


def _parse_record(line: bytes) -> tuple[str, str] | None:
    try:
        data = json.loads(line)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("message")
    error = data.get("error")
    return (
        message if isinstance(message, str) else "",
        error if isinstance(error, str) else "",
    )
