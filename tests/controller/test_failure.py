"""Unit tests for failure extraction."""

from __future__ import annotations

from datetime import timedelta

from wsmanager.controller.models.enums import PodPhase, WorkspacePhase
from wsmanager.controller.models.pod import ContainerStateTerminated, ContainerStateWaiting
from wsmanager.controller.status.failure import extract_failure, extract_failure_from_logs

# ---------------------------------------------------------------------------
# extract_failure_from_logs
# ---------------------------------------------------------------------------


def test_logs_last_record_wins() -> None:
    logs = (
        b'{"level":"info","message":"starting"}\n'
        b'{"level":"debug","message":"still going"}\n'
        b'{"message":"boom","error":"x"}\n'
    )
    assert extract_failure_from_logs(logs) == "boom: x"


def test_logs_without_trailing_newline() -> None:
    logs = b'{"message":"first"}\n{"message":"boom","error":"x"}'
    assert extract_failure_from_logs(logs) == "boom: x"


def test_logs_skip_unparsable_and_empty_message_lines() -> None:
    logs = b'{"message":"real cause","error":"disk full"}\nnot json at all\n{"error":"no message"}\n\n'
    assert extract_failure_from_logs(logs) == "real cause: disk full"


def test_logs_message_without_error() -> None:
    assert extract_failure_from_logs(b'{"message":"bye"}\n') == "bye"


def test_logs_fall_back_to_raw_text() -> None:
    assert extract_failure_from_logs(b"segfault in supervisor\n") == "segfault in supervisor\n"


def test_logs_non_object_json_is_skipped() -> None:
    assert extract_failure_from_logs(b'{"message":"m"}\n[1, 2]\n"str"\n') == "m"


def test_logs_invalid_utf8_fallback() -> None:
    assert extract_failure_from_logs(b"\xc3\x28 broken") == "�( broken"


# ---------------------------------------------------------------------------
# extract_failure
# ---------------------------------------------------------------------------


def test_healthy_pod_has_no_failure(make_workspace, make_pod) -> None:
    assert extract_failure(make_workspace(), make_pod(ready=True)) == ("", None)


def test_failed_pod_reason_and_message(make_workspace, make_pod) -> None:
    pod = make_pod(phase=PodPhase.FAILED, reason="Evicted", message="node ran out of memory")
    assert extract_failure(make_workspace(), pod) == ("Evicted: node ran out of memory", None)


def test_image_pull_failure_forces_creating(make_workspace, make_pod) -> None:
    pod = make_pod(
        phase=PodPhase.PENDING,
        waiting=ContainerStateWaiting(reason="ImagePullBackOff", message="manifest unknown"),
    )
    assert extract_failure(make_workspace(), pod) == ("cannot pull image: manifest unknown", WorkspacePhase.CREATING)


def test_image_pull_failure_while_deleting_defers_phase(make_workspace, make_pod) -> None:
    pod = make_pod(
        phase=PodPhase.PENDING,
        waiting=ContainerStateWaiting(reason="ErrImagePull", message="denied"),
        deleted_ago=timedelta(seconds=10),
    )
    assert extract_failure(make_workspace(), pod) == ("cannot pull image: denied", None)


def test_terminated_with_message_uses_log_tail(make_workspace, make_pod) -> None:
    pod = make_pod(
        terminated=ContainerStateTerminated(
            exit_code=1,
            reason="Error",
            message='{"message":"starting"}\n{"message":"supervisor crashed","error":"exit 2"}\n',
        ),
    )
    assert extract_failure(make_workspace(), pod) == ("supervisor crashed: exit 2", WorkspacePhase.RUNNING)


def test_last_termination_state_is_used(make_workspace, make_pod) -> None:
    pod = make_pod(last_terminated=ContainerStateTerminated(exit_code=3, message="plain text"))
    assert extract_failure(make_workspace(), pod) == ("plain text", WorkspacePhase.RUNNING)


def test_terminated_with_message_while_deleting(make_workspace, make_pod) -> None:
    pod = make_pod(
        terminated=ContainerStateTerminated(exit_code=1, message="bye"),
        deleted_ago=timedelta(seconds=5),
    )
    assert extract_failure(make_workspace(), pod) == ("bye", None)


def test_error_reason_without_message(make_workspace, make_pod) -> None:
    pod = make_pod(terminated=ContainerStateTerminated(exit_code=2, reason="Error"))
    failure, phase = extract_failure(make_workspace(), pod)

    assert failure == "container workspace ran with an error: exit code 2"
    assert phase == WorkspacePhase.RUNNING


def test_killed_container_is_not_a_failure(make_workspace, make_pod) -> None:
    pod = make_pod(terminated=ContainerStateTerminated(exit_code=137, reason="Error"))
    assert extract_failure(make_workspace(), pod) == ("", None)


def test_completed_container_fails_regular_workspace(make_workspace, make_pod) -> None:
    pod = make_pod(terminated=ContainerStateTerminated(exit_code=0, reason="Completed"))
    failure, phase = extract_failure(make_workspace(), pod)

    assert "not supposed to" in failure
    assert phase is None


def test_completed_container_is_fine_for_headless(make_workspace, make_pod) -> None:
    pod = make_pod(phase=PodPhase.SUCCEEDED, terminated=ContainerStateTerminated(exit_code=0, reason="Completed"))
    assert extract_failure(make_workspace(headless=True), pod) == ("", None)


def test_unknown_termination_forces_unknown(make_workspace, make_pod) -> None:
    pod = make_pod(terminated=ContainerStateTerminated(exit_code=0, reason="OOMKilled"))
    failure, phase = extract_failure(make_workspace(), pod)

    assert failure == "workspace container workspace terminated for an unknown reason: (OOMKilled) "
    assert phase == WorkspacePhase.UNKNOWN


def test_unknown_exit_code_is_ignored(make_workspace, make_pod) -> None:
    pod = make_pod(terminated=ContainerStateTerminated(exit_code=255, reason="Unknown"))
    assert extract_failure(make_workspace(), pod) == ("", None)


def test_termination_during_deletion_is_ignored(make_workspace, make_pod) -> None:
    pod = make_pod(
        terminated=ContainerStateTerminated(exit_code=0, reason="Completed"),
        deleted_ago=timedelta(seconds=5),
    )
    assert extract_failure(make_workspace(), pod) == ("", None)
