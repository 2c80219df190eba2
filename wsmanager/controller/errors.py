"""Domain exceptions raised by store backends.

Reconcilers translate these into requeue decisions; anything else that
escapes a reconcile pass is treated as an infrastructure error and retried
with backoff by the controller manager.
"""

from __future__ import annotations


class WorkspaceNotFoundError(LookupError):
    """The workspace does not exist (anymore)."""


class ConflictError(RuntimeError):
    """A conditional write targeted a stale resource version."""

    def __init__(self, workspace_id: str, expected: int, actual: int) -> None:
        super().__init__(f"workspace {workspace_id}: resource version {expected} is stale (current: {actual})")
        self.workspace_id = workspace_id
        self.expected = expected
        self.actual = actual
