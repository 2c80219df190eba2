"""Reconciler contract shared by the status and timeout controllers.

A reconciler performs one pass over a single workspace (one read, one pure
computation, at most one conditional write) and tells the scheduler when
to look again.  Scheduling itself lives in :mod:`wsmanager.controller.queue`
and :mod:`wsmanager.controller.manager`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a reconcile pass.

    ``requeue`` asks for an immediate retry (e.g. after a version conflict);
    ``requeue_after`` schedules the next pass after a fixed delay.  Both
    unset means "wait for the next watch notification".
    """

    requeue: bool = False
    requeue_after: timedelta | None = None


@runtime_checkable
class Reconciler(Protocol):
    """A named reconcile function keyed by workspace id."""

    name: str

    async def reconcile(self, workspace_id: str) -> ReconcileResult:
        """Run one pass.  Raises on infrastructure errors."""
        ...
