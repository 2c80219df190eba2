"""Last-activity lookup interface.

A heartbeat collaborator records when each workspace was last seen active.
The timeout reconciler only reads these timestamps; the HTTP surface is the
one place that writes them.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from wsmanager.controller.models.enums import ConditionType

if TYPE_CHECKING:
    from wsmanager.controller.models.workspace import Workspace


@runtime_checkable
class ActivityLookup(Protocol):
    async def get_last_activity(self, workspace_id: str) -> datetime | None:
        """Return the last-seen-active time, or ``None`` if never active."""
        ...


@runtime_checkable
class ActivityRecorder(ActivityLookup, Protocol):
    async def record(self, workspace_id: str, when: datetime | None = None) -> None:
        """Mark the workspace active at *when* (defaults to now)."""
        ...


async def resolve_last_activity(lookup: ActivityLookup | None, workspace: Workspace) -> datetime | None:
    """Last activity from *lookup*, falling back to the ``UserActivity`` condition."""
    if lookup is not None:
        seen = await lookup.get_last_activity(workspace.id)
        if seen is not None:
            return seen

    condition = workspace.conditions.get(ConditionType.USER_ACTIVITY)
    if condition is None:
        return None
    return condition.last_transition_time
