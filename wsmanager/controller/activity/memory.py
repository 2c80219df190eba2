"""In-process activity table."""

from __future__ import annotations

from datetime import UTC, datetime

from wsmanager.controller.models.timestamps import ensure_utc


class InMemoryActivity:
    """Dictionary of workspace id -> last-seen-active time."""

    def __init__(self) -> None:
        self._last_seen: dict[str, datetime] = {}

    async def record(self, workspace_id: str, when: datetime | None = None) -> None:
        self._last_seen[workspace_id] = ensure_utc(when) if when else datetime.now(UTC)

    def forget(self, workspace_id: str) -> None:
        self._last_seen.pop(workspace_id, None)

    async def get_last_activity(self, workspace_id: str) -> datetime | None:
        return self._last_seen.get(workspace_id)
