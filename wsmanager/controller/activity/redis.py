"""Redis-backed activity lookup.

The heartbeat service writes one key per workspace::

    {prefix}:{workspace_id} -> "2024-05-01T12:00:00+00:00" | "1714564800.0"

Values may be ISO-8601 timestamps or epoch seconds.  Keys are expected to
carry a TTL set by the writer; a missing key means "never active".
"""

from __future__ import annotations

from datetime import UTC, datetime

import redis.asyncio as aioredis
from loguru import logger

from wsmanager.controller.models.timestamps import ensure_utc

DEFAULT_KEY_PREFIX = "wsman:activity"


class RedisActivity:
    """Read (and, for heartbeat writers, record) last activity in Redis."""

    def __init__(self, client: aioredis.Redis, prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    def _key(self, workspace_id: str) -> str:
        return f"{self._prefix}:{workspace_id}"

    async def get_last_activity(self, workspace_id: str) -> datetime | None:
        raw = await self._client.get(self._key(workspace_id))
        if raw is None:
            return None
        value = raw.decode() if isinstance(raw, bytes) else str(raw)
        parsed = parse_timestamp(value)
        if parsed is None:
            logger.warning("Activity: ignoring malformed timestamp {!r} for {}", value, workspace_id)
        return parsed

    async def record(self, workspace_id: str, when: datetime | None = None, *, ttl: int | None = None) -> None:
        stamp = ensure_utc(when) if when else datetime.now(UTC)
        await self._client.set(self._key(workspace_id), stamp.isoformat(), ex=ttl)


def parse_timestamp(value: str) -> datetime | None:
    """Parse epoch seconds or an ISO-8601 timestamp.  ``None`` if neither."""
    try:
        return datetime.fromtimestamp(float(value), tz=UTC)
    except (ValueError, OverflowError, OSError):
        pass
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        return None
