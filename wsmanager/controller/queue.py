"""Per-reconciler work queue.

Keys are workspace ids.  The queue guarantees:

- **Single writer per key**: a key handed out by ``get`` is not handed out
  again until ``done`` is called for it.  Re-adds that arrive meanwhile are
  remembered and the key is re-queued on ``done``.
- **Deduplication**: adding a key that is already waiting is a no-op.
- **Delayed adds**: ``add_after`` keeps only the earliest pending deadline
  per key.
- **Backoff**: ``add_rate_limited`` delays by ``base * 2**failures`` (capped);
  ``forget`` resets the failure count.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

from loguru import logger


class WorkQueue:
    """asyncio work queue with per-key serialization and exponential backoff."""

    def __init__(
        self,
        name: str = "",
        *,
        backoff_base: timedelta = timedelta(milliseconds=5),
        backoff_max: timedelta = timedelta(seconds=1000),
    ) -> None:
        self.name = name
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max

        self._ready: asyncio.Queue[str | None] = asyncio.Queue()
        self._dirty: set[str] = set()
        self._processing: set[str] = set()
        self._failures: dict[str, int] = {}
        self._waiting: dict[str, tuple[float, asyncio.TimerHandle]] = {}
        self._shutting_down = False

    # -- Add -------------------------------------------------------------------

    def add(self, key: str) -> None:
        """Mark *key* as needing a pass."""
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            # Picked up again by ``done`` once the running pass finishes.
            return
        self._ready.put_nowait(key)

    def add_after(self, key: str, delay: timedelta) -> None:
        """Add *key* once *delay* has passed.  Earlier deadlines win."""
        if self._shutting_down:
            return
        seconds = delay.total_seconds()
        if seconds <= 0:
            self.add(key)
            return

        loop = asyncio.get_running_loop()
        deadline = loop.time() + seconds
        pending = self._waiting.get(key)
        if pending is not None:
            if pending[0] <= deadline:
                return
            pending[1].cancel()

        handle = loop.call_at(deadline, self._fire, key)
        self._waiting[key] = (deadline, handle)

    def add_rate_limited(self, key: str) -> timedelta:
        """Add *key* after its backoff delay and return that delay."""
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        delay = min(self._backoff_base * (2**failures), self._backoff_max)
        logger.debug("Queue {}: backing off {} for {}", self.name, key, delay)
        self.add_after(key, delay)
        return delay

    def forget(self, key: str) -> None:
        """Reset the backoff for *key*."""
        self._failures.pop(key, None)

    def num_requeues(self, key: str) -> int:
        return self._failures.get(key, 0)

    def _fire(self, key: str) -> None:
        self._waiting.pop(key, None)
        self.add(key)

    # -- Consume ---------------------------------------------------------------

    async def get(self) -> str | None:
        """Wait for the next key.  Returns ``None`` once the queue is shut down."""
        key = await self._ready.get()
        if key is None:
            # Let the other workers see the shutdown too.
            self._ready.put_nowait(None)
            return None
        self._dirty.discard(key)
        self._processing.add(key)
        return key

    def done(self, key: str) -> None:
        """Finish processing *key*, re-queueing it if it was added meanwhile."""
        self._processing.discard(key)
        if key in self._dirty and not self._shutting_down:
            self._ready.put_nowait(key)

    # -- Lifecycle -------------------------------------------------------------

    def shut_down(self) -> None:
        """Stop accepting keys and release all waiting consumers."""
        if self._shutting_down:
            return
        self._shutting_down = True
        for _, handle in self._waiting.values():
            handle.cancel()
        self._waiting.clear()
        self._ready.put_nowait(None)

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    # -- Introspection ---------------------------------------------------------

    def __len__(self) -> int:
        """Keys waiting to be processed (excluding delayed ones)."""
        return len(self._dirty)

    @property
    def delayed_count(self) -> int:
        return len(self._waiting)

    def is_processing(self, key: str) -> bool:
        return key in self._processing
