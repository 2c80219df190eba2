"""Controller manager -- drives reconcilers from watch events and timers.

Each reconciler gets its own ``WorkQueue`` and a pool of workers.  The
manager:

1. enqueues every known workspace on start (initial resync);
2. fans store watch events out to every queue;
3. runs each reconcile pass under a deadline and turns its outcome into a
   scheduling decision:

   - ``requeue`` -> immediate re-add (version conflicts);
   - ``requeue_after`` -> delayed re-add (periodic checks);
   - exception or deadline -> re-add with exponential backoff.

Passes for the same workspace never overlap within one reconciler; passes
for different workspaces run concurrently up to the pool size.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from loguru import logger

from wsmanager.controller.queue import WorkQueue

if TYPE_CHECKING:
    from collections.abc import Sequence

    from wsmanager.controller.reconcile import Reconciler
    from wsmanager.controller.settings import WSManagerSettings
    from wsmanager.controller.store.base import WorkspaceStore


@dataclass
class Controller:
    """A reconciler bound to its queue and workers."""

    reconciler: Reconciler
    queue: WorkQueue
    workers: list[asyncio.Task[None]] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.reconciler.name


class ControllerManager:
    """Runs a set of reconcilers against a workspace store."""

    def __init__(
        self,
        store: WorkspaceStore,
        reconcilers: Sequence[Reconciler],
        *,
        max_concurrent_reconciles: int = 10,
        reconcile_timeout: timedelta = timedelta(seconds=5),
        backoff_base: timedelta = timedelta(milliseconds=5),
        backoff_max: timedelta = timedelta(seconds=1000),
    ) -> None:
        self._store = store
        self._max_concurrent = max_concurrent_reconciles
        self._reconcile_timeout = reconcile_timeout
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self.controllers = [Controller(reconciler=r, queue=self._new_queue(r.name)) for r in reconcilers]
        self._watch_task: asyncio.Task[None] | None = None
        self._started = False

    @classmethod
    def from_settings(
        cls,
        store: WorkspaceStore,
        reconcilers: Sequence[Reconciler],
        settings: WSManagerSettings,
    ) -> ControllerManager:
        return cls(
            store,
            reconcilers,
            max_concurrent_reconciles=settings.max_concurrent_reconciles,
            reconcile_timeout=settings.reconcile_timeout,
            backoff_base=settings.backoff_base,
            backoff_max=settings.backoff_max,
        )

    def _new_queue(self, name: str) -> WorkQueue:
        return WorkQueue(name, backoff_base=self._backoff_base, backoff_max=self._backoff_max)

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Spawn workers and the watch loop, then resync all workspaces."""
        if self._started:
            return
        self._started = True

        for controller in self.controllers:
            controller.workers = [
                asyncio.create_task(self._worker(controller), name=f"{controller.name}-worker-{i}")
                for i in range(self._max_concurrent)
            ]
        self._watch_task = asyncio.create_task(self._watch(), name="store-watch")
        # Subscribe before listing so no change slips in between.
        await asyncio.sleep(0)

        workspaces = await self._store.list_workspaces()
        for workspace in workspaces:
            self.enqueue(workspace.id)

        logger.info(
            "Controller manager started: reconcilers={}, workers={}, workspaces={}",
            [c.name for c in self.controllers],
            self._max_concurrent,
            len(workspaces),
        )

    async def stop(self) -> None:
        """Stop the watch loop and let in-flight passes finish."""
        if not self._started:
            return

        if self._watch_task is not None:
            self._watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._watch_task
            self._watch_task = None

        for controller in self.controllers:
            controller.queue.shut_down()
        for controller in self.controllers:
            await asyncio.gather(*controller.workers, return_exceptions=True)
            controller.workers = []

        self._started = False
        logger.info("Controller manager stopped")

    @property
    def is_running(self) -> bool:
        return self._started and self._watch_task is not None and not self._watch_task.done()

    # -- Triggers --------------------------------------------------------------

    def enqueue(self, workspace_id: str) -> None:
        """Trigger a pass of every reconciler for *workspace_id*."""
        for controller in self.controllers:
            controller.queue.add(workspace_id)

    async def _watch(self) -> None:
        async for event in self._store.watch():
            logger.trace("Watch: {} {}", event.kind, event.workspace_id)
            self.enqueue(event.workspace_id)

    # -- Workers ---------------------------------------------------------------

    async def _worker(self, controller: Controller) -> None:
        queue = controller.queue
        while True:
            key = await queue.get()
            if key is None:
                return
            try:
                await self.process(controller, key)
            finally:
                queue.done(key)

    async def process(self, controller: Controller, workspace_id: str) -> None:
        """Run one reconcile pass and schedule the next trigger."""
        queue = controller.queue
        log = logger.bind(controller=controller.name, workspace=workspace_id)

        try:
            result = await asyncio.wait_for(
                controller.reconciler.reconcile(workspace_id),
                timeout=self._reconcile_timeout.total_seconds(),
            )
        except TimeoutError:
            delay = queue.add_rate_limited(workspace_id)
            log.warning(
                "{}: pass for {} exceeded {}, retrying in {}",
                controller.name,
                workspace_id,
                self._reconcile_timeout,
                delay,
            )
            return
        except Exception:
            delay = queue.add_rate_limited(workspace_id)
            log.exception("{}: pass for {} failed, retrying in {}", controller.name, workspace_id, delay)
            return

        queue.forget(workspace_id)
        if result.requeue:
            queue.add(workspace_id)
        elif result.requeue_after is not None:
            queue.add_after(workspace_id, result.requeue_after)
