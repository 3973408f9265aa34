"""Periodic and on-demand sync triggers."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable

from ..activity import ChangeTracker
from .executor import SyncExecutor
from .models import SyncOutcome

logger = logging.getLogger(__name__)

PERIODIC_MESSAGE = "Periodic auto-update of developer logs."


class SyncScheduler:
    """Fires the executor on a fixed period and on explicit flushes.

    A periodic tick that finds an attempt in flight is dropped and the dirty
    flag stays set for the next tick. An explicit flush waits for the running
    attempt and then syncs again if anything is still unsynced.
    """

    def __init__(
        self,
        executor: SyncExecutor,
        tracker: ChangeTracker,
        log_file: Callable[[], Path | None],
        *,
        interval: float = 3600.0,
    ) -> None:
        self._executor = executor
        self._tracker = tracker
        self._log_file = log_file
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._running_tick: asyncio.Task | None = None
        self.last_outcome: SyncOutcome | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Sync scheduler started (every %gs)", self._interval)

    async def stop(self) -> None:
        """Cancel the timer; a tick that is already syncing is awaited, not aborted."""

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        tick = self._running_tick
        if tick is not None and not tick.done():
            await tick
        self._running_tick = None
        logger.info("Sync scheduler stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            tick = asyncio.create_task(self._tick())
            self._running_tick = tick
            # Cancelling the loop leaves the tick running; stop() waits for it.
            await asyncio.shield(tick)
            self._running_tick = None

    async def _tick(self) -> None:
        try:
            await self.maybe_sync()
        except Exception:
            logger.exception("Sync tick failed")

    def should_sync(self) -> bool:
        if not self._tracker.dirty:
            return False
        path = self._log_file()
        return path is not None and _has_content(path)

    async def maybe_sync(self, reason: str = PERIODIC_MESSAGE) -> SyncOutcome | None:
        """Sync if there is something to sync and no attempt is in flight."""

        if not self.should_sync():
            return None
        if self._executor.in_flight:
            logger.info("Sync already in progress; skipping tick")
            return self._remember(SyncOutcome.skipped(reason))
        outcome = await self._executor.sync(reason, wait=False)
        return self._remember(outcome)

    async def flush_now(self, reason: str) -> SyncOutcome | None:
        """Sync now, queueing behind an in-flight attempt; None when nothing is unsynced."""

        async with self._executor.lock:
            if not self.should_sync():
                return None
            outcome = await self._executor.sync_locked(reason)
        return self._remember(outcome)

    def _remember(self, outcome: SyncOutcome) -> SyncOutcome:
        self.last_outcome = outcome
        return outcome


def _has_content(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


__all__ = ["PERIODIC_MESSAGE", "SyncScheduler"]
