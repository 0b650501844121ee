"""
auth/scheduler.py -- Background sweep of the revocation set.

One CleanupScheduler per process, started in the app lifespan. It waits one
full interval before the first sweep (the warm-up tick does nothing), then
calls TokenService.sweep() every interval until stop() is called. Ticks
sit on a fixed grid counted from start().

stop() only sets an event; the loop notices it between ticks. A sweep in
progress is therefore never cancelled halfway -- shutdown waits for it.
"""

from __future__ import annotations

import asyncio
import logging
import math

from auth.service import TokenService

logger = logging.getLogger("vaultsync.scheduler")

_DEFAULT_INTERVAL = 600.0  # 10 minutes in seconds


class CleanupScheduler:
    """Periodic asyncio task that prunes naturally expired revocations.

    Usage (inside a running event loop):
        scheduler = CleanupScheduler(token_service, interval_seconds=600)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, service: TokenService, interval_seconds: float = _DEFAULT_INTERVAL) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.service = service
        self.interval_seconds = interval_seconds
        self.sweeps = 0
        self._task: asyncio.Task | None = None
        self._stop_requested: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the sweep loop. A scheduler can be started exactly once."""
        if self._task is not None:
            raise RuntimeError("CleanupScheduler has already been started")
        self._stop_requested = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="revocation-cleanup")
        logger.info("Revocation cleanup interval is %.0f seconds", self.interval_seconds)
        return self._task

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it. Safe to call more than once."""
        if self._task is None or self._stop_requested is None:
            return
        self._stop_requested.set()
        await self._task

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        started = deadline = loop.time()
        # The first wait is the warm-up tick: nothing is swept at startup.
        while True:
            deadline = self.next_deadline(started, deadline, loop.time())
            if await self._wait_until(loop, deadline):
                break
            self._sweep_once()
        logger.info("Revocation cleanup stopped after %d sweeps", self.sweeps)

    def next_deadline(self, started: float, previous: float, now: float) -> float:
        """Return the next tick on the fixed grid started + k * interval.

        Ticks are measured from start, not from the end of the last sweep, so
        sweep duration does not push the schedule later. Ticks missed while a
        sweep overran are skipped rather than fired back to back.
        """
        deadline = previous + self.interval_seconds
        if deadline <= now:
            elapsed_ticks = math.floor((now - started) / self.interval_seconds)
            deadline = started + (elapsed_ticks + 1) * self.interval_seconds
        return deadline

    async def _wait_until(self, loop: asyncio.AbstractEventLoop, deadline: float) -> bool:
        """Sleep until deadline. Returns True if stop() was called meanwhile."""
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout=max(0.0, deadline - loop.time()))
        except asyncio.TimeoutError:
            return False
        return True

    def _sweep_once(self) -> None:
        logger.info("Running revocation cleanup...")
        try:
            removed = self.service.sweep()
        except Exception:
            # One failed sweep must not end the loop for the rest of the process.
            logger.exception("Revocation cleanup failed")
            return
        self.sweeps += 1
        logger.info(
            "Revocation cleanup removed %d entries, %d still revoked",
            removed,
            len(self.service.revocations),
        )
