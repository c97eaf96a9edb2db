# api/scheduler.py
import asyncio
import contextlib
import logging
import os
import time

from fastapi import BackgroundTasks
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

REFRESH_INTERVAL_SECONDS = float(os.getenv("REFRESH_INTERVAL_SECONDS", "120"))


def refresh_quietly(aggregator) -> None:
    try:
        aggregator.refresh()
    except Exception:
        logger.exception("Background refresh failed")


def trigger_background(aggregator, background_tasks: BackgroundTasks) -> None:
    """Queue a refresh to run after the current response has been sent."""
    background_tasks.add_task(refresh_quietly, aggregator)


class RefreshScheduler:
    """Runs aggregator.refresh now and then every `interval` seconds.

    Refreshes run in the threadpool so the event loop keeps serving requests.
    A tick never overlaps the previous one; a slow refresh delays the next.
    """

    def __init__(self, aggregator, interval: float = REFRESH_INTERVAL_SECONDS):
        self.aggregator = aggregator
        self.interval = interval
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self):
        while True:
            started = time.monotonic()
            await run_in_threadpool(refresh_quietly, self.aggregator)
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))

    def start(self) -> None:
        if self.running:
            return
        logger.info(f"Refreshing every {self.interval:.0f}s")
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
