"""In-process task queue for background ingestion work.

# ─── HOW THE QUEUE WORKS ──────────────────────────────────────────────
#
#   job manager ──schedule(fn, *args, delay)──→ asyncio.Queue ──→ worker(s)
#
#   - schedule() never blocks the caller: delayed work waits in its own
#     timer task and is put on the queue when the delay elapses
#   - each worker pulls one (fn, args) pair at a time and awaits it
#   - an exception raised by a task is logged and the worker moves on
#   - stop() cancels pending timers and workers; work still queued is dropped
#   - join() waits until every scheduled task (including delayed ones) ran
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from src.interfaces.job_store import IJobScheduler, JobCallable

logger = structlog.get_logger(logger_name=__name__)


class TaskQueue(IJobScheduler):
    """Runs scheduled coroutines on a fixed number of worker tasks.

    Parameters
    ----------
    workers:
        Number of concurrent worker tasks.
    """

    def __init__(self, workers: int = 1) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._worker_count = max(1, workers)
        self._workers: list[asyncio.Task[None]] = []
        self._timers: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return any(not w.done() for w in self._workers)

    async def start(self) -> None:
        if self.running:
            return
        self._workers = [
            asyncio.create_task(self._work(n), name=f"task-queue-worker-{n}")
            for n in range(self._worker_count)
        ]
        logger.info("task_queue_started", workers=self._worker_count)

    async def stop(self) -> None:
        for timer in list(self._timers):
            timer.cancel()
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._timers, *self._workers, return_exceptions=True)
        self._timers.clear()
        self._workers = []
        logger.info("task_queue_stopped", dropped=self._queue.qsize())

    async def schedule(self, fn: JobCallable, *args: Any, delay: float = 0.0) -> None:
        if delay > 0:
            timer = asyncio.create_task(self._put_later(fn, args, delay))
            self._timers.add(timer)
            timer.add_done_callback(self._timers.discard)
        else:
            self._queue.put_nowait((fn, args))
        logger.debug("task_scheduled", task=getattr(fn, "__name__", repr(fn)), delay=delay)

    async def join(self) -> None:
        """Wait until all scheduled work, delayed tasks included, has run."""
        while self._timers:
            await asyncio.gather(*list(self._timers), return_exceptions=True)
        await self._queue.join()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _put_later(self, fn: JobCallable, args: tuple[Any, ...], delay: float) -> None:
        await asyncio.sleep(delay)
        self._queue.put_nowait((fn, args))

    async def _work(self, worker_id: int) -> None:
        while True:
            fn, args = await self._queue.get()
            name = getattr(fn, "__name__", repr(fn))
            try:
                await fn(*args)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("task_failed", worker=worker_id, task=name, error=str(exc), exc_info=True)
            finally:
                self._queue.task_done()
