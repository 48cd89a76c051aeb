"""Unit tests for the in-process TaskQueue."""

from __future__ import annotations

import asyncio

import pytest

from src.pipeline.task_queue import TaskQueue


class TestTaskQueue:
    @pytest.mark.asyncio
    async def test_runs_scheduled_tasks_in_order(self) -> None:
        queue = TaskQueue()
        ran: list[str] = []

        async def task(name: str) -> None:
            ran.append(name)

        await queue.start()
        await queue.schedule(task, "a")
        await queue.schedule(task, "b")
        await queue.join()
        await queue.stop()

        assert ran == ["a", "b"]

    @pytest.mark.asyncio
    async def test_failing_task_does_not_stop_worker(self) -> None:
        queue = TaskQueue()
        ran: list[str] = []

        async def broken() -> None:
            raise RuntimeError("boom")

        async def task() -> None:
            ran.append("ok")

        await queue.start()
        await queue.schedule(broken)
        await queue.schedule(task)
        await queue.join()

        assert ran == ["ok"]
        assert queue.running is True
        await queue.stop()

    @pytest.mark.asyncio
    async def test_delayed_task_runs_after_delay(self) -> None:
        queue = TaskQueue()
        ran: list[float] = []
        loop = asyncio.get_running_loop()

        async def task() -> None:
            ran.append(loop.time())

        await queue.start()
        scheduled_at = loop.time()
        await queue.schedule(task, delay=0.05)
        await queue.join()
        await queue.stop()

        assert len(ran) == 1
        assert ran[0] - scheduled_at >= 0.04

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_timers(self) -> None:
        queue = TaskQueue()
        ran: list[str] = []

        async def task() -> None:
            ran.append("late")

        await queue.start()
        await queue.schedule(task, delay=30)
        await queue.stop()

        assert ran == []
        assert queue.running is False

    @pytest.mark.asyncio
    async def test_workers_run_concurrently(self) -> None:
        queue = TaskQueue(workers=2)
        both_started = asyncio.Event()
        started: list[int] = []

        async def task(n: int) -> None:
            started.append(n)
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)

        await queue.start()
        await queue.schedule(task, 1)
        await queue.schedule(task, 2)
        await queue.join()
        await queue.stop()

        assert sorted(started) == [1, 2]

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self) -> None:
        queue = TaskQueue()
        await queue.start()
        await queue.start()
        assert queue.running is True
        await queue.stop()
