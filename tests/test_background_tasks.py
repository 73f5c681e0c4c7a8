"""
Tests for the background task tracker

Tests verify:
- Every spawned task is tracked until it finishes, without a cap
- cancel_all() reaches every task
- Failures are logged instead of raised
"""

import asyncio
import logging

from shared.utils.background_tasks import BackgroundTasks


async def test_cancel_all_reaches_every_task():
    tasks = BackgroundTasks()
    release = asyncio.Event()
    spawned = [tasks.spawn(release.wait(), name=f"wait-{i}") for i in range(1500)]

    assert len(tasks) == 1500

    await tasks.cancel_all()

    assert all(task.cancelled() for task in spawned)
    assert len(tasks) == 0


async def test_finished_tasks_are_dropped():
    tasks = BackgroundTasks()

    async def noop():
        return None

    tasks.spawn(noop(), name="noop")
    await tasks.wait_all()

    assert len(tasks) == 0


async def test_failed_task_is_logged(caplog):
    tasks = BackgroundTasks()

    async def boom():
        raise RuntimeError("sync exploded")

    with caplog.at_level(logging.ERROR):
        tasks.spawn(boom(), name="boom")
        await tasks.wait_all()

    assert "Background task boom failed: sync exploded" in caplog.text
