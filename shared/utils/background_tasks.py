import asyncio
import logging
from typing import Coroutine


class BackgroundTasks:
    """
    Owns fire-and-forget asyncio tasks.

    asyncio only keeps weak references to tasks created with create_task(), so
    the tracker holds strong references until each task finishes. Finished tasks
    remove themselves via a done callback; failures are logged, never re-raised.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._tasks: set[asyncio.Task] = set()
        self._logger = logger or logging.getLogger(__name__)

    def spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)

        def cleanup(t: asyncio.Task):
            self._tasks.discard(t)
            if t.cancelled():
                return
            error = t.exception()
            if error is not None:
                self._logger.error(
                    f"Background task {t.get_name()} failed: {error}",
                    exc_info=error,
                )

        task.add_done_callback(cleanup)
        return task

    def __len__(self) -> int:
        return len(self._tasks)

    async def cancel_all(self):
        """Cancel every tracked task and wait until they are done"""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def wait_all(self):
        """Wait for the currently tracked tasks, including ones they spawn"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
