import asyncio
import logging
from typing import Awaitable, Callable


ConnectivityProbe = Callable[[], Awaitable[bool]]


class ConnectivityMonitor:
    """Polls a reachability probe and reports every result to a callback"""

    def __init__(
        self,
        probe: ConnectivityProbe,
        on_result: Callable[[bool], None],
        check_interval: float = 10.0,  # seconds
        logger: logging.Logger | None = None,
    ):
        self.probe = probe
        self.on_result = on_result
        self.check_interval = check_interval
        self._logger = logger or logging.getLogger(__name__)
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        if self._running:
            self._logger.warning("ConnectivityMonitor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self.monitor(), name="connectivity-monitor")

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._logger.info("ConnectivityMonitor stopped")

    async def monitor(self):
        while self._running:
            await self.check_once()
            await asyncio.sleep(self.check_interval)

    async def check_once(self) -> bool:
        try:
            is_reachable = bool(await self.probe())
        except Exception as e:
            self._logger.warning(f"Connectivity probe failed: {e}")
            is_reachable = False
        try:
            self.on_result(is_reachable)
        except Exception as e:
            self._logger.error(f"Error handling connectivity result: {e}", exc_info=True)
        return is_reachable
