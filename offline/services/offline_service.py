import asyncio
import logging
from typing import Any, Callable

from offline.config import OfflineConfig
from offline.domain.events import ConnectivityChange, OfflineEvent
from offline.domain.queue import (
    OperationRequest,
    QueuedItem,
    QueuedItemStatus,
    QueueItemFilter,
)
from offline.domain.sync import (
    ConflictResolution,
    ConnectivityState,
    ResolutionOutcome,
    ResolvedConflict,
    SyncActivity,
    SyncOptions,
    SyncResult,
)
from offline.exceptions import NotInitialized, OfflineError
from offline.services.conflict_resolution import resolve_conflict
from offline.services.connectivity_monitor import ConnectivityMonitor, ConnectivityProbe
from offline.services.event_registry import EventListener, EventRegistry
from offline.services.queue_manager import QueueManager
from offline.services.retry_policy import RetryPolicy
from offline.transport.acknowledging_gateway import AcknowledgingGateway
from offline.transport.interface import (
    PushResult,
    PushStatus,
    RemoteSyncGatewayInterface,
)
from shared.security.payload_cipher import FernetPayloadCipher, PayloadDecryptionError
from shared.storage.interface import KeyValueStorageInterface
from shared.storage.memory_storage import MemoryStorage
from shared.utils.background_tasks import BackgroundTasks
from shared.utils.clock import current_time_ms


SYNC_DISABLED_ERROR = "Offline mode is disabled"
OFFLINE_SYNC_ERROR = "Cannot sync while offline"


class OfflineService:
    """
    Offline-first synchronization of queued operations.

    Owns the connectivity flag, the periodic sync task and the listener registry.
    Sync passes are serialized: a pass started while another one runs waits
    for it and then works on whatever is still pending. sync() never raises,
    failures are reported through SyncResult.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface | None = None,
        queue_manager: QueueManager | None = None,
        gateway: RemoteSyncGatewayInterface | None = None,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], int] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._storage = storage or MemoryStorage()
        self._queue_manager = queue_manager or QueueManager()
        self._gateway = gateway or AcknowledgingGateway()
        self._retry_policy = retry_policy or RetryPolicy.default()
        self._clock = clock or current_time_ms

        self._config: OfflineConfig | None = None
        self._cipher: FernetPayloadCipher | None = None
        self._connectivity = ConnectivityState.ONLINE
        self._activity = SyncActivity.IDLE
        self._sync_lock = asyncio.Lock()
        self._events = EventRegistry(logger=self._logger)
        self._background_tasks = BackgroundTasks(logger=self._logger)
        self._periodic_sync_task: asyncio.Task | None = None
        self._waiting_sync_task: asyncio.Task | None = None
        self._connectivity_monitor: ConnectivityMonitor | None = None

    @property
    def config(self) -> OfflineConfig | None:
        return self._config

    @property
    def storage(self) -> KeyValueStorageInterface:
        return self._storage

    @property
    def queue_manager(self) -> QueueManager:
        return self._queue_manager

    @property
    def connectivity(self) -> ConnectivityState:
        return self._connectivity

    @property
    def activity(self) -> SyncActivity:
        return self._activity

    def is_online(self) -> bool:
        return self._connectivity == ConnectivityState.ONLINE

    @property
    def sync_enabled(self) -> bool:
        return self._config is not None and self._config.enabled

    async def initialize(self, config: OfflineConfig | None = None) -> None:
        """
        Bind storage and queue manager, apply the configuration and arm periodic sync.

        A second call replaces the configuration and re-arms the timer; queued
        items and cached data are left as they are.
        """
        self._logger.info("Initializing offline service")
        self._config = config or OfflineConfig()
        self._cipher = (
            FernetPayloadCipher(self._config.encryption_key)
            if self._config.encryption_key
            else None
        )

        try:
            await self._storage.initialize()
            await self._queue_manager.initialize(self._storage)
        except Exception as e:
            self._logger.error(f"Failed to initialize offline service: {e}")
            raise

        self._cancel_periodic_sync()
        if self._config.enabled and self._config.sync_interval:
            self._start_periodic_sync(self._config.sync_interval)

        self._logger.info("Offline service initialized")

    # Connectivity

    def set_online(self, online: bool) -> None:
        """
        Handle an external connectivity signal.

        Repeated signals for the current state are ignored. Coming back online
        with sync enabled starts a background sync pass.
        """
        new_state = ConnectivityState.ONLINE if online else ConnectivityState.OFFLINE
        previous_state = self._connectivity
        if new_state == previous_state:
            return

        self._logger.info(f"Connection status changed: {new_state.value}")
        self._connectivity = new_state
        self._events.emit(
            OfflineEvent(new_state.value), ConnectivityChange(timestamp=self._clock())
        )

        if online and self.sync_enabled:
            self._logger.info("Back online, triggering sync")
            self._spawn_sync(name="sync-after-reconnect")

    async def attach_connectivity_monitor(
        self, probe: ConnectivityProbe, check_interval: float = 10.0
    ) -> ConnectivityMonitor:
        """Poll `probe` every `check_interval` seconds and feed results to set_online"""
        await self._stop_connectivity_monitor()
        self._connectivity_monitor = ConnectivityMonitor(
            probe=probe,
            on_result=self.set_online,
            check_interval=check_interval,
            logger=self._logger,
        )
        self._connectivity_monitor.start()
        return self._connectivity_monitor

    # Events

    def on(self, event: OfflineEvent | str, listener: EventListener) -> None:
        self._events.on(event, listener)

    def off(self, event: OfflineEvent | str, listener: EventListener) -> None:
        self._events.off(event, listener)

    # Synchronization

    async def sync(self, options: SyncOptions | None = None) -> SyncResult:
        options = options or SyncOptions()
        self._logger.info(f"Starting data synchronization: {options}")

        if not self.sync_enabled:
            return SyncResult(
                success=False, error=SYNC_DISABLED_ERROR, timestamp=self._clock()
            )

        async with self._sync_lock:
            if asyncio.current_task() is self._waiting_sync_task:
                self._waiting_sync_task = None
            self._activity = SyncActivity.SYNCING
            try:
                return await self._run_sync_pass(options)
            finally:
                self._activity = SyncActivity.IDLE

    async def _run_sync_pass(self, options: SyncOptions) -> SyncResult:
        start_time = self._clock()
        result = SyncResult(success=True, timestamp=start_time)
        completed = False

        try:
            if options.timeout:
                async with asyncio.timeout(options.timeout / 1000):
                    await self._sync_phases(options=options, result=result)
            else:
                await self._sync_phases(options=options, result=result)
        except asyncio.TimeoutError:
            self._logger.error(f"Sync timed out after {options.timeout}ms")
            result.success = False
            result.error = f"Sync timed out after {options.timeout}ms"
        except Exception as e:
            self._logger.error(f"Sync failed: {e}", exc_info=True)
            result.success = False
            result.error = str(e)
        else:
            completed = True
            if result.failed_item_count:
                result.success = False
                result.error = f"{result.failed_item_count} item(s) failed to sync"

        result.timestamp = self._clock()
        result.duration = result.timestamp - start_time
        if completed:
            self._events.emit(OfflineEvent.SYNC, result)

        self._logger.info(
            f"Sync finished: success={result.success}, "
            f"synced={result.synced_item_count}, failed={result.failed_item_count}, "
            f"conflicts={result.conflict_count}, duration={result.duration}ms"
        )
        return result

    async def _sync_phases(self, options: SyncOptions, result: SyncResult):
        if not self.is_online() and not options.force:
            raise OfflineError(OFFLINE_SYNC_ERROR)

        pending_items = await self._queue_manager.get_items(
            QueueItemFilter(status=QueuedItemStatus.PENDING)
        )
        self._logger.debug(f"Found {len(pending_items)} pending operations to sync")

        items_to_process = pending_items
        if options.types:
            items_to_process = [
                item for item in items_to_process if item.resource_type in options.types
            ]

        now = self._clock()
        items_to_process = [
            item for item in items_to_process if self._retry_policy.is_due(item, now)
        ]

        if options.batch_size and options.batch_size > 0:
            items_to_process = items_to_process[: options.batch_size]

        if not options.pull_only and items_to_process:
            strategy = options.conflict_resolution or self._config.conflict_resolution
            for item in items_to_process:
                await self._push_item(item=item, strategy=strategy, result=result)

        if not options.push_only:
            await self._pull_remote_changes(types=options.types)

    async def _push_item(
        self, item: QueuedItem, strategy: ConflictResolution, result: SyncResult
    ):
        try:
            push_result = await self._gateway.push(item)
        except Exception as e:
            self._logger.warning(f"Push failed for item {item.id}: {e}")
            push_result = PushResult(status=PushStatus.REJECTED, error=str(e))

        if push_result.status == PushStatus.ACCEPTED:
            await self._complete_item(item=item, result=result)
        elif push_result.status == PushStatus.CONFLICT:
            await self._resolve_item_conflict(
                item=item,
                remote_data=push_result.remote_data,
                strategy=strategy,
                result=result,
            )
        else:
            await self._fail_item(
                item=item, error=push_result.error or "Push rejected", result=result
            )

    async def _complete_item(
        self, item: QueuedItem, result: SyncResult, data: Any = None
    ):
        updates = {
            "status": QueuedItemStatus.COMPLETED,
            "last_attempt_at": self._clock(),
        }
        if data is not None:
            updates["data"] = data
        await self._queue_manager.update_item(item.id, updates)
        result.synced_item_count += 1
        result.add_synced_type(item.resource_type)

    async def _resolve_item_conflict(
        self,
        item: QueuedItem,
        remote_data: Any,
        strategy: ConflictResolution,
        result: SyncResult,
    ):
        decision = resolve_conflict(
            strategy=strategy,
            item=item,
            remote_data=remote_data,
            resolver=self._config.conflict_resolver,
        )
        self._logger.info(
            f"Conflict on {item.resource_type} {item.id} resolved as {decision.outcome.value}"
        )
        result.conflict_count += 1
        result.add_resolved_conflict(
            ResolvedConflict(
                id=item.id, type=item.resource_type, resolution=decision.outcome
            )
        )

        if decision.outcome == ResolutionOutcome.MANUAL:
            await self._queue_manager.update_item(
                item.id,
                {
                    "status": QueuedItemStatus.FAILED,
                    "last_attempt_at": self._clock(),
                    "last_error": decision.error,
                },
            )
            result.failed_item_count += 1
            return

        await self._complete_item(item=item, result=result, data=decision.data)

    async def _fail_item(self, item: QueuedItem, error: str, result: SyncResult):
        attempts = item.attempts + 1
        status = (
            QueuedItemStatus.FAILED
            if attempts >= self._config.max_sync_retries
            else QueuedItemStatus.PENDING
        )
        await self._queue_manager.update_item(
            item.id,
            {
                "status": status,
                "attempts": attempts,
                "last_attempt_at": self._clock(),
                "last_error": error,
            },
        )
        result.failed_item_count += 1
        self._logger.warning(
            f"Item {item.id} failed to sync (attempt {attempts}): {error}"
        )

    async def _pull_remote_changes(self, types: list[str] | None):
        changes = await self._gateway.pull(types)
        for change in changes:
            await self.store_data(change.key, change.data, change.options)
        self._logger.debug(f"Merged {len(changes)} remote changes into local cache")

    def _spawn_sync(self, name: str) -> asyncio.Task:
        """
        Start a background pass unless one is already waiting for the lock.

        A waiting pass reads the queue only after it acquires the lock, so it
        also covers operations queued in the meantime.
        """
        waiting = self._waiting_sync_task
        if waiting is not None and not waiting.done():
            self._logger.debug(f"Sync already scheduled, skipping {name}")
            return waiting
        self._waiting_sync_task = self._background_tasks.spawn(self.sync(), name=name)
        return self._waiting_sync_task

    def _start_periodic_sync(self, interval: int):
        self._logger.debug(f"Starting automatic sync every {interval}ms")
        self._periodic_sync_task = asyncio.create_task(
            self._periodic_sync_loop(interval_seconds=interval / 1000),
            name="periodic-sync",
        )

    async def _periodic_sync_loop(self, interval_seconds: float):
        while True:
            await asyncio.sleep(interval_seconds)
            if not self.is_online():
                continue
            try:
                await self.sync()
            except Exception as e:
                self._logger.error(f"Auto-sync failed: {e}", exc_info=True)

    def _cancel_periodic_sync(self):
        if self._periodic_sync_task is not None:
            self._periodic_sync_task.cancel()
            self._periodic_sync_task = None

    async def wait_until_idle(self):
        """Wait for background sync passes started so far"""
        await self._background_tasks.wait_all()

    # Queue

    async def queue_operation(self, operation: OperationRequest) -> str:
        self._ensure_initialized()
        self._logger.debug(f"Queueing operation: {operation.operation_type}")

        item = QueuedItem(
            operation_type=operation.operation_type,
            resource_type=operation.resource_type,
            resource_id=operation.resource_id,
            data=operation.data,
            options=operation.options or {},
            status=QueuedItemStatus.PENDING,
            queued_at=self._clock(),
            attempts=0,
            priority=operation.priority or 0,
        )
        try:
            item_id = await self._queue_manager.add_item(item)
        except Exception as e:
            self._logger.error(f"Failed to queue operation: {e}")
            raise

        self._logger.debug(f"Operation queued successfully: {item_id}")

        if self.is_online() and self.sync_enabled:
            self._spawn_sync(name="sync-after-queue")

        return item_id

    async def get_operation(self, item_id: str) -> QueuedItem | None:
        self._ensure_initialized()
        return await self._queue_manager.get_item(item_id)

    async def get_pending_operations(self) -> list[QueuedItem]:
        self._ensure_initialized()
        items = await self._queue_manager.get_items(
            QueueItemFilter(
                status=[QueuedItemStatus.PENDING, QueuedItemStatus.IN_PROGRESS]
            )
        )
        self._logger.debug(f"Found {len(items)} pending operations")
        return items

    async def clear_pending_operations(self) -> int:
        """Remove PENDING items one at a time. IN_PROGRESS items are kept."""
        self._ensure_initialized()
        pending_items = await self._queue_manager.get_items(
            QueueItemFilter(status=QueuedItemStatus.PENDING)
        )
        for item in pending_items:
            await self._queue_manager.remove_item(item.id)
        self._logger.debug(f"Cleared {len(pending_items)} pending operations")
        return len(pending_items)

    async def retry_failed_operations(self) -> int:
        """Move FAILED items back to PENDING with a fresh attempt budget"""
        self._ensure_initialized()
        failed_items = await self._queue_manager.get_items(
            QueueItemFilter(status=QueuedItemStatus.FAILED)
        )
        for item in failed_items:
            await self._queue_manager.update_item(
                item.id, {"status": QueuedItemStatus.PENDING, "attempts": 0}
            )
        self._logger.info(f"Re-queued {len(failed_items)} failed operations")
        return len(failed_items)

    # Cache

    async def store_data(self, key: str, data: Any, options: dict | None = None) -> None:
        """
        Cache data locally.

        `options["expires_in"]` (ms) makes get_data drop the entry once it is older.
        """
        self._ensure_initialized()
        self._logger.debug(f"Storing data with key: {key}")

        metadata = {"timestamp": self._clock(), "options": dict(options or {})}
        payload = data
        if self._cipher is not None:
            payload = self._cipher.encrypt(data)
            metadata["encrypted"] = True

        try:
            await self._storage.set_item(key, {"data": payload, "metadata": metadata})
        except Exception as e:
            self._logger.error(f"Failed to store data {key}: {e}")
            raise

    async def get_data(self, key: str) -> Any | None:
        """Return cached data, or None when absent or expired (expired entries are deleted)"""
        self._ensure_initialized()
        self._logger.debug(f"Retrieving data with key: {key}")

        stored = await self._storage.get_item(key)
        if stored is None:
            return None
        if not isinstance(stored, dict) or "data" not in stored:
            self._logger.warning(f"Ignoring non-cache entry under key: {key}")
            return None

        metadata = stored.get("metadata") or {}
        expires_in = (metadata.get("options") or {}).get("expires_in")
        if expires_in:
            expiration_time = metadata.get("timestamp", 0) + expires_in
            if self._clock() > expiration_time:
                self._logger.debug(f"Data expired: {key}")
                await self._storage.remove_item(key)
                return None

        data = stored.get("data")
        if metadata.get("encrypted"):
            if self._cipher is None:
                raise PayloadDecryptionError(
                    f"Data under {key} is encrypted but no encryption key is configured"
                )
            data = self._cipher.decrypt(data)
        return data

    # Lifecycle

    async def dispose(self) -> None:
        """Cancel background work, stop connectivity polling and drop listeners"""
        periodic_sync_task = self._periodic_sync_task
        self._cancel_periodic_sync()
        if periodic_sync_task is not None:
            await asyncio.gather(periodic_sync_task, return_exceptions=True)
        await self._stop_connectivity_monitor()
        await self._background_tasks.cancel_all()
        self._waiting_sync_task = None
        self._events.clear()
        self._logger.info("Offline service disposed")

    async def _stop_connectivity_monitor(self):
        if self._connectivity_monitor is not None:
            await self._connectivity_monitor.stop()
            self._connectivity_monitor = None

    def _ensure_initialized(self):
        if self._config is None:
            raise NotInitialized(
                "Offline service not initialized. Call initialize() first."
            )
