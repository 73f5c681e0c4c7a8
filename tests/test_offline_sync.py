"""
Tests for the sync pass of the offline service

Tests verify:
- Disabled and offline passes report errors instead of raising
- Type filter, batch size and push/pull-only options select the right work
- Timeouts end the pass with a failed result
- Concurrent passes are serialized
- Background passes run after reconnect, after queueing and on a timer
"""

import asyncio

from conftest import make_item
from offline.config import OfflineConfig
from offline.domain.events import OfflineEvent
from offline.domain.queue import OperationRequest, QueuedItemStatus, QueueItemFilter
from offline.domain.sync import SyncActivity, SyncOptions
from offline.services.offline_service import OFFLINE_SYNC_ERROR, SYNC_DISABLED_ERROR
from offline.transport.interface import PushResult, PushStatus, RemoteChange


class SlowGateway:
    """Accepts pushes after a delay"""

    def __init__(self, delay: float):
        self.delay = delay
        self.pushed = []

    async def push(self, item):
        await asyncio.sleep(self.delay)
        self.pushed.append(item.id)
        return PushResult(status=PushStatus.ACCEPTED)

    async def pull(self, types=None):
        return []


async def _statuses(service):
    items = await service.queue_manager.get_items()
    return {item.resource_id: item.status for item in items}


async def test_sync_when_disabled_returns_error_result(service_factory, gateway):
    service = await service_factory(OfflineConfig(enabled=False))
    await service.queue_manager.add_item(make_item())

    result = await service.sync()

    assert result.success is False
    assert result.error == SYNC_DISABLED_ERROR
    assert result.synced_item_count == 0
    assert result.conflict_count == 0
    assert result.failed_item_count == 0
    assert gateway.pushed == []
    assert await _statuses(service) == {None: QueuedItemStatus.PENDING}


async def test_sync_while_offline_fails_without_force(offline_service, gateway):
    offline_service.set_online(False)
    await offline_service.queue_manager.add_item(make_item(resource_id="p1"))
    events = []
    offline_service.on(OfflineEvent.SYNC, events.append)

    result = await offline_service.sync()

    assert result.success is False
    assert result.error == OFFLINE_SYNC_ERROR
    assert events == []
    assert gateway.pushed == []
    assert await _statuses(offline_service) == {"p1": QueuedItemStatus.PENDING}


async def test_forced_sync_while_offline_processes_items(offline_service):
    offline_service.set_online(False)
    await offline_service.queue_manager.add_item(make_item(resource_id="p1"))

    result = await offline_service.sync(SyncOptions(force=True))

    assert result.success is True
    assert result.synced_item_count == 1
    assert await _statuses(offline_service) == {"p1": QueuedItemStatus.COMPLETED}


async def test_types_filter_only_syncs_matching_items(offline_service):
    # Given: three product and two transaction operations queued while offline
    offline_service.set_online(False)
    for i in range(3):
        await offline_service.queue_operation(_request("product", f"p{i}"))
    for i in range(2):
        await offline_service.queue_operation(_request("transaction", f"t{i}"))

    # When: a forced sync is restricted to products
    result = await offline_service.sync(SyncOptions(types=["product"], force=True))

    # Then: only products are pushed and completed
    assert result.success is True
    assert result.synced_item_count == 3
    assert result.synced_types == ["product"]
    pending = await offline_service.get_pending_operations()
    assert sorted(item.resource_id for item in pending) == ["t0", "t1"]
    assert all(item.status == QueuedItemStatus.PENDING for item in pending)


async def test_batch_size_limits_items_per_pass(offline_service, gateway):
    for i in range(5):
        await offline_service.queue_manager.add_item(make_item(resource_id=f"p{i}"))

    first = await offline_service.sync(SyncOptions(batch_size=2))
    second = await offline_service.sync(SyncOptions(batch_size=2))

    assert first.synced_item_count == 2
    assert second.synced_item_count == 2
    assert len(gateway.pushed) == 4
    remaining = await offline_service.queue_manager.count_items(
        QueueItemFilter(status=QueuedItemStatus.PENDING)
    )
    assert remaining == 1


async def test_successful_sync_reports_counts_and_types(offline_service, clock):
    await offline_service.queue_manager.add_item(make_item(resource_type="product"))
    await offline_service.queue_manager.add_item(make_item(resource_type="transaction"))
    await offline_service.queue_manager.add_item(make_item(resource_type="product"))

    result = await offline_service.sync()

    assert result.success is True
    assert result.error is None
    assert result.synced_item_count == 3
    assert result.failed_item_count == 0
    assert result.conflict_count == 0
    assert result.synced_types == ["product", "transaction"]
    assert result.resolved_conflicts is None
    assert result.timestamp == clock()
    assert result.duration == 0

    items = await offline_service.queue_manager.get_items()
    assert all(item.last_attempt_at == clock() for item in items)
    assert offline_service.activity == SyncActivity.IDLE


async def test_empty_queue_sync_succeeds_and_emits_event(offline_service):
    events = []
    offline_service.on(OfflineEvent.SYNC, events.append)

    result = await offline_service.sync()

    assert result.success is True
    assert result.synced_item_count == 0
    assert events == [result]


async def test_pull_only_leaves_queue_untouched(offline_service, gateway):
    await offline_service.queue_manager.add_item(make_item(resource_id="p1"))
    gateway.remote_changes.append(RemoteChange(key="product:9", data={"name": "pear"}))

    result = await offline_service.sync(SyncOptions(pull_only=True))

    assert result.success is True
    assert result.synced_item_count == 0
    assert gateway.pushed == []
    assert await _statuses(offline_service) == {"p1": QueuedItemStatus.PENDING}
    assert await offline_service.get_data("product:9") == {"name": "pear"}


async def test_push_only_skips_pull(offline_service, gateway):
    await offline_service.queue_manager.add_item(make_item())

    result = await offline_service.sync(SyncOptions(push_only=True))

    assert result.synced_item_count == 1
    assert gateway.pull_calls == []


async def test_pull_receives_type_filter(offline_service, gateway):
    await offline_service.sync(SyncOptions(types=["product"]))

    assert gateway.pull_calls == [["product"]]


async def test_sync_times_out(service_factory):
    service = await service_factory(gateway=SlowGateway(delay=1.0))
    await service.queue_manager.add_item(make_item())
    events = []
    service.on(OfflineEvent.SYNC, events.append)

    result = await service.sync(SyncOptions(timeout=20))

    assert result.success is False
    assert result.error == "Sync timed out after 20ms"
    assert events == []
    assert service.activity == SyncActivity.IDLE


async def test_gateway_pull_failure_is_reported(offline_service, gateway):
    async def broken_pull(types=None):
        raise RuntimeError("remote unavailable")

    gateway.pull = broken_pull
    await offline_service.queue_manager.add_item(make_item())

    result = await offline_service.sync()

    assert result.success is False
    assert result.error == "remote unavailable"


async def test_concurrent_passes_are_serialized(service_factory):
    gateway = SlowGateway(delay=0.01)
    service = await service_factory(gateway=gateway)
    for i in range(3):
        await service.queue_manager.add_item(make_item(resource_id=f"p{i}"))

    first, second = await asyncio.gather(service.sync(), service.sync())

    # Each item pushed exactly once, the second pass finds nothing pending
    assert len(gateway.pushed) == 3
    assert len(set(gateway.pushed)) == 3
    assert first.synced_item_count + second.synced_item_count == 3
    assert second.synced_item_count == 0


async def test_reconnect_triggers_background_sync(offline_service, gateway):
    offline_service.set_online(False)
    await offline_service.queue_manager.add_item(make_item(resource_id="p1"))

    offline_service.set_online(True)
    await offline_service.wait_until_idle()

    assert [item.resource_id for item in gateway.pushed] == ["p1"]
    assert await _statuses(offline_service) == {"p1": QueuedItemStatus.COMPLETED}


async def test_reconnect_with_sync_disabled_does_not_sync(service_factory, gateway):
    service = await service_factory(OfflineConfig(enabled=False))
    service.set_online(False)
    await service.queue_manager.add_item(make_item())

    service.set_online(True)
    await service.wait_until_idle()

    assert gateway.pushed == []


async def test_queue_operation_while_online_triggers_sync(offline_service, gateway):
    item_id = await offline_service.queue_operation(_request("product", "p1"))
    await offline_service.wait_until_idle()

    item = await offline_service.get_operation(item_id)
    assert item.status == QueuedItemStatus.COMPLETED
    assert len(gateway.pushed) == 1


async def test_periodic_sync_processes_queue(service_factory, gateway):
    service = await service_factory(OfflineConfig(enabled=True, sync_interval=10))
    await service.queue_manager.add_item(make_item(resource_id="p1"))

    for _ in range(100):
        if gateway.pushed:
            break
        await asyncio.sleep(0.01)

    assert [item.resource_id for item in gateway.pushed] == ["p1"]


async def test_periodic_sync_stops_after_dispose(service_factory, gateway):
    service = await service_factory(OfflineConfig(enabled=True, sync_interval=10))
    await service.dispose()

    await service.queue_manager.add_item(make_item())
    await asyncio.sleep(0.05)

    assert gateway.pushed == []


def _request(resource_type, resource_id):
    return OperationRequest(
        operation_type="create",
        resource_type=resource_type,
        resource_id=resource_id,
        data={"id": resource_id},
    )


class BlockingGateway:
    """Holds every push until released"""

    def __init__(self):
        self.release = asyncio.Event()
        self.started = []
        self.pushed = []

    async def push(self, item):
        self.started.append(item.id)
        await self.release.wait()
        self.pushed.append(item.id)
        return PushResult(status=PushStatus.ACCEPTED)

    async def pull(self, types=None):
        return []


async def _queue_burst(service, gateway, count):
    # Given: a pass blocked inside the gateway
    await service.queue_operation(_request("product", "first"))
    for _ in range(100):
        if gateway.started:
            break
        await asyncio.sleep(0.01)
    assert len(gateway.started) == 1

    # When: a burst of operations is queued behind it
    for i in range(count):
        await service.queue_operation(_request("product", f"p{i}"))


async def test_dispose_cancels_every_triggered_pass(service_factory):
    gateway = BlockingGateway()
    service = await service_factory(gateway=gateway)
    await _queue_burst(service, gateway, count=1010)

    await service.dispose()
    gateway.release.set()
    await asyncio.sleep(0.05)

    # Then: nothing reaches the remote side after dispose
    assert gateway.pushed == []
    assert len(gateway.started) == 1


async def test_burst_of_queued_operations_is_coalesced(service_factory):
    gateway = BlockingGateway()
    service = await service_factory(gateway=gateway)
    results = []
    service.on(OfflineEvent.SYNC, results.append)
    await _queue_burst(service, gateway, count=1010)

    gateway.release.set()
    await service.wait_until_idle()

    # Then: one pass for the first item, one waiting pass covers the burst
    assert len(results) == 2
    assert [result.synced_item_count for result in results] == [1, 1010]
    assert len(gateway.pushed) == 1011


async def test_timeout_after_remote_accept_pushes_item_again(service_factory):
    gateway = BlockingGateway()
    service = await service_factory(gateway=gateway)
    item_id = await service.queue_manager.add_item(make_item(resource_id="p1"))

    result = await service.sync(SyncOptions(timeout=20))

    # The remote side may have applied the push, the local item stays pending
    assert result.success is False
    assert (await service.get_operation(item_id)).status == QueuedItemStatus.PENDING

    gateway.release.set()
    retry = await service.sync()

    assert retry.synced_item_count == 1
    assert gateway.started == [item_id, item_id]
