"""
Shared pytest fixtures for offline queue and sync tests
"""

import pytest

from offline.config import OfflineConfig
from offline.domain.queue import QueuedItem, QueuedItemStatus
from offline.services.offline_service import OfflineService
from offline.services.queue_manager import QueueManager
from offline.services.retry_policy import RetryPolicy
from offline.transport.interface import (
    PushResult,
    PushStatus,
    RemoteChange,
    RemoteSyncGatewayInterface,
)
from shared.storage.memory_storage import MemoryStorage


class FakeClock:
    """Millisecond clock that only moves when told to"""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class ScriptedGateway(RemoteSyncGatewayInterface):
    """Gateway answering pushes from a per-resource script, accepting by default"""

    def __init__(self):
        self.responses: dict[str, list[PushResult | Exception]] = {}
        self.pushed: list[QueuedItem] = []
        self.remote_changes: list[RemoteChange] = []
        self.pull_calls: list[list[str] | None] = []

    def script(self, resource_id: str, *responses: PushResult | Exception):
        self.responses.setdefault(resource_id, []).extend(responses)

    async def push(self, item: QueuedItem) -> PushResult:
        self.pushed.append(item)
        scripted = self.responses.get(item.resource_id)
        if scripted:
            response = scripted.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return PushResult(status=PushStatus.ACCEPTED)

    async def pull(self, types: list[str] | None = None) -> list[RemoteChange]:
        self.pull_calls.append(types)
        return list(self.remote_changes)


def make_item(
    resource_type: str = "product",
    operation_type: str = "create",
    queued_at: int = 1_000,
    **overrides,
) -> QueuedItem:
    values = dict(
        operation_type=operation_type,
        resource_type=resource_type,
        queued_at=queued_at,
        status=QueuedItemStatus.PENDING,
        data={"name": "apple"},
    )
    values.update(overrides)
    return QueuedItem(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
async def queue_manager(storage):
    manager = QueueManager()
    await manager.initialize(storage)
    return manager


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
async def service_factory(storage, clock, gateway):
    """Build initialized offline services and dispose them after the test"""
    services = []

    async def _create(config: OfflineConfig | None = None, **kwargs):
        kwargs.setdefault("storage", storage)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("gateway", gateway)
        kwargs.setdefault("retry_policy", RetryPolicy.immediate())
        service = OfflineService(**kwargs)
        await service.initialize(config if config is not None else OfflineConfig(enabled=True))
        services.append(service)
        return service

    yield _create

    for service in services:
        await service.dispose()


@pytest.fixture
async def offline_service(service_factory):
    """Enabled service without periodic sync"""
    return await service_factory()
