import logging

from offline.domain.queue import QueuedItem
from offline.transport.interface import (
    PushResult,
    PushStatus,
    RemoteChange,
    RemoteSyncGatewayInterface,
)


logger = logging.getLogger(__name__)


class AcknowledgingGateway(RemoteSyncGatewayInterface):
    """Accepts every push and has no remote changes to offer"""

    async def push(self, item: QueuedItem) -> PushResult:
        logger.debug(f"Acknowledging {item.operation_type} of {item.resource_type} {item.id}")
        return PushResult(status=PushStatus.ACCEPTED)

    async def pull(self, types: list[str] | None = None) -> list[RemoteChange]:
        return []
