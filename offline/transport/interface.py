from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from offline.domain.queue import QueuedItem


class PushStatus(str, Enum):
    ACCEPTED = "accepted"
    CONFLICT = "conflict"
    REJECTED = "rejected"


@dataclass
class PushResult:
    status: PushStatus
    remote_data: Any = None  # remote state when status is CONFLICT
    error: str | None = None


@dataclass
class RemoteChange:
    """A change fetched from the remote side, cached locally under `key`"""

    key: str
    data: Any
    options: dict = field(default_factory=dict)


class RemoteSyncGatewayInterface(ABC):
    """Interface for the remote counterpart the offline queue is replayed against"""

    @abstractmethod
    async def push(self, item: QueuedItem) -> PushResult:
        """Submit one queued operation

        Args:
            item: The queued operation

        Returns:
            PushResult: accepted, conflicting with remote state, or rejected
        """
        pass

    @abstractmethod
    async def pull(self, types: list[str] | None = None) -> list[RemoteChange]:
        """Fetch remote changes, optionally only for the given resource types"""
        pass
