from dataclasses import dataclass
from enum import Enum


class OfflineEvent(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    SYNC = "sync"


@dataclass(frozen=True)
class ConnectivityChange:
    """Payload of online/offline events"""

    timestamp: int  # ms since epoch
