from dataclasses import dataclass, field
from enum import Enum


class ConnectivityState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class SyncActivity(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"


class ConflictResolution(str, Enum):
    """Strategy tag applied when the remote side reports a conflicting change"""

    CLIENT_WINS = "client-wins"
    SERVER_WINS = "server-wins"
    TIMESTAMP_BASED = "timestamp-based"
    CUSTOM = "custom"


class ResolutionOutcome(str, Enum):
    CLIENT_WINS = "client-wins"
    SERVER_WINS = "server-wins"
    MERGED = "merged"
    MANUAL = "manual"


@dataclass
class ResolvedConflict:
    id: str
    type: str
    resolution: ResolutionOutcome


@dataclass
class SyncOptions:
    types: list[str] | None = None
    batch_size: int | None = None
    force: bool = False
    timeout: int | None = None  # ms
    conflict_resolution: ConflictResolution | None = None
    push_only: bool = False
    pull_only: bool = False


@dataclass
class SyncResult:
    """Outcome of one synchronization pass"""

    success: bool
    timestamp: int  # ms since epoch, set when the pass completes
    error: str | None = None
    synced_item_count: int = 0
    conflict_count: int = 0
    failed_item_count: int = 0
    duration: int = 0  # ms
    synced_types: list[str] = field(default_factory=list)
    resolved_conflicts: list[ResolvedConflict] | None = None

    def add_synced_type(self, resource_type: str) -> None:
        if resource_type not in self.synced_types:
            self.synced_types.append(resource_type)

    def add_resolved_conflict(self, conflict: ResolvedConflict) -> None:
        if self.resolved_conflicts is None:
            self.resolved_conflicts = []
        self.resolved_conflicts.append(conflict)
