from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Iterable


class QueuedItemStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    FAILED = "failed"
    COMPLETED = "completed"


class SortField(str, Enum):
    QUEUED_AT = "queued_at"
    PRIORITY = "priority"
    ATTEMPTS = "attempts"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class QueuedItem:
    """A pending unit of offline work"""

    operation_type: str  # e.g. "create", "update", "delete"
    resource_type: str  # e.g. "product", "transaction"
    queued_at: int  # ms since epoch
    status: QueuedItemStatus = QueuedItemStatus.PENDING
    resource_id: str | None = None
    data: Any = None
    options: dict = field(default_factory=dict)
    last_attempt_at: int | None = None
    attempts: int = 0
    last_error: str | None = None
    priority: int = 0  # higher = more urgent
    id: str | None = None

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> "QueuedItem":
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in payload.items() if key in known}
        values["status"] = QueuedItemStatus(values.get("status", "pending"))
        if values.get("options") is None:
            values["options"] = {}
        return cls(**values)


QUEUED_ITEM_FIELDS = frozenset(f.name for f in fields(QueuedItem))
IMMUTABLE_FIELDS = frozenset({"id", "queued_at"})


@dataclass
class QueueItemFilter:
    """All provided predicates are ANDed"""

    status: QueuedItemStatus | Iterable[QueuedItemStatus] | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    operation_type: str | None = None
    sort_by: SortField | None = None
    sort_direction: SortDirection = SortDirection.ASC
    limit: int | None = None

    def statuses(self) -> set[QueuedItemStatus] | None:
        if self.status is None:
            return None
        if isinstance(self.status, (QueuedItemStatus, str)):
            return {QueuedItemStatus(self.status)}
        return {QueuedItemStatus(status) for status in self.status}

    def matches(self, item: QueuedItem) -> bool:
        statuses = self.statuses()
        if statuses is not None and item.status not in statuses:
            return False
        if self.resource_type is not None and item.resource_type != self.resource_type:
            return False
        if self.resource_id is not None and item.resource_id != self.resource_id:
            return False
        if (
            self.operation_type is not None
            and item.operation_type != self.operation_type
        ):
            return False
        return True


@dataclass
class OperationRequest:
    """Caller-facing description of an operation to queue"""

    operation_type: str
    resource_type: str
    resource_id: str | None = None
    data: Any = None
    options: dict | None = None
    priority: int = 0
