from dataclasses import dataclass, field
import logging
from typing import Any

from shared.utils.clock import current_time_ms


@dataclass
class AuditEntry:
    action: str
    resource: str
    allowed: bool
    timestamp: int
    attributes: dict[str, Any] = field(default_factory=dict)


class EnterpriseService:
    """Stand-in policy engine: allows every action and records it in an audit trail"""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self.audit_log: list[AuditEntry] = []

    async def initialize(self) -> None:
        self._logger.info("Initializing enterprise service")

    async def is_allowed(
        self, resource: str, action: str, attributes: dict[str, Any] | None = None
    ) -> bool:
        self._logger.debug(f"Checking permission for {resource}.{action}")
        self.audit_log.append(
            AuditEntry(
                action=action,
                resource=resource,
                allowed=True,
                timestamp=current_time_ms(),
                attributes=dict(attributes or {}),
            )
        )
        return True
