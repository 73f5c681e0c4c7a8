import logging
from dataclasses import dataclass
from typing import Any, Callable

from offline.domain.queue import QueuedItem
from offline.domain.sync import ConflictResolution, ResolutionOutcome


logger = logging.getLogger(__name__)

REMOTE_TIMESTAMP_FIELDS = ("updated_at", "timestamp")


@dataclass
class ConflictDecision:
    outcome: ResolutionOutcome
    data: Any = None  # payload to keep locally for MERGED, None otherwise
    error: str | None = None


def _remote_timestamp(remote_data: Any) -> int | None:
    if not isinstance(remote_data, dict):
        return None
    for field_name in REMOTE_TIMESTAMP_FIELDS:
        value = remote_data.get(field_name)
        if isinstance(value, (int, float)):
            return int(value)
    return None


def resolve_conflict(
    strategy: ConflictResolution,
    item: QueuedItem,
    remote_data: Any,
    resolver: Callable[[Any, Any], Any] | None = None,
) -> ConflictDecision:
    """
    Map a conflict between a queued local change and the remote state to an outcome.

    timestamp-based compares the item's queued_at with the remote record's
    `updated_at` (or `timestamp`); the local change wins ties and records without
    a usable timestamp. custom delegates to `resolver(client_data, server_data)`
    and falls back to MANUAL when no resolver is configured or it raises.
    """
    strategy = ConflictResolution(strategy)

    if strategy == ConflictResolution.CLIENT_WINS:
        return ConflictDecision(outcome=ResolutionOutcome.CLIENT_WINS)

    if strategy == ConflictResolution.SERVER_WINS:
        return ConflictDecision(outcome=ResolutionOutcome.SERVER_WINS)

    if strategy == ConflictResolution.TIMESTAMP_BASED:
        remote_timestamp = _remote_timestamp(remote_data)
        if remote_timestamp is not None and remote_timestamp > item.queued_at:
            return ConflictDecision(outcome=ResolutionOutcome.SERVER_WINS)
        return ConflictDecision(outcome=ResolutionOutcome.CLIENT_WINS)

    if resolver is None:
        return ConflictDecision(
            outcome=ResolutionOutcome.MANUAL,
            error="Conflict requires manual resolution: no resolver configured",
        )
    try:
        merged = resolver(item.data, remote_data)
    except Exception as e:
        logger.error(f"Conflict resolver failed for item {item.id}: {e}", exc_info=True)
        return ConflictDecision(
            outcome=ResolutionOutcome.MANUAL,
            error=f"Conflict resolver failed: {e}",
        )
    return ConflictDecision(outcome=ResolutionOutcome.MERGED, data=merged)
