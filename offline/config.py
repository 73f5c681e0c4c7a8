from dataclasses import dataclass
import os
from typing import Any, Callable

from offline.domain.sync import ConflictResolution


@dataclass(frozen=True)
class OfflineConfig:
    """
    Process-wide configuration for the offline service, supplied once at initialize().

    Only `enabled`, `sync_interval`, `max_sync_retries`, `conflict_resolution`,
    `conflict_resolver` and `encryption_key` drive behaviour. The storage quota,
    retention and sensitive-data hints are carried for forward compatibility.
    """

    enabled: bool = False
    sync_interval: int | None = None  # ms, None disables periodic sync
    max_sync_retries: int = 3
    conflict_resolution: ConflictResolution = ConflictResolution.TIMESTAMP_BASED
    conflict_resolver: Callable[[Any, Any], Any] | None = None
    max_storage_size: int | None = None  # bytes
    data_retention: int | None = None  # days
    persist_sensitive_data: bool = False
    encryption_key: str | None = None


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def get_offline_config() -> OfflineConfig:
    """Build the offline configuration from environment variables"""
    sync_interval = os.getenv("OFFLINE_SYNC_INTERVAL_MS")
    return OfflineConfig(
        enabled=_env_flag("OFFLINE_ENABLED", "false"),
        sync_interval=int(sync_interval) if sync_interval else None,
        max_sync_retries=int(os.getenv("OFFLINE_MAX_SYNC_RETRIES", "3")),
        conflict_resolution=ConflictResolution(
            os.getenv("OFFLINE_CONFLICT_RESOLUTION", "timestamp-based")
        ),
        encryption_key=os.getenv("OFFLINE_ENCRYPTION_KEY") or None,
    )
