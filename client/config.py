from dataclasses import dataclass, field
import os

from offline.config import OfflineConfig, get_offline_config
from shared.logging_config import LoggerConfig
from shared.storage.factory import StorageBackend
from shared.storage.sqlite_storage import DEFAULT_PATH, DEFAULT_PREFIX


@dataclass(frozen=True)
class ClientConfig:
    tenant: str
    api_key: str | None = None
    storage_backend: StorageBackend = StorageBackend.MEMORY
    storage_path: str = DEFAULT_PATH
    storage_prefix: str = DEFAULT_PREFIX
    offline: OfflineConfig = field(default_factory=OfflineConfig)
    logging: LoggerConfig | None = None


def get_client_config() -> ClientConfig:
    """Build the client configuration from environment variables"""
    tenant = os.getenv("FOODX_TENANT")
    if not tenant:
        raise ValueError("FOODX_TENANT environment variable is not set")
    return ClientConfig(
        tenant=tenant,
        api_key=os.getenv("FOODX_API_KEY") or None,
        storage_backend=StorageBackend(os.getenv("FOODX_STORAGE_BACKEND", "memory")),
        storage_path=os.getenv("FOODX_STORAGE_PATH", DEFAULT_PATH),
        storage_prefix=os.getenv("FOODX_STORAGE_PREFIX", f"foodx:{tenant}:"),
        offline=get_offline_config(),
        logging=LoggerConfig(min_level=os.getenv("FOODX_LOG_LEVEL", "INFO")),
    )
