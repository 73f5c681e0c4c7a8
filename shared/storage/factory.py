from enum import Enum
import logging

from shared.storage.interface import KeyValueStorageInterface
from shared.storage.memory_storage import MemoryStorage
from shared.storage.sqlite_storage import DEFAULT_PATH, DEFAULT_PREFIX, SqliteStorage


class StorageBackend(str, Enum):
    MEMORY = "memory"
    SQLITE = "sqlite"


def create_storage(
    backend: StorageBackend | str = StorageBackend.MEMORY,
    path: str = DEFAULT_PATH,
    prefix: str = DEFAULT_PREFIX,
    logger: logging.Logger | None = None,
) -> KeyValueStorageInterface:
    """Build the key-value backend selected by the caller"""
    backend = StorageBackend(backend)
    if backend == StorageBackend.SQLITE:
        return SqliteStorage(path=path, prefix=prefix, logger=logger)
    return MemoryStorage(logger=logger)
