import json
import logging
from typing import Any

from shared.storage.exceptions import InvalidStorageValue
from shared.storage.interface import KeyValueStorageInterface


def copy_json_value(value: Any) -> Any:
    """Deep copy through a JSON round trip, rejecting values JSON can't hold"""
    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError) as e:
        raise InvalidStorageValue(f"Value is not JSON-serializable: {e}") from e


class MemoryStorage(KeyValueStorageInterface):
    """
    Volatile in-process storage.

    Keeps a plain dict for the lifetime of the process. Insertion order of keys
    is preserved, so enumeration is deterministic.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self._storage: dict[str, Any] = {}

    async def initialize(self) -> None:
        self._logger.info("Initializing memory storage")

    async def close(self) -> None:
        pass

    async def set_item(self, key: str, value: Any) -> None:
        self._logger.debug(f"Setting item: {key}")
        self._storage[key] = copy_json_value(value)

    async def get_item(self, key: str) -> Any | None:
        self._logger.debug(f"Getting item: {key}")
        if key not in self._storage:
            return None
        return copy_json_value(self._storage[key])

    async def remove_item(self, key: str) -> None:
        self._logger.debug(f"Removing item: {key}")
        self._storage.pop(key, None)

    async def get_all_keys(self) -> list[str]:
        return list(self._storage.keys())

    async def clear(self) -> None:
        self._logger.debug(f"Clearing {len(self._storage)} items")
        self._storage.clear()
