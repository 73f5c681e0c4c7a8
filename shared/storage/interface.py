from abc import ABC, abstractmethod
from typing import Any


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for key-value storage implementations.

    Defines the contract for a durable mapping from string keys to
    JSON-serializable values. Values are copied on the way in and on the way out,
    so callers never share references with the stored state.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Acquire backend resources.

        Raises:
            StorageUnavailable: if the backend cannot be opened
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources. Safe to call more than once."""
        pass

    @abstractmethod
    async def set_item(self, key: str, value: Any) -> None:
        """
        Store a value under the given key, replacing any previous value.

        Args:
            key: Logical key
            value: JSON-serializable value
        """
        pass

    @abstractmethod
    async def get_item(self, key: str) -> Any | None:
        """
        Get a copy of the value stored under key.

        Returns:
            The stored value or None if the key is absent
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Delete key if present, no-op otherwise."""
        pass

    @abstractmethod
    async def get_all_keys(self) -> list[str]:
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every key managed by this backend instance."""
        pass

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
