class StorageError(Exception):
    """Base class for key-value storage failures."""


class StorageUnavailable(StorageError):
    """Raised when the backend cannot be opened in this environment."""


class StorageNotInitialized(StorageError):
    """Raised when a storage method is called before initialize()."""


class BackendError(StorageError):
    """Raised when the backend fails to perform I/O. Wraps the underlying fault."""


class InvalidStorageValue(StorageError, ValueError):
    """Raised when a value cannot be represented as JSON."""
