class OfflineServiceError(Exception):
    """Base class for offline queue and sync failures."""


class NotInitialized(OfflineServiceError):
    """Raised when a component is used before initialize()."""


class ItemNotFound(OfflineServiceError, KeyError):
    """Raised when updating a queued item that doesn't exist."""

    def __init__(self, item_id: str):
        super().__init__(f"Queue item not found: {item_id}")
        self.item_id = item_id

    def __str__(self):
        return self.args[0]


class InvalidItemUpdate(OfflineServiceError, ValueError):
    """Raised when an update names an unknown or immutable field."""


class OfflineError(OfflineServiceError):
    """Raised inside a sync pass started while offline without force.

    Never escapes sync(), the pass reports it through SyncResult.error.
    """
