from dataclasses import replace
import logging
from uuid import uuid4

from offline.domain.queue import (
    IMMUTABLE_FIELDS,
    QUEUED_ITEM_FIELDS,
    QueuedItem,
    QueueItemFilter,
    SortDirection,
    SortField,
)
from offline.exceptions import InvalidItemUpdate, ItemNotFound, NotInitialized
from shared.storage.interface import KeyValueStorageInterface


DEFAULT_QUEUE_PREFIX = "queue:"


class QueueManager:
    """
    Durable, filterable operation log layered on key-value storage.

    One item per storage key under a reserved prefix. Queries enumerate every
    key, so they are O(n) in the size of the store. The queue is expected to
    hold thousands of pending operations at most.
    """

    def __init__(
        self,
        queue_key_prefix: str = DEFAULT_QUEUE_PREFIX,
        logger: logging.Logger | None = None,
    ):
        self.queue_key_prefix = queue_key_prefix
        self._storage: KeyValueStorageInterface | None = None
        self._logger = logger or logging.getLogger(__name__)

    async def initialize(self, storage: KeyValueStorageInterface) -> None:
        self._logger.info("Initializing queue manager")
        self._storage = storage

    async def add_item(self, item: QueuedItem) -> str:
        """
        Persist a new item under a freshly generated id.

        Any id already set on `item` is ignored; the caller's object is not mutated.

        Returns:
            str: the generated id
        """
        storage = self._ensure_initialized()
        self._logger.debug(f"Adding item to queue: {item.operation_type}")

        item_id = uuid4().hex
        while await storage.get_item(self._item_key(item_id)) is not None:
            item_id = uuid4().hex

        queued_item = replace(item, id=item_id)
        await storage.set_item(self._item_key(item_id), queued_item.to_dict())

        self._logger.debug(f"Item added to queue with ID: {item_id}")
        return item_id

    async def update_item(self, item_id: str, updates: dict) -> QueuedItem:
        """
        Shallow-merge `updates` over the stored item and persist the result.

        Raises:
            ItemNotFound: if no item with this id exists
            InvalidItemUpdate: if updates name an unknown or immutable field
        """
        storage = self._ensure_initialized()
        self._logger.debug(f"Updating queue item: {item_id}")

        unknown = set(updates) - QUEUED_ITEM_FIELDS
        if unknown:
            raise InvalidItemUpdate(f"Unknown queue item fields: {sorted(unknown)}")
        immutable = set(updates) & IMMUTABLE_FIELDS
        if immutable:
            raise InvalidItemUpdate(f"Fields can't be changed: {sorted(immutable)}")

        stored = await storage.get_item(self._item_key(item_id))
        if stored is None:
            raise ItemNotFound(item_id)

        merged = {**stored, **updates}
        updated_item = QueuedItem.from_dict(merged)
        await storage.set_item(self._item_key(item_id), updated_item.to_dict())

        self._logger.debug(f"Queue item updated: {item_id}")
        return updated_item

    async def get_item(self, item_id: str) -> QueuedItem | None:
        storage = self._ensure_initialized()
        stored = await storage.get_item(self._item_key(item_id))
        return QueuedItem.from_dict(stored) if stored is not None else None

    async def get_items(self, item_filter: QueueItemFilter | None = None) -> list[QueuedItem]:
        """
        Get items matching the filter.

        Sorting is stable: ties keep storage enumeration order, in both directions.
        The limit is applied after sorting.
        """
        storage = self._ensure_initialized()

        items = []
        for key in await self._queue_keys():
            stored = await storage.get_item(key)
            if stored is not None:
                items.append(QueuedItem.from_dict(stored))

        if item_filter is None:
            return items

        items = [item for item in items if item_filter.matches(item)]

        if item_filter.sort_by is not None:
            sort_field = SortField(item_filter.sort_by).value
            items.sort(
                key=lambda item: getattr(item, sort_field),
                reverse=SortDirection(item_filter.sort_direction) == SortDirection.DESC,
            )

        if item_filter.limit is not None and item_filter.limit > 0:
            items = items[: item_filter.limit]

        self._logger.debug(f"Found {len(items)} queue items matching {item_filter}")
        return items

    async def count_items(self, item_filter: QueueItemFilter | None = None) -> int:
        return len(await self.get_items(item_filter))

    async def remove_item(self, item_id: str) -> None:
        storage = self._ensure_initialized()
        self._logger.debug(f"Removing queue item: {item_id}")
        await storage.remove_item(self._item_key(item_id))

    async def clear_all(self) -> None:
        """Remove every item under this queue's prefix, leaving other keys untouched"""
        storage = self._ensure_initialized()
        queue_keys = await self._queue_keys()
        for key in queue_keys:
            await storage.remove_item(key)
        self._logger.debug(f"Cleared {len(queue_keys)} queue items")

    async def _queue_keys(self) -> list[str]:
        all_keys = await self._storage.get_all_keys()
        return [key for key in all_keys if key.startswith(self.queue_key_prefix)]

    def _item_key(self, item_id: str) -> str:
        return f"{self.queue_key_prefix}{item_id}"

    def _ensure_initialized(self) -> KeyValueStorageInterface:
        if self._storage is None:
            raise NotInitialized(
                "Queue manager not initialized. Call initialize() first."
            )
        return self._storage
