import asyncio
import json
import logging
import sqlite3
import threading
from typing import Any

from shared.storage.exceptions import (
    BackendError,
    StorageNotInitialized,
    StorageUnavailable,
)
from shared.storage.interface import KeyValueStorageInterface
from shared.storage.memory_storage import copy_json_value


DEFAULT_PREFIX = "foodx:"
DEFAULT_PATH = "offline_storage.db"

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class SqliteStorage(KeyValueStorageInterface):
    """
    Persistent storage on top of a SQLite file.

    Every key is namespaced under a prefix, so several instances (tenants,
    queues, caches) can share one database file without seeing each other's
    data. Blocking sqlite calls run in a worker thread and are serialized by
    a lock because the connection is shared across threads.

    Time Complexity:
    - set / get / remove: O(log n) via the primary key index
    - get_all_keys / clear: O(n) over the whole table
    """

    def __init__(
        self,
        path: str = DEFAULT_PATH,
        prefix: str = DEFAULT_PREFIX,
        logger: logging.Logger | None = None,
    ):
        self.path = path
        self.prefix = prefix
        self._logger = logger or logging.getLogger(__name__)
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    async def initialize(self) -> None:
        self._logger.info(f"Initializing SQLite storage at {self.path}")
        if self._connection is not None:
            return
        try:
            self._connection = await asyncio.to_thread(self._open)
        except sqlite3.Error as e:
            self._logger.error(f"Failed to open SQLite storage {self.path}: {e}")
            raise StorageUnavailable(
                f"SQLite storage is not available at {self.path}: {e}"
            ) from e

    def _open(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.path, check_same_thread=False)
        try:
            connection.execute(CREATE_TABLE_SQL)
            connection.commit()
        except sqlite3.Error:
            connection.close()
            raise
        return connection

    async def close(self) -> None:
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        await asyncio.to_thread(self._run_locked, connection.close)
        self._logger.info("SQLite storage closed")

    async def set_item(self, key: str, value: Any) -> None:
        self._logger.debug(f"Setting item: {key}")
        payload = json.dumps(copy_json_value(value))
        await self._execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (self.prefix + key, payload),
            commit=True,
        )

    async def get_item(self, key: str) -> Any | None:
        self._logger.debug(f"Getting item: {key}")
        rows = await self._execute(
            "SELECT value FROM kv_store WHERE key = ?", (self.prefix + key,)
        )
        if not rows:
            return None
        return json.loads(rows[0][0])

    async def remove_item(self, key: str) -> None:
        self._logger.debug(f"Removing item: {key}")
        await self._execute(
            "DELETE FROM kv_store WHERE key = ?", (self.prefix + key,), commit=True
        )

    async def get_all_keys(self) -> list[str]:
        rows = await self._execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY rowid",
            (len(self.prefix), self.prefix),
        )
        return [row[0][len(self.prefix) :] for row in rows]

    async def clear(self) -> None:
        self._logger.debug(f"Clearing all keys under prefix {self.prefix!r}")
        await self._execute(
            "DELETE FROM kv_store WHERE substr(key, 1, ?) = ?",
            (len(self.prefix), self.prefix),
            commit=True,
        )

    async def _execute(
        self, sql: str, params: tuple = (), commit: bool = False
    ) -> list[tuple]:
        connection = self._connection
        if connection is None:
            raise StorageNotInitialized(
                "SQLite storage not initialized. Call initialize() first."
            )

        def run() -> list[tuple]:
            cursor = connection.execute(sql, params)
            rows = cursor.fetchall()
            if commit:
                connection.commit()
            return rows

        try:
            return await asyncio.to_thread(self._run_locked, run)
        except sqlite3.Error as e:
            self._logger.error(f"SQLite operation failed: {e}")
            raise BackendError(f"SQLite operation failed: {e}") from e

    def _run_locked(self, func):
        with self._lock:
            return func()
