import asyncio
import json
import logging
import sqlite3
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from clipvault.config import DB_PATH, NEAR_FULL_RATIO, STORE_QUOTA_BYTES
from clipvault.errors import StoreIOError

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime'))
);
"""


@dataclass
class StorageUsage:
    bytes_in_use: int
    quota: int

    @property
    def percent_used(self) -> float:
        return round(self.bytes_in_use / self.quota * 100, 1) if self.quota else 0.0

    @property
    def near_full(self) -> bool:
        return self.bytes_in_use > self.quota * NEAR_FULL_RATIO

    def to_dict(self) -> dict[str, Any]:
        return {
            "bytesInUse": self.bytes_in_use,
            "quota": self.quota,
            "percentUsed": self.percent_used,
            "nearFull": self.near_full,
        }


class StorageManager:
    """Durable JSON key-value store.

    Every ``set`` call writes all of its keys in one SQLite transaction, so a
    caller that packs a logical change into a single ``set`` never leaves a
    partial write behind. The async methods run the blocking SQLite calls in
    a worker thread; the connection itself is guarded by a lock.
    """

    def __init__(self, db_path: str | Path | None = None, quota: int = STORE_QUOTA_BYTES):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._quota = quota
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self.init_db()
        except sqlite3.Error as exc:
            raise StoreIOError(f"cannot open store at {self._db_path}: {exc}") from exc

    @property
    def quota(self) -> int:
        return self._quota

    def init_db(self) -> None:
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the stored values for keys; missing keys are omitted."""
        return await asyncio.to_thread(self.get_sync, list(keys))

    async def set(self, items: dict[str, Any]) -> None:
        await asyncio.to_thread(self.set_sync, dict(items))

    async def bytes_in_use(self) -> int:
        return await asyncio.to_thread(self.bytes_in_use_sync)

    async def usage(self) -> StorageUsage:
        return StorageUsage(bytes_in_use=await self.bytes_in_use(), quota=self._quota)

    def get_sync(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}
        placeholders = ", ".join("?" for _ in keys)
        try:
            with self._lock:
                rows = self._conn.execute(
                    f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})",
                    keys,
                ).fetchall()
        except sqlite3.Error as exc:
            logger.exception("Error reading keys %s", keys)
            raise StoreIOError(f"read failed: {exc}") from exc
        return {key: json.loads(value) for key, value in rows}

    def set_sync(self, items: dict[str, Any]) -> None:
        if not items:
            return
        payload = [(key, json.dumps(value, ensure_ascii=False)) for key, value in items.items()]
        try:
            with self._lock:
                with self._conn:
                    self._conn.executemany(
                        """INSERT INTO kv_store (key, value, updated_at)
                           VALUES (?, ?, strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime'))
                           ON CONFLICT(key) DO UPDATE SET
                               value = excluded.value,
                               updated_at = excluded.updated_at""",
                        payload,
                    )
        except sqlite3.Error as exc:
            logger.exception("Error writing keys %s", list(items))
            raise StoreIOError(f"write failed: {exc}") from exc
        self._warn_if_near_full()

    def bytes_in_use_sync(self) -> int:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0) FROM kv_store"
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreIOError(f"usage query failed: {exc}") from exc
        return int(row[0])

    def _warn_if_near_full(self) -> None:
        try:
            in_use = self.bytes_in_use_sync()
        except StoreIOError:
            logger.warning("Skipping storage usage check after write", exc_info=True)
            return
        usage = StorageUsage(bytes_in_use=in_use, quota=self._quota)
        if usage.near_full:
            logger.warning(
                "StorageNearFull: %d of %d bytes in use (%.1f%%)",
                usage.bytes_in_use, usage.quota, usage.percent_used,
            )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
