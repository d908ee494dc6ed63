# -*- coding: utf-8 -*-
"""
Local key/value storage.

A durable, string-keyed store scoped to this installation, used to keep
in-progress wizard drafts across restarts.

- SQLiteStorage: one SQLite file (Config.STORAGE_PATH)
- MemoryStorage: process-local dict, for tests
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


class KeyValueStorage(ABC):
    """get/set/remove over string keys and string values."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class MemoryStorage(KeyValueStorage):
    """Non-durable storage kept in a dict."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self):
        return list(self._items.keys())


class SQLiteStorage(KeyValueStorage):
    """
    SQLite-backed storage.

    Each write is its own transaction and replaces the whole value, so a
    crash mid-write leaves the previous value intact.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS local_storage (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """

    def __init__(self, db_path: Optional[Path] = None):
        if db_path is None:
            from app.config import Config
            db_path = Config.STORAGE_PATH

        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self._connection = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._connection.execute(self.SCHEMA)
            self._connection.commit()
            logger.debug(f"Local storage opened: {self._db_path}")
        return self._connection

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            row = self._get_connection().execute(
                "SELECT value FROM local_storage WHERE key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            conn = self._get_connection()
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO local_storage (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, value, datetime.now().isoformat())
                )

    def remove_item(self, key: str) -> None:
        with self._lock:
            conn = self._get_connection()
            with conn:
                conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
                logger.info("Local storage closed")
