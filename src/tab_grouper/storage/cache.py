"""
Memoization cache for categorization decisions, embeddings and leftover snapshots.

Entries are keyed by a canonical serialization of the request parameters. The
cache never expires entries on its own; it is cleared when the organizer is
(re)initialized.
"""

import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from tab_grouper.config import get_logger

logger = get_logger(__name__)

CATEGORY_NAMESPACE = "categoryCache"
EMBEDDING_NAMESPACE = "embeddingsCache"
LEFTOVER_NAMESPACE = "leftoverTabsCache"


def make_cache_key(**params: Any) -> str:
    """
    Build a deterministic cache key from request parameters.

    Keys are sorted so the same parameters always produce the same string,
    regardless of argument order.

    Example:
        >>> make_cache_key(url="a", categories=["news"])
        '{"categories":["news"],"url":"a"}'
    """
    return json.dumps(params, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class CacheStore(ABC):
    """Abstract interface for namespaced key-value cache backends."""

    @abstractmethod
    def get_cache(self, namespace: str) -> dict[str, Any]:
        """
        Get a copy of every entry in a namespace.

        Args:
            namespace: Cache namespace

        Returns:
            Mapping of cache key to stored value (empty if unknown namespace)
        """
        pass

    @abstractmethod
    def set_cache(self, namespace: str, mapping: dict[str, Any]) -> None:
        """
        Replace the contents of a namespace.

        Args:
            namespace: Cache namespace
            mapping: New contents
        """
        pass

    @abstractmethod
    def clear(self, namespace: Optional[str] = None) -> None:
        """
        Remove cached entries.

        Args:
            namespace: Namespace to clear, or None to clear everything
        """
        pass

    def lookup(self, namespace: str, key: str) -> Optional[Any]:
        """Return the cached value for a key, or None on a miss."""
        return self.get_cache(namespace).get(key)

    def store(self, namespace: str, key: str, value: Any) -> None:
        """Read-modify-write a single entry. Duplicate writes are idempotent."""
        cache = self.get_cache(namespace)
        cache[key] = value
        self.set_cache(namespace, cache)


class InMemoryCacheStore(CacheStore):
    """Process-local cache backed by plain dictionaries."""

    def __init__(self):
        self._namespaces: dict[str, dict[str, Any]] = {}

    def get_cache(self, namespace: str) -> dict[str, Any]:
        return dict(self._namespaces.get(namespace, {}))

    def set_cache(self, namespace: str, mapping: dict[str, Any]) -> None:
        self._namespaces[namespace] = dict(mapping)

    def lookup(self, namespace: str, key: str) -> Optional[Any]:
        return self._namespaces.get(namespace, {}).get(key)

    def store(self, namespace: str, key: str, value: Any) -> None:
        self._namespaces.setdefault(namespace, {})[key] = value

    def clear(self, namespace: Optional[str] = None) -> None:
        if namespace is None:
            self._namespaces.clear()
        else:
            self._namespaces.pop(namespace, None)


class SQLiteCacheStore(CacheStore):
    """SQLite-backed cache so entries survive a process restart until cleared."""

    def __init__(self, db_path: Path):
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file (":memory:" for tests)
        """
        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._initialize_schema()

    def _initialize_schema(self):
        """Create the cache table if it doesn't exist."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS cache_entries (
                namespace TEXT NOT NULL,
                cache_key TEXT NOT NULL,
                value TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (namespace, cache_key)
            )
        """)
        self.conn.commit()

    def get_cache(self, namespace: str) -> dict[str, Any]:
        cursor = self.conn.execute(
            "SELECT cache_key, value FROM cache_entries WHERE namespace = ?",
            (namespace,),
        )
        return {row["cache_key"]: json.loads(row["value"]) for row in cursor.fetchall()}

    def set_cache(self, namespace: str, mapping: dict[str, Any]) -> None:
        with self.conn:
            self.conn.execute(
                "DELETE FROM cache_entries WHERE namespace = ?", (namespace,)
            )
            self.conn.executemany(
                "INSERT INTO cache_entries (namespace, cache_key, value) VALUES (?, ?, ?)",
                [(namespace, key, json.dumps(value)) for key, value in mapping.items()],
            )

    def lookup(self, namespace: str, key: str) -> Optional[Any]:
        row = self.conn.execute(
            "SELECT value FROM cache_entries WHERE namespace = ? AND cache_key = ?",
            (namespace, key),
        ).fetchone()
        return json.loads(row["value"]) if row else None

    def store(self, namespace: str, key: str, value: Any) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO cache_entries (namespace, cache_key, value)
                VALUES (?, ?, ?)
                ON CONFLICT(namespace, cache_key) DO UPDATE SET value = excluded.value
                """,
                (namespace, key, json.dumps(value)),
            )

    def clear(self, namespace: Optional[str] = None) -> None:
        with self.conn:
            if namespace is None:
                self.conn.execute("DELETE FROM cache_entries")
            else:
                self.conn.execute(
                    "DELETE FROM cache_entries WHERE namespace = ?", (namespace,)
                )
        logger.debug(f"Cleared cache namespace: {namespace or 'all'}")

    def close(self):
        """Close the database connection."""
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_cache_store(db_path: Optional[Path] = None) -> CacheStore:
    """Create a SQLite store when a path is configured, otherwise in-memory."""
    if db_path:
        return SQLiteCacheStore(db_path)
    return InMemoryCacheStore()
