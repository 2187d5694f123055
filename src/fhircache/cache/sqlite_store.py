"""
SQLite-backed document store.

Persists flattened document nodes in .cache/documents.db, one row per node.
A composite key is stored as its segments joined by the ASCII unit
separator, so a subtree is every row whose path equals the key or starts
with the key followed by the separator.

Statements on the shared connection are serialized by a lock, so a read
never sees another coroutine's write half done and racing writers replace
the subtree one after another.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import aiosqlite
import orjson

from fhircache.cache.base import DocumentStore, normalize_key
from fhircache.cache.document_tree import LEAF, build_document, flatten_document
from fhircache.exceptions import StorageError
from fhircache.logging import get_logger
from fhircache.types import CompositeKey, utc_now

logger = get_logger(__name__)

SEPARATOR = "\x1f"

_SUBTREE_WHERE = "path = ? OR substr(path, 1, ?) = ?"


def encode_path(key: CompositeKey) -> str:
    """Join key segments into a single stored path."""
    for segment in key:
        if SEPARATOR in segment:
            raise StorageError(
                "Key segment contains the path separator",
                context={"store": "SQLiteDocumentStore", "key": key},
            )
    return SEPARATOR.join(key)


def decode_path(path: str) -> CompositeKey:
    """Split a stored path back into key segments."""
    return tuple(path.split(SEPARATOR))


class SQLiteDocumentStore(DocumentStore):
    """DocumentStore persisted in a SQLite database via aiosqlite.

    Call init() before use and close() when done.
    """

    def __init__(self, cache_dir: str | Path) -> None:
        """Initialize the store.

        Args:
            cache_dir: Base directory for cache storage.
        """
        self.cache_dir = Path(cache_dir)
        self.db_path = self.cache_dir / "documents.db"
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        """Create the cache directory and database schema."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(self.db_path)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS nodes (
                path TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                value BLOB,
                stored_at TEXT NOT NULL
            )
        """)
        await self._db.commit()
        logger.info("Document store initialized", cache_dir=str(self.cache_dir))

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> SQLiteDocumentStore:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _conn(self) -> aiosqlite.Connection:
        if not self._db:
            raise StorageError(
                "SQLiteDocumentStore not initialized. Call init() first.",
                context={"store": type(self).__name__},
            )
        return self._db

    @staticmethod
    def _subtree_params(key: CompositeKey) -> tuple[str, int, str]:
        path = encode_path(key)
        prefix = path + SEPARATOR
        return path, len(prefix), prefix

    async def exists(self, key: CompositeKey) -> bool:
        db = self._conn()
        key = normalize_key(key, store=type(self).__name__)

        async with self._lock, db.execute(
            f"SELECT 1 FROM nodes WHERE {_SUBTREE_WHERE} LIMIT 1",
            self._subtree_params(key),
        ) as cursor:
            row = await cursor.fetchone()

        return row is not None

    async def put_object(self, key: CompositeKey, value: Any) -> None:
        db = self._conn()
        key = normalize_key(key, store=type(self).__name__)
        stored_at = utc_now().isoformat()

        rows = [
            (
                encode_path(path),
                kind,
                orjson.dumps(node_value) if kind == LEAF else None,
                stored_at,
            )
            for path, kind, node_value in flatten_document(key, value)
        ]

        async with self._lock:
            await db.execute(
                f"DELETE FROM nodes WHERE {_SUBTREE_WHERE}",
                self._subtree_params(key),
            )
            await db.executemany(
                "INSERT INTO nodes (path, kind, value, stored_at) VALUES (?, ?, ?, ?)",
                rows,
            )
            await db.commit()

        logger.debug("Stored document", key=list(key), nodes=len(rows))

    async def get_object_with_arrays(self, key: CompositeKey) -> Any | None:
        db = self._conn()
        key = normalize_key(key, store=type(self).__name__)

        async with self._lock, db.execute(
            f"SELECT path, kind, value FROM nodes WHERE {_SUBTREE_WHERE} ORDER BY rowid",
            self._subtree_params(key),
        ) as cursor:
            rows = await cursor.fetchall()

        nodes = [
            (
                decode_path(path),
                kind,
                orjson.loads(value) if kind == LEAF else None,
            )
            for path, kind, value in rows
        ]
        return build_document(key, nodes)

    async def count(self) -> int:
        """Return the number of stored nodes."""
        db = self._conn()
        async with db.execute("SELECT COUNT(*) FROM nodes") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
