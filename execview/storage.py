"""
storage.py — Versioned Collection Store.

Persists every dashboard collection in one SQLite file through aiosqlite.
Each collection is its own table of JSON documents keyed by `id`:

    seq   INTEGER PRIMARY KEY AUTOINCREMENT   — insertion order
    id    TEXT UNIQUE                         — record key
    body  TEXT                                — JSON document

Schema versions are tracked in PRAGMA user_version and only ever add tables,
so a database written by an older version opens cleanly under a newer one.

Serialization: every collection owns an asyncio.Lock held by reads and
writes of that collection, and writers also hold one store-wide write lock
(collection locks first, in sorted order). A reader therefore never observes
a collection midway through bulk_replace().

A second, scalar key/value store (PreferenceStore) lives in the same file
for session and preference values such as the auth token and theme.
"""

import asyncio
import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable

import aiosqlite

from execview.exceptions import StoreUnavailable, TransactionFailed
from execview.periods import DEFAULT_GRANULARITY, GRANULARITIES, validate_granularity

logger = logging.getLogger(__name__)

SERIES_DOMAINS = ("financial", "sales", "operations", "customer", "employee")
REFERENCE_COLLECTIONS = ("settings", "users", "notifications")

PREFERENCES_TABLE = "preferences"


def series_collection(domain: str, granularity: str = DEFAULT_GRANULARITY) -> str:
    """Collection name holding one domain's series at one granularity.

    The monthly series keeps the bare domain name (schema version 1); the
    other granularities were added later as `<domain>_<granularity>`.
    """
    if domain not in SERIES_DOMAINS:
        raise ValueError(f"Unknown domain {domain!r}")
    if validate_granularity(granularity) == DEFAULT_GRANULARITY:
        return domain
    return f"{domain}_{granularity}"


def _collection_ddl(name: str) -> str:
    return (
        f'CREATE TABLE IF NOT EXISTS "{name}" ('
        "seq INTEGER PRIMARY KEY AUTOINCREMENT, "
        "id TEXT NOT NULL UNIQUE, "
        "body TEXT NOT NULL)"
    )


_V1_COLLECTIONS = [*SERIES_DOMAINS, *REFERENCE_COLLECTIONS]
_V2_COLLECTIONS = [
    series_collection(domain, granularity)
    for domain in SERIES_DOMAINS
    for granularity in GRANULARITIES
    if granularity != DEFAULT_GRANULARITY
]

# version -> (collections added, extra DDL)
SCHEMA_VERSIONS: dict[int, tuple[list[str], list[str]]] = {
    1: (_V1_COLLECTIONS, []),
    2: (
        _V2_COLLECTIONS,
        [
            f"CREATE TABLE IF NOT EXISTS {PREFERENCES_TABLE} ("
            "key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        ],
    ),
}
SCHEMA_VERSION = max(SCHEMA_VERSIONS)

COLLECTIONS = tuple(
    name for version in sorted(SCHEMA_VERSIONS) for name in SCHEMA_VERSIONS[version][0]
)


def _encode(record: dict[str, Any]) -> tuple[str, str]:
    record_id = record.get("id")
    if not isinstance(record_id, str) or not record_id:
        raise ValueError(f"Record has no string id: {record!r}")
    return record_id, json.dumps(record)


class CollectionStore:
    """Async named-collection store backed by a single SQLite database."""

    def __init__(self, database_path: str | Path = ":memory:") -> None:
        self.database_path = str(database_path)
        self._conn: aiosqlite.Connection | None = None
        self._open_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._locks = {name: asyncio.Lock() for name in COLLECTIONS}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> "CollectionStore":
        """Open the database and apply pending schema versions.

        Idempotent: later (or concurrent) calls return the same handle.

        Raises:
            TransactionFailed: If the database cannot be opened or migrated.
        """
        async with self._open_lock:
            if self._conn is not None:
                return self

            if self.database_path != ":memory:":
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

            try:
                conn = await aiosqlite.connect(self.database_path)
            except aiosqlite.Error as exc:
                logger.error("Cannot open database %s: %s", self.database_path, exc)
                raise TransactionFailed(f"Failed to open database: {exc}") from exc

            try:
                await self._migrate(conn)
            except aiosqlite.Error as exc:
                await conn.close()
                logger.error("Schema migration failed for %s: %s", self.database_path, exc)
                raise TransactionFailed(f"Failed to upgrade database: {exc}") from exc

            self._conn = conn
            logger.info("Collection store open: %s (schema v%d)", self.database_path, SCHEMA_VERSION)
        return self

    async def _migrate(self, conn: aiosqlite.Connection) -> None:
        async with conn.execute("PRAGMA user_version") as cursor:
            row = await cursor.fetchone()
        current = row[0] if row else 0

        for version in sorted(SCHEMA_VERSIONS):
            if version <= current:
                continue
            collections, extra_ddl = SCHEMA_VERSIONS[version]
            for name in collections:
                await conn.execute(_collection_ddl(name))
            for statement in extra_ddl:
                await conn.execute(statement)
            await conn.execute(f"PRAGMA user_version = {version}")
            await conn.commit()
            logger.info("Applied schema v%d (%d collections)", version, len(collections))

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.debug("Collection store closed: %s", self.database_path)

    async def __aenter__(self) -> "CollectionStore":
        return await self.open()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Connection and transactions
    # ------------------------------------------------------------------

    def connection(self) -> aiosqlite.Connection:
        """The open connection.

        Raises:
            StoreUnavailable: Store not open.
        """
        if self._conn is None:
            raise StoreUnavailable("Collection store used before open()")
        return self._conn

    def _check(self, collection: str) -> str:
        if collection not in self._locks:
            raise ValueError(f"Unknown collection {collection!r}")
        return collection

    @asynccontextmanager
    async def transaction(self, collections: Iterable[str]) -> AsyncIterator[aiosqlite.Connection]:
        """Hold the collection locks + write lock; commit on success, roll back on error.

        Pass no collections for writes outside the record collections
        (the preferences table); those hold only the write lock.

        Raises:
            StoreUnavailable: Store not open.
            TransactionFailed: sqlite error; the transaction was rolled back.
        """
        conn = self.connection()
        names = sorted({self._check(name) for name in collections})

        async with AsyncExitStack() as stack:
            for name in names:
                await stack.enter_async_context(self._locks[name])
            await stack.enter_async_context(self._write_lock)
            try:
                yield conn
                await conn.commit()
            except aiosqlite.Error as exc:
                await conn.rollback()
                logger.error("Transaction on %s rolled back: %s", names or "store", exc)
                raise TransactionFailed(f"Transaction failed: {exc}") from exc
            except Exception:
                await conn.rollback()
                raise

    async def _read(self, collection: str, sql: str, params: tuple = ()) -> list[tuple]:
        conn = self.connection()
        async with self._locks[self._check(collection)]:
            try:
                async with conn.execute(sql, params) as cursor:
                    return list(await cursor.fetchall())
            except aiosqlite.Error as exc:
                logger.error("Read from %s failed: %s", collection, exc)
                raise TransactionFailed(f"Failed to read {collection}: {exc}") from exc

    # ------------------------------------------------------------------
    # Collection operations
    # ------------------------------------------------------------------

    async def bulk_replace(self, collection: str, records: list[dict[str, Any]]) -> None:
        """Atomically replace the entire contents of one collection."""
        await self.bulk_replace_many({collection: records})

    async def bulk_replace_many(self, data: dict[str, list[dict[str, Any]]]) -> None:
        """Atomically replace several collections in one transaction.

        Either every collection shows its new records or none does.

        Args:
            data: Collection name -> records to store (in insertion order).

        Raises:
            StoreUnavailable: Store not open.
            TransactionFailed: Write failed (e.g. duplicate ids); nothing changed.
        """
        rows = {
            self._check(name): [_encode(record) for record in records]
            for name, records in data.items()
        }
        async with self.transaction(rows) as conn:
            for name, encoded in rows.items():
                await conn.execute(f'DELETE FROM "{name}"')
                await conn.executemany(f'INSERT INTO "{name}" (id, body) VALUES (?, ?)', encoded)

        logger.debug(
            "Bulk replaced %s",
            ", ".join(f"{name}={len(encoded)}" for name, encoded in rows.items()),
        )

    async def get_all(self, collection: str) -> list[dict[str, Any]]:
        """Return every record of a collection in insertion order."""
        rows = await self._read(collection, f'SELECT body FROM "{collection}" ORDER BY seq')
        return [json.loads(body) for (body,) in rows]

    async def get_by_id(self, collection: str, record_id: str) -> dict[str, Any] | None:
        """Return one record, or None if the id is absent."""
        rows = await self._read(
            collection, f'SELECT body FROM "{collection}" WHERE id = ?', (record_id,)
        )
        return json.loads(rows[0][0]) if rows else None

    async def count(self, collection: str) -> int:
        rows = await self._read(collection, f'SELECT COUNT(*) FROM "{collection}"')
        return int(rows[0][0])

    async def put(self, collection: str, record: dict[str, Any]) -> None:
        """Insert or update a record by id; updates keep the original position."""
        record_id, body = _encode(record)
        async with self.transaction([collection]) as conn:
            await conn.execute(
                f'INSERT INTO "{collection}" (id, body) VALUES (?, ?) '
                "ON CONFLICT(id) DO UPDATE SET body = excluded.body",
                (record_id, body),
            )

    async def delete(self, collection: str, record_id: str) -> None:
        """Delete a record by id; deleting an absent id is a no-op."""
        async with self.transaction([collection]) as conn:
            await conn.execute(f'DELETE FROM "{collection}" WHERE id = ?', (record_id,))


class PreferenceStore:
    """Scalar key/value store for session and preference values.

    Values are JSON-encoded, so any JSON-compatible value round-trips.
    """

    def __init__(self, store: CollectionStore) -> None:
        self._store = store

    async def get(self, key: str, default: Any = None) -> Any:
        conn = self._store.connection()
        try:
            async with conn.execute(
                f"SELECT value FROM {PREFERENCES_TABLE} WHERE key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            logger.error("Reading preference %s failed: %s", key, exc)
            raise TransactionFailed(f"Failed to read preference {key}: {exc}") from exc
        return json.loads(row[0]) if row else default

    async def set(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        async with self._store.transaction([]) as conn:
            await conn.execute(
                f"INSERT INTO {PREFERENCES_TABLE} (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, encoded),
            )

    async def remove(self, key: str) -> None:
        async with self._store.transaction([]) as conn:
            await conn.execute(f"DELETE FROM {PREFERENCES_TABLE} WHERE key = ?", (key,))

    async def clear(self) -> None:
        async with self._store.transaction([]) as conn:
            await conn.execute(f"DELETE FROM {PREFERENCES_TABLE}")
