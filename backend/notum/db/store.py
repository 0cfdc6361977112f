"""Embedded document store on top of SQLite.

Every collection is a table holding the JSON body of each record plus a few
mirrored columns that carry the secondary indexes declared in ``schema.sql``.
The store owns ``created_at``/``updated_at``: inserts stamp both, updates
refresh ``updated_at``, and caller-supplied values for either are discarded.

All access goes through :meth:`EntityStore.transaction`. A single
``asyncio.Lock`` serializes transactions on the one connection, so a reader
never sees the middle of a multi-collection cascade.
"""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, AsyncIterator, Mapping, Sequence

import aiosqlite
import orjson

from notum.core.errors import ConstraintViolationError, NotOpenError
from notum.core.logging import get_logger
from notum.utils.time import Clock, isoformat, utc_now

logger = get_logger(__name__)

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA temp_store=MEMORY;",
)

SCHEMA_VERSION = 1

# version -> additive statements applied when upgrading to that version
MIGRATIONS: Mapping[int, Sequence[str]] = {1: ()}

STAMP_FIELDS = ("created_at", "updated_at")


@dataclass(frozen=True, slots=True)
class CollectionSpec:
    """A collection name and the body fields mirrored into indexed columns."""

    name: str
    indexes: tuple[str, ...]

    @property
    def columns(self) -> tuple[str, ...]:
        return ("id", *self.indexes, *STAMP_FIELDS)

    def check(self, column: str) -> str:
        if column not in self.columns:
            raise ValueError(f"{self.name} has no indexed column {column!r}")
        return column


COLLECTIONS: dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (
        CollectionSpec("users", ("name",)),
        CollectionSpec("resources", ("type", "url", "title", "content_hash")),
        CollectionSpec("highlights", ("resource_id", "color")),
        CollectionSpec("study_tracks", ("name", "is_template")),
        CollectionSpec("flashcards", ("resource_id", "highlight_id", "next_review", "difficulty")),
        CollectionSpec("assets", ("type", "hash")),
        CollectionSpec("translations", ("content_hash", "source_language", "target_language")),
    )
}


def _column_value(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return isoformat(value)
    return value


def _dumps(body: Mapping[str, Any]) -> str:
    return orjson.dumps(body, default=_json_default, option=orjson.OPT_PASSTHROUGH_DATETIME).decode("utf-8")


def _json_default(value: Any) -> Any:
    # datetimes share the column format so body values and indexes compare alike
    if isinstance(value, datetime):
        return isoformat(value)
    if isinstance(value, Path):
        return str(value)
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


class Transaction:
    """Operations issued inside one atomic unit of work."""

    def __init__(self, store: "EntityStore", conn: aiosqlite.Connection) -> None:
        self._store = store
        self._conn = conn

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        spec = _spec(collection)
        cursor = await self._conn.execute(f"SELECT body FROM {spec.name} WHERE id = ?", [record_id])
        row = await cursor.fetchone()
        await cursor.close()
        return orjson.loads(row["body"]) if row else None

    async def find(
        self,
        collection: str,
        where: Mapping[str, Any] | None = None,
        *,
        at_most: Mapping[str, Any] | None = None,
        order_by: str = "created_at",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return bodies matching equality filters and ``column <= value`` bounds."""
        spec = _spec(collection)
        clause, params = _where_clause(spec, where, at_most)
        direction = "DESC" if descending else "ASC"
        sql = (
            f"SELECT body FROM {spec.name}{clause} "
            f"ORDER BY {spec.check(order_by)} {direction}, rowid {direction}"
        )
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        await cursor.close()
        return [orjson.loads(row["body"]) for row in rows]

    async def first(self, collection: str, where: Mapping[str, Any]) -> dict[str, Any] | None:
        rows = await self.find(collection, where, limit=1)
        return rows[0] if rows else None

    async def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        spec = _spec(collection)
        clause, params = _where_clause(spec, where, None)
        cursor = await self._conn.execute(f"SELECT COUNT(*) AS count FROM {spec.name}{clause}", params)
        row = await cursor.fetchone()
        await cursor.close()
        return int(row["count"]) if row else 0

    async def insert(self, collection: str, body: Mapping[str, Any]) -> dict[str, Any]:
        spec = _spec(collection)
        if not body.get("id"):
            raise ValueError("records must carry an id")
        now = self._store.stamp()
        record = {**body, "created_at": now, "updated_at": now}
        await self._write(
            f"INSERT INTO {spec.name} ({', '.join(('body', *spec.columns))}) "
            f"VALUES ({', '.join('?' for _ in range(len(spec.columns) + 1))})",
            [_dumps(record), *(_column_value(record.get(column)) for column in spec.columns)],
        )
        return orjson.loads(_dumps(record))

    async def update(
        self, collection: str, record_id: str, changes: Mapping[str, Any]
    ) -> dict[str, Any] | None:
        """Merge ``changes`` into the stored body; ``None`` when the id is missing."""
        spec = _spec(collection)
        current = await self.get(collection, record_id)
        if current is None:
            return None
        merged = {key: value for key, value in changes.items() if key not in STAMP_FIELDS}
        record = {**current, **merged, "id": record_id, "updated_at": self._store.stamp()}
        mirrored = spec.indexes + ("updated_at",)
        assignments = ", ".join(f"{column} = ?" for column in ("body", *mirrored))
        await self._write(
            f"UPDATE {spec.name} SET {assignments} WHERE id = ?",
            [_dumps(record), *(_column_value(record.get(column)) for column in mirrored), record_id],
        )
        return orjson.loads(_dumps(record))

    async def delete(self, collection: str, record_id: str) -> bool:
        return await self.delete_where(collection, {"id": record_id}) > 0

    async def delete_where(self, collection: str, where: Mapping[str, Any]) -> int:
        spec = _spec(collection)
        if not where:
            raise ValueError("delete_where requires at least one filter")
        clause, params = _where_clause(spec, where, None)
        return await self._write(f"DELETE FROM {spec.name}{clause}", params)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        """Run a raw statement, used for schema migrations."""
        cursor = await self._conn.execute(sql, params)
        await cursor.close()

    async def _write(self, sql: str, params: Sequence[Any]) -> int:
        try:
            cursor = await self._conn.execute(sql, params)
        except sqlite3.IntegrityError as exc:
            raise ConstraintViolationError(str(exc)) from exc
        rowcount = cursor.rowcount
        await cursor.close()
        return rowcount


class EntityStore:
    """Named local database holding every Notum collection."""

    def __init__(
        self,
        db_path: Path | str,
        clock: Clock = utc_now,
        migrations: Mapping[int, Sequence[str]] | None = None,
    ) -> None:
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path).expanduser()
        self._clock = clock
        self._migrations = dict(MIGRATIONS if migrations is None else migrations)
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._last_stamp: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        if self._conn is not None:
            return
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(self.db_path), isolation_level=None)
        conn.row_factory = aiosqlite.Row
        for pragma in DEFAULT_PRAGMAS:
            await conn.execute(pragma)
        schema_sql = Path(__file__).with_name("schema.sql").read_text(encoding="utf-8")
        await conn.executescript(schema_sql)
        self._conn = conn
        await self._migrate()
        logger.debug("Opened entity store at %s", self.db_path)

    async def close(self) -> None:
        if self._conn is not None:
            async with self._lock:
                await self._conn.close()
                self._conn = None
            logger.debug("Closed entity store at %s", self.db_path)

    async def __aenter__(self) -> "EntityStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def stamp(self) -> datetime:
        """Current time, strictly increasing across calls on this store."""
        now = self._clock()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now

    @asynccontextmanager
    async def transaction(self, readonly: bool = False) -> AsyncIterator[Transaction]:
        """Run a unit of work that either fully commits or fully rolls back."""
        self._require_open()
        async with self._lock:
            conn = self._require_open()
            await conn.execute("BEGIN" if readonly else "BEGIN IMMEDIATE")
            try:
                yield Transaction(self, conn)
            except BaseException:
                await conn.execute("ROLLBACK")
                raise
            else:
                await conn.execute("COMMIT")

    # Single-operation shortcuts ------------------------------------------

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        async with self.transaction(readonly=True) as tx:
            return await tx.get(collection, record_id)

    async def find(self, collection: str, where: Mapping[str, Any] | None = None, **kwargs: Any) -> list[dict[str, Any]]:
        async with self.transaction(readonly=True) as tx:
            return await tx.find(collection, where, **kwargs)

    async def first(self, collection: str, where: Mapping[str, Any]) -> dict[str, Any] | None:
        async with self.transaction(readonly=True) as tx:
            return await tx.first(collection, where)

    async def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        async with self.transaction(readonly=True) as tx:
            return await tx.count(collection, where)

    async def insert(self, collection: str, body: Mapping[str, Any]) -> dict[str, Any]:
        async with self.transaction() as tx:
            return await tx.insert(collection, body)

    async def update(self, collection: str, record_id: str, changes: Mapping[str, Any]) -> dict[str, Any] | None:
        async with self.transaction() as tx:
            return await tx.update(collection, record_id, changes)

    async def delete(self, collection: str, record_id: str) -> bool:
        async with self.transaction() as tx:
            return await tx.delete(collection, record_id)

    # Schema versioning ---------------------------------------------------

    async def schema_version(self) -> int:
        conn = self._require_open()
        cursor = await conn.execute("SELECT MAX(version) AS version FROM storage_version")
        row = await cursor.fetchone()
        await cursor.close()
        return int(row["version"]) if row and row["version"] is not None else 0

    async def _migrate(self) -> None:
        current = await self.schema_version()
        target = max(self._migrations, default=SCHEMA_VERSION)
        for version in range(current + 1, target + 1):
            statements = self._migrations.get(version, ())
            async with self.transaction() as tx:
                for statement in statements:
                    await tx.execute(statement)
                await tx.execute(
                    "INSERT INTO storage_version (version, migrated_at) VALUES (?, ?)",
                    [version, isoformat(self._clock())],
                )
            logger.info("Migrated entity store to schema version %s", version)

    def _require_open(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise NotOpenError(f"Entity store is not open: {self.db_path}")
        return self._conn


def _spec(collection: str) -> CollectionSpec:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}") from None


def _where_clause(
    spec: CollectionSpec,
    where: Mapping[str, Any] | None,
    at_most: Mapping[str, Any] | None,
) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    for column, value in (where or {}).items():
        spec.check(column)
        if value is None:
            clauses.append(f"{column} IS NULL")
        else:
            clauses.append(f"{column} = ?")
            params.append(_column_value(value))
    for column, value in (at_most or {}).items():
        clauses.append(f"{spec.check(column)} <= ?")
        params.append(_column_value(value))
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


__all__ = ["COLLECTIONS", "CollectionSpec", "EntityStore", "SCHEMA_VERSION", "Transaction"]
