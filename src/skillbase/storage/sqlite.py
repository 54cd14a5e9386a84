"""SQLite storage engine.

Each table is stored as ``<namespace>_<table>`` with the primary key in its
own column and the full record as a JSON document.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import aiosqlite
from pydantic import BaseModel

from skillbase.errors import StorageError
from skillbase.storage.repository import matches_where
from skillbase.storage.schema import StorageSchema, TableSpec

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    pk TEXT PRIMARY KEY,
    data TEXT NOT NULL
);
"""

_CREATE_META = """
CREATE TABLE IF NOT EXISTS _schema_versions (
    namespace TEXT PRIMARY KEY,
    version INTEGER NOT NULL
);
"""


async def get_connection(db_path: str | Path) -> aiosqlite.Connection:
    """Open a WAL-mode SQLite connection, creating the directory if needed."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(str(path))
    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA busy_timeout=5000")
    conn.row_factory = aiosqlite.Row
    return conn


class SQLiteRepository:
    """Repository over one SQLite table of JSON documents."""

    def __init__(self, conn: aiosqlite.Connection, table: str, spec: TableSpec) -> None:
        self._conn = conn
        self._table = table
        self._spec = spec

    def _to_model(self, data: str) -> Any:
        return self._spec.model.model_validate_json(data)

    async def _get(self, key: str) -> Any | None:
        async with self._conn.execute(
            f"SELECT data FROM {self._table} WHERE pk = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        return self._to_model(row["data"]) if row else None

    async def find_first(self, where: Mapping[str, Any]) -> Any | None:
        pk = self._spec.primary_key
        if set(where) == {pk}:
            return await self._get(str(where[pk]))
        matches = await self.find_many(where)
        return matches[0] if matches else None

    async def find_many(self, where: Mapping[str, Any] | None = None) -> list[Any]:
        async with self._conn.execute(f"SELECT data FROM {self._table} ORDER BY rowid") as cursor:
            rows = await cursor.fetchall()
        records = [self._to_model(row["data"]) for row in rows]
        return [r for r in records if matches_where(r.model_dump(), where)]

    async def insert(self, record: BaseModel) -> Any:
        key = str(getattr(record, self._spec.primary_key))
        try:
            await self._conn.execute(
                f"INSERT INTO {self._table} (pk, data) VALUES (?, ?)",
                (key, record.model_dump_json()),
            )
        except aiosqlite.IntegrityError as exc:
            raise StorageError(self._table, f"duplicate primary key {key!r}") from exc
        await self._conn.commit()
        return record

    async def update(self, key: str, patch: Mapping[str, Any]) -> Any:
        existing = await self._get(key)
        if existing is None:
            raise StorageError(self._table, f"no record with primary key {key!r}")
        merged = self._spec.model.model_validate({**existing.model_dump(), **patch})
        await self._conn.execute(
            f"UPDATE {self._table} SET data = ? WHERE pk = ?",
            (merged.model_dump_json(), key),
        )
        await self._conn.commit()
        return merged

    async def delete(self, key: str) -> bool:
        cursor = await self._conn.execute(f"DELETE FROM {self._table} WHERE pk = ?", (key,))
        await self._conn.commit()
        return cursor.rowcount > 0


class SQLiteStorage:
    """Storage engine persisting tables in a single SQLite database.

    Example::

        storage = await SQLiteStorage.create("~/.skillbase/skills.db")
        await storage.register(SKILLS_SCHEMA)
        ...
        await storage.close()
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn
        self._specs: dict[str, TableSpec] = {}

    @classmethod
    async def create(cls, db_path: str | Path) -> SQLiteStorage:
        conn = await get_connection(Path(db_path).expanduser())
        await conn.executescript(_CREATE_META)
        await conn.commit()
        return cls(conn)

    async def register(self, schema: StorageSchema) -> None:
        for table, spec in schema.tables.items():
            name = f"{schema.namespace}_{table}"
            await self._conn.executescript(_CREATE_TABLE.format(table=name))
            for fields in spec.indexes:
                columns = ", ".join(f"json_extract(data, '$.{f}')" for f in fields)
                await self._conn.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{name}_{'_'.join(fields)} ON {name} ({columns})"
                )
            self._specs[name] = spec
        await self._conn.execute(
            "INSERT INTO _schema_versions (namespace, version) VALUES (?, ?) "
            "ON CONFLICT(namespace) DO UPDATE SET version = excluded.version",
            (schema.namespace, schema.version),
        )
        await self._conn.commit()
        logger.debug("Registered storage schema %s v%d", schema.namespace, schema.version)

    def get_repository(self, namespace: str, table: str) -> SQLiteRepository:
        name = f"{namespace}_{table}"
        if name not in self._specs:
            raise StorageError(name, "table is not registered")
        return SQLiteRepository(self._conn, name, self._specs[name])

    async def close(self) -> None:
        await self._conn.close()
