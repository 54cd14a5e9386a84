"""In-process storage engine."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from skillbase.errors import StorageError
from skillbase.storage.repository import matches_where
from skillbase.storage.schema import StorageSchema, TableSpec


class InMemoryRepository:
    """Dictionary-backed repository for one table.

    Rows are stored as plain dictionaries and returned as fresh model
    instances, so callers never share mutable state with the store.
    """

    def __init__(self, name: str, spec: TableSpec, rows: dict[str, dict[str, Any]]) -> None:
        self._name = name
        self._spec = spec
        self._rows = rows

    def _to_model(self, row: Mapping[str, Any]) -> Any:
        return self._spec.model.model_validate(dict(row))

    async def find_first(self, where: Mapping[str, Any]) -> Any | None:
        for row in self._rows.values():
            if matches_where(row, where):
                return self._to_model(row)
        return None

    async def find_many(self, where: Mapping[str, Any] | None = None) -> list[Any]:
        return [self._to_model(row) for row in self._rows.values() if matches_where(row, where)]

    async def insert(self, record: BaseModel) -> Any:
        row = record.model_dump()
        key = str(row[self._spec.primary_key])
        if key in self._rows:
            raise StorageError(self._name, f"duplicate primary key {key!r}")
        self._rows[key] = row
        return self._to_model(row)

    async def update(self, key: str, patch: Mapping[str, Any]) -> Any:
        if key not in self._rows:
            raise StorageError(self._name, f"no record with primary key {key!r}")
        merged = self._to_model({**self._rows[key], **patch})
        self._rows[key] = merged.model_dump()
        return merged

    async def delete(self, key: str) -> bool:
        return self._rows.pop(key, None) is not None


class InMemoryStorage:
    """Storage engine keeping all tables in memory.

    Example::

        storage = InMemoryStorage()
        await storage.register(SKILLS_SCHEMA)
        repo = storage.get_repository("skills", "skills_state")
    """

    def __init__(self) -> None:
        self._specs: dict[str, TableSpec] = {}
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._versions: dict[str, int] = {}

    async def register(self, schema: StorageSchema) -> None:
        self._versions[schema.namespace] = schema.version
        for table, spec in schema.tables.items():
            name = f"{schema.namespace}.{table}"
            self._specs[name] = spec
            self._tables.setdefault(name, {})

    def get_repository(self, namespace: str, table: str) -> InMemoryRepository:
        name = f"{namespace}.{table}"
        if name not in self._specs:
            raise StorageError(name, "table is not registered")
        return InMemoryRepository(name, self._specs[name], self._tables[name])
