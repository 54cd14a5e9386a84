"""Keyed-record repository interfaces implemented by storage engines."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

if TYPE_CHECKING:
    from skillbase.storage.schema import StorageSchema

RecordT = TypeVar("RecordT", bound=BaseModel)


@runtime_checkable
class Repository(Protocol[RecordT]):
    """Async CRUD access to one table.

    ``where`` arguments are equality filters on record fields; an empty or
    missing filter matches every record.
    """

    async def find_first(self, where: Mapping[str, Any]) -> RecordT | None: ...
    async def find_many(self, where: Mapping[str, Any] | None = None) -> list[RecordT]: ...
    async def insert(self, record: RecordT) -> RecordT: ...
    async def update(self, key: str, patch: Mapping[str, Any]) -> RecordT: ...
    async def delete(self, key: str) -> bool: ...


@runtime_checkable
class StorageBackend(Protocol):
    """A storage engine hosting namespaced tables."""

    async def register(self, schema: StorageSchema) -> None: ...
    def get_repository(self, namespace: str, table: str) -> Repository[Any]: ...


def matches_where(row: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
    """Return whether every filter field equals the row's value."""
    if not where:
        return True
    return all(row.get(key) == value for key, value in where.items())
