"""Configured skill registries."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from skillbase.storage.repository import Repository, StorageBackend
from skillbase.storage.schema import (
    NAMESPACE,
    REGISTRIES_TABLE,
    SKILLS_SCHEMA,
    RegistryRecord,
)

logger = logging.getLogger(__name__)


class RegistryStore:
    """CRUD access to the ``skill_registries`` table.

    Args:
        storage: Storage engine hosting the skills namespace.
    """

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage
        self._initialized = False

    async def initialize(self) -> None:
        """Register the storage schema. Safe to call repeatedly."""
        if self._initialized:
            return
        await self._storage.register(SKILLS_SCHEMA)
        self._initialized = True

    async def _repo(self) -> Repository[RegistryRecord]:
        await self.initialize()
        return self._storage.get_repository(NAMESPACE, REGISTRIES_TABLE)

    async def list_registries(self) -> list[RegistryRecord]:
        """Return every configured registry."""
        repo = await self._repo()
        return await repo.find_many()

    async def get_registry(self, name: str) -> RegistryRecord | None:
        repo = await self._repo()
        return await repo.find_first({"id": name})

    async def add_registry(self, name: str, url: str) -> RegistryRecord:
        """Add a registry, or point an existing one at a new URL."""
        repo = await self._repo()
        existing = await repo.find_first({"id": name})
        if existing is not None:
            record = await repo.update(name, {"url": url})
        else:
            record = await repo.insert(RegistryRecord(id=name, url=url, added_at=datetime.now(UTC)))
        logger.info("Registry %r -> %s", name, url)
        return record

    async def remove_registry(self, name: str) -> bool:
        """Remove a registry. Returns ``False`` when it does not exist."""
        repo = await self._repo()
        if await repo.find_first({"id": name}) is None:
            return False
        await repo.delete(name)
        logger.info("Removed registry %r", name)
        return True

    async def update_fetch_status(
        self,
        name: str,
        fetched_at: datetime,
        error: str | None = None,
    ) -> None:
        """Record the outcome of a fetch. Unknown names are ignored."""
        repo = await self._repo()
        if await repo.find_first({"id": name}) is None:
            return
        await repo.update(name, {"last_fetched_at": fetched_at, "last_error": error})
