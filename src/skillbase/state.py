"""Per-skill enable/disable/usage state.

State lives in the ``skills_state`` table and is independent of discovery: a
record may outlive its skill directory, and a discoverable skill without a
record is enabled. Every reader goes through ``is_enabled_record`` or
``resolve_enabled`` so that default is applied in one place.

Each mutation is a read-then-write sequence with no locking; concurrent
writers to the same name race and the last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime

from skillbase.config import DiscoverOptions
from skillbase.discovery import DiscoveryResult, discover
from skillbase.storage.repository import Repository, StorageBackend
from skillbase.storage.schema import (
    NAMESPACE,
    SKILLS_SCHEMA,
    SKILLS_STATE_TABLE,
    SkillStateRecord,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


def is_enabled_record(record: SkillStateRecord | None) -> bool:
    """Apply the default-enabled policy to a single state record."""
    return record is None or record.enabled is not False


def resolve_enabled(states: Mapping[str, Mapping[str, bool]], name: str) -> bool:
    """Apply the default-enabled policy to a ``get_all_states`` mapping."""
    state = states.get(name)
    return state is None or state.get("enabled") is not False


class SkillStateStore:
    """Enable, disable and usage tracking for skills.

    Enable and disable first re-run discovery and refuse names that are not
    currently discoverable. Usage recording and removal are unconditional.

    Example::

        store = SkillStateStore(InMemoryStorage())
        if not await store.enable("web-search"):
            print("no such skill")

    Args:
        storage: Storage engine hosting the skills namespace.
        options: Discovery options used for the existence check.
        discover_fn: Discovery function, replaceable for embedding.
    """

    def __init__(
        self,
        storage: StorageBackend,
        options: DiscoverOptions | None = None,
        discover_fn: Callable[[DiscoverOptions | None], DiscoveryResult] = discover,
    ) -> None:
        self._storage = storage
        self._options = options
        self._discover = discover_fn
        self._initialized = False

    async def initialize(self) -> None:
        """Register the storage schema. Safe to call repeatedly."""
        if self._initialized:
            return
        await self._storage.register(SKILLS_SCHEMA)
        self._initialized = True

    async def _repo(self) -> Repository[SkillStateRecord]:
        await self.initialize()
        return self._storage.get_repository(NAMESPACE, SKILLS_STATE_TABLE)

    def _is_discoverable(self, name: str) -> bool:
        return any(skill.name == name for skill in self._discover(self._options).skills)

    async def get_state(self, name: str) -> SkillStateRecord | None:
        """Return the stored record for ``name``, or ``None``."""
        repo = await self._repo()
        return await repo.find_first({"id": name})

    async def get_all_states(self) -> dict[str, dict[str, bool]]:
        """Return ``{name: {"enabled": bool}}`` for every stored record."""
        repo = await self._repo()
        return {row.id: {"enabled": row.enabled} for row in await repo.find_many()}

    async def is_enabled(self, name: str) -> bool:
        """Return whether ``name`` is enabled; skills without a record are."""
        return is_enabled_record(await self.get_state(name))

    async def enable(self, name: str) -> bool:
        """Enable a discoverable skill.

        Returns:
            ``False`` without touching state when the skill is not
            discoverable, ``True`` otherwise.
        """
        if not self._is_discoverable(name):
            logger.debug("Cannot enable unknown skill %r", name)
            return False

        repo = await self._repo()
        now = _now()
        existing = await repo.find_first({"id": name})
        if existing is not None:
            await repo.update(existing.id, {"enabled": True, "enabled_at": now})
        else:
            await repo.insert(
                SkillStateRecord(id=name, enabled=True, installed=True, enabled_at=now, use_count=0)
            )
        logger.info("Enabled skill %r", name)
        return True

    async def disable(self, name: str) -> bool:
        """Disable a discoverable skill.

        Returns:
            ``False`` without touching state when the skill is not
            discoverable, ``True`` otherwise.
        """
        if not self._is_discoverable(name):
            logger.debug("Cannot disable unknown skill %r", name)
            return False

        repo = await self._repo()
        existing = await repo.find_first({"id": name})
        if existing is not None:
            await repo.update(existing.id, {"enabled": False, "enabled_at": None})
        else:
            await repo.insert(SkillStateRecord(id=name, enabled=False, installed=True, use_count=0))
        logger.info("Disabled skill %r", name)
        return True

    async def record_usage(self, name: str) -> None:
        """Count one use of ``name`` and stamp ``last_used_at``."""
        repo = await self._repo()
        now = _now()
        existing = await repo.find_first({"id": name})
        if existing is not None:
            await repo.update(
                existing.id,
                {"last_used_at": now, "use_count": existing.use_count + 1},
            )
        else:
            await repo.insert(
                SkillStateRecord(
                    id=name,
                    enabled=True,
                    installed=True,
                    enabled_at=now,
                    last_used_at=now,
                    use_count=1,
                )
            )
        logger.debug("Recorded usage for skill %r", name)

    async def remove_state(self, name: str) -> None:
        """Delete the record for ``name`` if there is one."""
        repo = await self._repo()
        existing = await repo.find_first({"id": name})
        if existing is not None:
            await repo.delete(existing.id)
            logger.debug("Removed state for skill %r", name)
