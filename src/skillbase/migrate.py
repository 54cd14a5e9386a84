"""One-shot import of the legacy JSON state files into storage.

Both migrations are idempotent: a missing source file is a no-op, existing
records are left alone, and the source file is renamed to ``*.backup`` once
it has been read.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from skillbase.config import SkillsSettings, get_settings
from skillbase.registries import RegistryStore
from skillbase.storage.repository import StorageBackend
from skillbase.storage.schema import (
    NAMESPACE,
    SKILLS_SCHEMA,
    SKILLS_STATE_TABLE,
    SkillStateRecord,
)

logger = logging.getLogger(__name__)


def _backup_file(path: Path) -> None:
    if path.exists():
        path.rename(path.with_name(path.name + ".backup"))
        logger.debug("Backed up %s", path)


def _read_json(path: Path) -> object | None:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Failed to parse %s: %s", path.name, exc)
        return None


async def migrate_skills_state(
    storage: StorageBackend,
    settings: SkillsSettings | None = None,
) -> int:
    """Import ``skills-state.json`` into the ``skills_state`` table.

    Args:
        storage: Storage engine hosting the skills namespace.
        settings: Settings locating the legacy file.

    Returns:
        Number of records inserted.
    """
    source = (settings or get_settings()).state_file
    if not source.exists():
        logger.debug("No %s found, skipping state migration", source.name)
        return 0

    data = _read_json(source)
    if not isinstance(data, dict):
        if data is not None:
            logger.error("Failed to parse %s: expected an object", source.name)
        return 0

    await storage.register(SKILLS_SCHEMA)
    repo = storage.get_repository(NAMESPACE, SKILLS_STATE_TABLE)
    now = datetime.now(UTC)

    migrated = 0
    for name, state in data.items():
        if not isinstance(state, dict) or not isinstance(state.get("enabled"), bool):
            logger.warning("Skipping malformed skill state entry %r", name)
            continue
        if await repo.find_first({"id": name}) is not None:
            continue
        enabled = state["enabled"]
        await repo.insert(
            SkillStateRecord(
                id=name,
                enabled=enabled,
                installed=True,
                enabled_at=now if enabled else None,
                use_count=0,
            )
        )
        migrated += 1

    logger.info("Migrated %d skill states from %s", migrated, source.name)
    _backup_file(source)
    return migrated


async def migrate_registries(
    store: RegistryStore,
    settings: SkillsSettings | None = None,
) -> int:
    """Import ``registries.json`` into the ``skill_registries`` table.

    Args:
        store: Registry store to import into.
        settings: Settings locating the legacy file.

    Returns:
        Number of registries added.
    """
    source = (settings or get_settings()).registries_file
    if not source.exists():
        logger.debug("No %s found, skipping registry migration", source.name)
        return 0

    data = _read_json(source)
    if not isinstance(data, list):
        if data is not None:
            logger.error("Failed to parse %s: expected an array", source.name)
        return 0

    migrated = 0
    for entry in data:
        if (
            not isinstance(entry, dict)
            or not isinstance(entry.get("name"), str)
            or not isinstance(entry.get("url"), str)
        ):
            logger.warning("Skipping malformed registry entry: %r", entry)
            continue
        if await store.get_registry(entry["name"]) is not None:
            continue
        await store.add_registry(entry["name"], entry["url"])
        migrated += 1

    logger.info("Migrated %d registries from %s", migrated, source.name)
    _backup_file(source)
    return migrated
