"""Keyed-record storage for skill state and registries.

Engines implement ``StorageBackend``; the skills namespace is described by
``SKILLS_SCHEMA``.
"""

from __future__ import annotations

from skillbase.storage.memory import InMemoryRepository, InMemoryStorage
from skillbase.storage.repository import Repository, StorageBackend
from skillbase.storage.schema import (
    NAMESPACE,
    REGISTRIES_TABLE,
    SKILLS_SCHEMA,
    SKILLS_STATE_TABLE,
    RegistryRecord,
    SkillStateRecord,
    StorageSchema,
    TableSpec,
)
from skillbase.storage.sqlite import SQLiteRepository, SQLiteStorage

__all__ = [
    "NAMESPACE",
    "REGISTRIES_TABLE",
    "SKILLS_SCHEMA",
    "SKILLS_STATE_TABLE",
    "InMemoryRepository",
    "InMemoryStorage",
    "RegistryRecord",
    "Repository",
    "SQLiteRepository",
    "SQLiteStorage",
    "SkillStateRecord",
    "StorageBackend",
    "StorageSchema",
    "TableSpec",
]
