"""Persisted record models and the storage schema for the skills namespace."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, Field

NAMESPACE = "skills"
SCHEMA_VERSION = 2
SKILLS_STATE_TABLE = "skills_state"
REGISTRIES_TABLE = "skill_registries"


class SkillStateRecord(BaseModel):
    """Per-skill lifecycle state, keyed by skill name.

    A missing record means the skill is enabled.
    """

    id: str = Field(description="Skill name (primary key)")
    enabled: bool = Field(description="Whether the skill is enabled")
    installed: bool = Field(default=True, description="Whether the skill is installed")
    enabled_at: datetime | None = Field(default=None, description="When the skill was last enabled")
    last_used_at: datetime | None = Field(default=None, description="When the skill was last used")
    use_count: int = Field(default=0, ge=0, description="Number of recorded uses")


class RegistryRecord(BaseModel):
    """A configured skill registry, keyed by registry name."""

    id: str = Field(description="Registry name (primary key)")
    url: str = Field(description="Manifest URL")
    added_at: datetime = Field(description="When the registry was added")
    last_fetched_at: datetime | None = Field(default=None, description="Last fetch attempt")
    last_error: str | None = Field(default=None, description="Error of the last failed fetch")


@dataclass(frozen=True)
class TableSpec:
    """Definition of one keyed table.

    Attributes:
        model: Pydantic model of a row.
        primary_key: Field used as the record key.
        indexes: Field groups to index.
    """

    model: type[BaseModel]
    primary_key: str = "id"
    indexes: tuple[tuple[str, ...], ...] = ()


@dataclass(frozen=True)
class StorageSchema:
    """A versioned set of tables under one namespace."""

    namespace: str
    version: int
    tables: dict[str, TableSpec] = field(default_factory=dict)


SKILLS_SCHEMA = StorageSchema(
    namespace=NAMESPACE,
    version=SCHEMA_VERSION,
    tables={
        SKILLS_STATE_TABLE: TableSpec(
            model=SkillStateRecord,
            indexes=(("enabled",), ("last_used_at",)),
        ),
        REGISTRIES_TABLE: TableSpec(model=RegistryRecord),
    },
)
