"""Skill data models, enums, and configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Name of the metadata file every skill directory must contain.
SKILL_FILENAME = "SKILL.md"


class SkillSource(str, Enum):
    """Origin of a discovered skill.

    Members are declared in precedence order: when two sources provide a
    skill with the same name, the earlier member wins.

    Attributes:
        EXTRA: Explicitly configured extra directories.
        BUNDLED: Skills shipped alongside the host application.
        MANAGED: User-level skills under ``~/.skillbase/skills``.
        WORKSPACE: Project-local skills under ``./.skillbase/skills``.
    """

    EXTRA = "extra"
    BUNDLED = "bundled"
    MANAGED = "managed"
    WORKSPACE = "workspace"


class SkillInstallStep(BaseModel):
    """One dependency install step declared in skill metadata.

    Attributes:
        id: Step identifier, unique within the skill.
        kind: Package manager or ``script``.
        formula: Homebrew formula (``brew`` steps).
        package: Package name (``apt``, ``npm``, ``pip`` steps).
        script: Shell script body (``script`` steps).
        bins: Binaries the step is expected to provide.
        label: Human-readable label.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    kind: Literal["brew", "apt", "npm", "pip", "script"]
    formula: str | None = None
    package: str | None = None
    script: str | None = None
    bins: list[str] | None = None
    label: str | None = None


class SkillRequirements(BaseModel):
    """Runtime requirements of a skill."""

    model_config = ConfigDict(extra="allow")

    bins: list[str] | None = None
    libs: list[str] | None = None


class SkillMetadata(BaseModel):
    """Capability descriptor resolved from the ``metadata`` frontmatter field.

    Attributes:
        emoji: Optional emoji shown before the description in prompts.
        requires: Binary and library requirements.
        install: Ordered install steps for missing requirements.
    """

    model_config = ConfigDict(extra="allow")

    emoji: str | None = None
    requires: SkillRequirements | None = None
    install: list[SkillInstallStep] | None = None


@dataclass(frozen=True)
class SkillCommandDispatch:
    """Mapping from a skill to a tool-backed command.

    ``tool`` is the only dispatch kind and ``raw`` the only argument mode.
    """

    tool_name: str
    kind: Literal["tool"] = "tool"
    arg_mode: Literal["raw"] = "raw"


@dataclass
class Skill:
    """A discovered skill.

    Rebuilt on every discovery pass; the name is its only stable identity.

    Attributes:
        name: Skill identifier (frontmatter ``name`` or the directory name).
        description: Human-readable description (always non-empty).
        path: Path of the ``SKILL.md`` file.
        base_dir: Directory containing ``SKILL.md``.
        source: Source the skill was loaded from.
        metadata: Resolved capability metadata, if declared.
        allowed_tools: Ordered tool names from ``allowed-tools``.
        command_dispatch: Command dispatch descriptor, if declared.
    """

    name: str
    description: str
    path: Path
    base_dir: Path
    source: SkillSource
    metadata: SkillMetadata | None = None
    allowed_tools: list[str] | None = None
    command_dispatch: SkillCommandDispatch | None = None


@dataclass(frozen=True)
class SkillInvocationPolicy:
    """How a skill may be invoked. Currently fixed for every skill."""

    disable_model_invocation: bool = False
    user_invocable: bool = True


@dataclass
class SkillEntry:
    """A loaded skill together with the raw data it was built from.

    Attributes:
        skill: The resolved skill.
        frontmatter: Decoded frontmatter fields keyed by their original names.
        metadata: Resolved capability metadata (same object as ``skill.metadata``).
        invocation: Invocation policy.
    """

    skill: Skill
    frontmatter: dict[str, Any] = field(default_factory=dict)
    metadata: SkillMetadata | None = None
    invocation: SkillInvocationPolicy = field(default_factory=SkillInvocationPolicy)


@dataclass
class SkillValidationWarning:
    """A non-fatal problem found while parsing or merging skills.

    Attributes:
        skill_path: Path of the offending ``SKILL.md`` (empty when unknown).
        message: Description of the problem.
    """

    skill_path: str
    message: str


class SkillsSettings(BaseSettings):
    """Filesystem layout and runtime settings.

    Values are read from ``SKILLBASE_*`` environment variables and an optional
    ``.env`` file.

    Attributes:
        home: Root of user-level state (``SKILLBASE_HOME``).
        project_dir: Project-local root (``SKILLBASE_PROJECT_DIR``).
        fetch_timeout: Per-request registry fetch timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="SKILLBASE_",
        env_file=".env",
        extra="ignore",
    )

    home: Path = Field(
        default_factory=lambda: Path.home() / ".skillbase",
        description="User-level state directory",
    )
    project_dir: Path = Field(
        default_factory=lambda: Path.cwd() / ".skillbase",
        description="Project-local state directory",
    )
    fetch_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Registry fetch timeout in seconds",
    )

    @model_validator(mode="after")
    def _expand_dirs(self) -> SkillsSettings:
        """Expand ``~`` in directory settings to the home directory."""
        self.home = self.home.expanduser()
        self.project_dir = self.project_dir.expanduser()
        return self

    @property
    def skills_dir(self) -> Path:
        """Managed skills root."""
        return self.home / "skills"

    @property
    def project_skills_dir(self) -> Path:
        """Workspace skills root."""
        return self.project_dir / "skills"

    @property
    def registries_file(self) -> Path:
        """Legacy JSON registry list."""
        return self.home / "registries.json"

    @property
    def state_file(self) -> Path:
        """Legacy JSON skill state file."""
        return self.home / "skills-state.json"

    @property
    def cache_dir(self) -> Path:
        """Download cache directory."""
        return self.home / ".cache"

    @property
    def database_path(self) -> Path:
        """SQLite database used by the command line."""
        return self.home / "skills.db"


@lru_cache
def get_settings() -> SkillsSettings:
    """Return the process-wide settings instance."""
    return SkillsSettings()


class DiscoverOptions(BaseModel):
    """Options for a discovery pass.

    Attributes:
        extra_dirs: Extra skill roots, highest precedence, in the given order.
            A leading ``~`` is expanded and paths are made absolute.
        bundled_dir: Skills shipped with the host application.
        managed_dir: User-level skills root.
        workspace_dir: Project-local skills root.
        include_skills: Glob-style allow patterns (``*`` and ``?``).
        ignore_skills: Glob-style deny patterns, applied before includes.
    """

    extra_dirs: list[Path] = Field(
        default_factory=list,
        description="Extra skill directories",
    )
    bundled_dir: Path | None = Field(
        default=None,
        description="Bundled skills directory",
    )
    managed_dir: Path = Field(
        default_factory=lambda: get_settings().skills_dir,
        description="Managed skills directory",
    )
    workspace_dir: Path = Field(
        default_factory=lambda: get_settings().project_skills_dir,
        description="Workspace skills directory",
    )
    include_skills: list[str] = Field(
        default_factory=list,
        description="Only load skills matching one of these patterns",
    )
    ignore_skills: list[str] = Field(
        default_factory=list,
        description="Never load skills matching one of these patterns",
    )

    @model_validator(mode="after")
    def _resolve_extra_dirs(self) -> DiscoverOptions:
        """Expand ``~`` in extra directories and make them absolute without following links."""
        self.extra_dirs = [Path(os.path.abspath(d.expanduser())) for d in self.extra_dirs]
        return self
