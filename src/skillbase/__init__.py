"""Skill discovery, state and installation for agent runtimes.

Finds ``SKILL.md`` skill definitions across prioritized directories, merges
them into one deduplicated set, derives slash-command specs and a prompt
fragment from them, and tracks per-skill enable/usage state.

Quick Start:
    >>> from skillbase import DiscoverOptions, build_skills_prompt, discover
    >>> result = discover(DiscoverOptions(extra_dirs=["./skills"]))
    >>> prompt = build_skills_prompt(result.skills)

Classes:
    Skill: A discovered skill.
    DiscoverOptions: Directories and name filters for a discovery pass.
    DiscoveryResult: Merged skills plus validation warnings.
    SkillStateStore: Enable/disable/usage state over a storage engine.
    RegistryStore: Configured remote registries.
    SkillsSettings: Environment-driven filesystem layout.

Enums:
    SkillSource: Origin of a skill, in precedence order.

Exceptions:
    SkillError: Base exception for all skill-related errors.
    SkillNotFoundError: Skill directory does not exist.
    SkillExistsError: Skill directory is already taken.
    SkillPolicyError: Unsafe name, path or install source.
    SkillInstallError: Installing from a remote source failed.
    RegistryFetchError: Registry manifest could not be fetched.
    StorageError: Storage engine rejected an operation.
"""

from __future__ import annotations

from skillbase.commands import SkillCommandSpec, build_skill_command_specs
from skillbase.config import (
    DiscoverOptions,
    Skill,
    SkillCommandDispatch,
    SkillEntry,
    SkillMetadata,
    SkillsSettings,
    SkillSource,
    SkillValidationWarning,
    get_settings,
)
from skillbase.discovery import (
    DiscoveryResult,
    discover,
    discover_skills_legacy,
    get_skill_by_name,
)
from skillbase.errors import (
    RegistryFetchError,
    SkillError,
    SkillExistsError,
    SkillInstallError,
    SkillNotFoundError,
    SkillPolicyError,
    StorageError,
)
from skillbase.frontmatter import parse_frontmatter
from skillbase.prompt import build_skills_prompt, format_skills_xml
from skillbase.registries import RegistryStore
from skillbase.state import SkillStateStore, is_enabled_record, resolve_enabled

__all__ = [
    "DiscoverOptions",
    "DiscoveryResult",
    "RegistryFetchError",
    "RegistryStore",
    "Skill",
    "SkillCommandDispatch",
    "SkillCommandSpec",
    "SkillEntry",
    "SkillError",
    "SkillExistsError",
    "SkillInstallError",
    "SkillMetadata",
    "SkillNotFoundError",
    "SkillPolicyError",
    "SkillSource",
    "SkillStateStore",
    "SkillValidationWarning",
    "SkillsSettings",
    "StorageError",
    "build_skill_command_specs",
    "build_skills_prompt",
    "discover",
    "discover_skills_legacy",
    "format_skills_xml",
    "get_settings",
    "get_skill_by_name",
    "is_enabled_record",
    "parse_frontmatter",
    "resolve_enabled",
]
