"""Skill discovery across all configured sources.

Sources are scanned in a fixed precedence order and merged into a single
skill set:

1. Extra: directories passed in ``DiscoverOptions.extra_dirs``, in order
2. Bundled: skills shipped with the host application
3. Managed: ``~/.skillbase/skills/``
4. Workspace: ``./.skillbase/skills/``

Two independent equivalence checks run in sequence over the ordered
candidates. The same physical ``SKILL.md`` reached through two roots is
dropped silently; two different files declaring the same name keep the first
and record a collision warning for the rest.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from skillbase.config import (
    DiscoverOptions,
    Skill,
    SkillSource,
    SkillValidationWarning,
)
from skillbase.loader import load_from_directory

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    """Merged skills and every warning produced while building them."""

    skills: list[Skill] = field(default_factory=list)
    warnings: list[SkillValidationWarning] = field(default_factory=list)


def _compile_pattern(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def matches_pattern(name: str, patterns: Iterable[str]) -> bool:
    """Check whether ``name`` matches any glob-style pattern.

    ``*`` matches any run of characters and ``?`` a single character; every
    other character matches literally. Patterns must match the whole name.
    """
    return any(_compile_pattern(pattern).fullmatch(name) for pattern in patterns)


def _source_dirs(options: DiscoverOptions) -> list[tuple[Path, SkillSource]]:
    sources = [(directory, SkillSource.EXTRA) for directory in options.extra_dirs]
    if options.bundled_dir is not None:
        sources.append((options.bundled_dir, SkillSource.BUNDLED))
    sources.append((options.managed_dir, SkillSource.MANAGED))
    sources.append((options.workspace_dir, SkillSource.WORKSPACE))
    return sources


def _identity_key(path: Path) -> str:
    try:
        return str(path.resolve(strict=True))
    except (OSError, RuntimeError):
        return str(path)


def _is_selected(name: str, options: DiscoverOptions) -> bool:
    if options.ignore_skills and matches_pattern(name, options.ignore_skills):
        return False
    if options.include_skills and not matches_pattern(name, options.include_skills):
        return False
    return True


def discover(options: DiscoverOptions | None = None) -> DiscoveryResult:
    """Discover skills from every configured source.

    Args:
        options: Source directories and filters. Defaults are used when
            ``None``.

    Returns:
        ``DiscoveryResult`` whose skills have unique names, in first-seen
        order, together with all parse, validation and collision warnings.
    """
    options = options or DiscoverOptions()
    result = DiscoveryResult()

    candidates: list[Skill] = []
    for directory, source in _source_dirs(options):
        loaded = load_from_directory(directory, source)
        result.warnings.extend(loaded.warnings)
        candidates.extend(
            entry.skill for entry in loaded.entries if _is_selected(entry.skill.name, options)
        )

    # Identity pass: one entry per physical SKILL.md.
    seen_paths: set[str] = set()
    unique: list[Skill] = []
    for skill in candidates:
        key = _identity_key(skill.path)
        if key in seen_paths:
            logger.debug("Skill %s already loaded via another path, skipping", skill.path)
            continue
        seen_paths.add(key)
        unique.append(skill)

    # Name pass: first source in precedence order wins.
    seen_names: dict[str, Skill] = {}
    for skill in unique:
        existing = seen_names.get(skill.name)
        if existing is not None:
            result.warnings.append(
                SkillValidationWarning(
                    skill_path=str(skill.path),
                    message=(
                        f'name collision: "{skill.name}" already loaded from '
                        f"{existing.path}, skipping"
                    ),
                )
            )
            continue
        seen_names[skill.name] = skill
        result.skills.append(skill)

    logger.debug(
        "Discovered %d skill(s) with %d warning(s)",
        len(result.skills),
        len(result.warnings),
    )
    return result


def discover_skills_legacy() -> list[Skill]:
    """Discover skills with default options, returning only the skill list."""
    return discover().skills


def get_skill_by_name(name: str, options: DiscoverOptions | None = None) -> Skill | None:
    """Return the discovered skill called ``name``, or ``None``."""
    return next((s for s in discover(options).skills if s.name == name), None)
