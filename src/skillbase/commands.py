"""Slash-command specs for skills that declare a command dispatch."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from skillbase.config import Skill, SkillCommandDispatch

COMMAND_NAME_MAX_LENGTH = 32
COMMAND_NAME_FALLBACK = "skill"
COMMAND_DESCRIPTION_MAX_LENGTH = 100

# Highest numeric suffix tried before giving up with "_x".
_MAX_SUFFIX = 999

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_]+")
_UNDERSCORE_RUNS = re.compile(r"_+")


@dataclass(frozen=True)
class SkillCommandSpec:
    """A command exposed for a skill.

    Attributes:
        name: Unique, sanitised command name.
        skill_name: Name of the skill the command runs.
        description: Description, at most 100 characters.
        dispatch: Dispatch descriptor of the skill.
    """

    name: str
    skill_name: str
    description: str
    dispatch: SkillCommandDispatch | None = None


def sanitize_command_name(raw: str) -> str:
    """Turn a skill name into a safe command name.

    Lower-cases, collapses runs of characters outside ``[a-z0-9_]`` into a
    single underscore, trims underscores and truncates to 32 characters.
    Falls back to ``skill`` when nothing is left.
    """
    normalized = _UNSAFE_CHARS.sub("_", raw.lower())
    normalized = _UNDERSCORE_RUNS.sub("_", normalized).strip("_")
    return normalized[:COMMAND_NAME_MAX_LENGTH] or COMMAND_NAME_FALLBACK


def resolve_unique_command_name(base: str, used: set[str]) -> str:
    """Return ``base`` or a suffixed variant not present in ``used``.

    ``used`` holds lower-cased names. Suffixes ``_2`` to ``_999`` are tried in
    order, truncating the base so the result stays within the length limit.
    """
    if base.lower() not in used:
        return base

    for index in range(2, _MAX_SUFFIX + 1):
        suffix = f"_{index}"
        trimmed = base[: max(1, COMMAND_NAME_MAX_LENGTH - len(suffix))]
        candidate = f"{trimmed}{suffix}"
        if candidate.lower() not in used:
            return candidate

    return f"{base[: max(1, COMMAND_NAME_MAX_LENGTH - 2)]}_x"


def _command_description(skill: Skill) -> str:
    description = (skill.description or "").strip() or skill.name
    if len(description) > COMMAND_DESCRIPTION_MAX_LENGTH:
        return f"{description[: COMMAND_DESCRIPTION_MAX_LENGTH - 1]}…"
    return description


def build_skill_command_specs(
    skills: Iterable[Skill],
    reserved_names: Iterable[str] = (),
) -> list[SkillCommandSpec]:
    """Build command specs for every skill with a command dispatch.

    Names are unique case-insensitively against ``reserved_names`` and each
    other; earlier skills keep the unsuffixed name.

    Args:
        skills: Skills in priority order.
        reserved_names: Command names already taken by the host.

    Returns:
        One ``SkillCommandSpec`` per dispatching skill, in input order.
    """
    used = {name.lower() for name in reserved_names}
    specs: list[SkillCommandSpec] = []

    for skill in skills:
        if skill.command_dispatch is None:
            continue
        name = resolve_unique_command_name(sanitize_command_name(skill.name), used)
        used.add(name.lower())
        specs.append(
            SkillCommandSpec(
                name=name,
                skill_name=skill.name,
                description=_command_description(skill),
                dispatch=skill.command_dispatch,
            )
        )

    return specs
