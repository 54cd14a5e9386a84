"""Load skills from a single source directory.

Each immediate subdirectory holding a ``SKILL.md`` file is one candidate.
Candidates are parsed and validated independently; problems are reported as
warnings attributed to the candidate's file and never abort the scan.
"""

from __future__ import annotations

import json
import logging
import stat
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from skillbase.config import (
    SKILL_FILENAME,
    Skill,
    SkillCommandDispatch,
    SkillEntry,
    SkillMetadata,
    SkillSource,
    SkillValidationWarning,
)
from skillbase.frontmatter import (
    parse_frontmatter,
    validate_skill_description,
    validate_skill_name,
)

logger = logging.getLogger(__name__)

# Directory names never treated as skills.
_IGNORED_NAMES = frozenset({"node_modules", "__pycache__"})

# Metadata sub-object keys, current name first.
_METADATA_KEYS = ("wopr", "clawdbot")


class EntryKind(str, Enum):
    """Classification of a directory entry after following symlinks.

    Attributes:
        DIRECTORY: A directory, or a symlink resolving to one.
        FILE: Anything else that exists.
        UNRESOLVABLE: A symlink whose target cannot be reached.
    """

    DIRECTORY = "directory"
    FILE = "file"
    UNRESOLVABLE = "unresolvable"


@dataclass
class LoadResult:
    """Entries and warnings produced by loading one directory."""

    entries: list[SkillEntry] = field(default_factory=list)
    warnings: list[SkillValidationWarning] = field(default_factory=list)


def classify_entry(path: Path) -> EntryKind:
    """Classify a directory entry, resolving symlinks to their target type.

    The raw entry is classified first; a symlink is then resolved and
    re-classified by its target.
    """
    try:
        mode = path.lstat().st_mode
    except OSError:
        return EntryKind.UNRESOLVABLE

    if stat.S_ISLNK(mode):
        try:
            mode = path.stat().st_mode
        except (OSError, RuntimeError):
            return EntryKind.UNRESOLVABLE

    return EntryKind.DIRECTORY if stat.S_ISDIR(mode) else EntryKind.FILE


def resolve_skill_metadata(raw: Any) -> dict[str, Any] | None:
    """Extract the capability sub-object from a decoded ``metadata`` value.

    Accepts either a decoded mapping or a string that is decoded as JSON.
    The current key wins over the legacy alias.
    """
    if not raw:
        return None

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None

    if not isinstance(raw, dict):
        return None

    for key in _METADATA_KEYS:
        value = raw.get(key)
        if isinstance(value, dict):
            return value
    return None


def resolve_command_dispatch(
    fields: dict[str, Any],
    skill_path: str,
    warnings: list[SkillValidationWarning],
) -> SkillCommandDispatch | None:
    """Build the command dispatch descriptor declared by a skill, if any."""
    dispatch = str(fields.get("command-dispatch") or "").strip().lower()
    if dispatch != "tool":
        return None

    tool_name = str(fields.get("command-tool") or "").strip()
    if not tool_name:
        logger.warning("Skill %s requested tool dispatch without command-tool", skill_path)
        warnings.append(
            SkillValidationWarning(
                skill_path=skill_path,
                message="command-dispatch is tool but command-tool is missing",
            )
        )
        return None

    # "raw" is the only argument mode; any other value normalises to it.
    return SkillCommandDispatch(tool_name=tool_name, arg_mode="raw")


def load_skill_file(skill_file: Path, source: SkillSource) -> tuple[SkillEntry | None, list[SkillValidationWarning]]:
    """Load one ``SKILL.md`` file.

    Args:
        skill_file: Path of the ``SKILL.md`` file.
        source: Source label to assign.

    Returns:
        The entry (``None`` when the skill is rejected) and its warnings.
    """
    file_str = str(skill_file)
    warnings: list[SkillValidationWarning] = []

    try:
        content = skill_file.read_text(encoding="utf-8")
        parsed = parse_frontmatter(content)
        for warning in parsed.warnings:
            warning.skill_path = file_str
        warnings.extend(parsed.warnings)

        fields = parsed.fields
        skill_dir = skill_file.parent
        parent_dir_name = skill_dir.name
        name = str(fields.get("name") or parent_dir_name)

        for message in validate_skill_name(name, parent_dir_name):
            warnings.append(SkillValidationWarning(skill_path=file_str, message=message))

        description = fields.get("description")
        description = description if isinstance(description, str) else None
        for message in validate_skill_description(description):
            warnings.append(SkillValidationWarning(skill_path=file_str, message=message))

        if not description or not description.strip():
            return None, warnings

        metadata: SkillMetadata | None = None
        raw_metadata = resolve_skill_metadata(fields.get("metadata"))
        if raw_metadata is not None:
            try:
                metadata = SkillMetadata.model_validate(raw_metadata)
            except ValidationError as exc:
                warnings.append(
                    SkillValidationWarning(
                        skill_path=file_str,
                        message=f"invalid metadata: {exc.error_count()} validation error(s)",
                    )
                )

        allowed_tools = fields.get("allowed-tools")

        skill = Skill(
            name=name,
            description=description,
            path=skill_file,
            base_dir=skill_dir,
            source=source,
            metadata=metadata,
            allowed_tools=list(allowed_tools) if allowed_tools is not None else None,
            command_dispatch=resolve_command_dispatch(fields, file_str, warnings),
        )
        return SkillEntry(skill=skill, frontmatter=dict(fields), metadata=metadata), warnings
    except Exception as exc:
        logger.debug("Failed to load skill from %s", skill_file, exc_info=True)
        warnings.append(
            SkillValidationWarning(
                skill_path=file_str,
                message=str(exc) or "failed to parse skill file",
            )
        )
        return None, warnings


def load_from_directory(directory: str | Path, source: SkillSource) -> LoadResult:
    """Load every skill in the immediate subdirectories of ``directory``.

    A missing directory yields an empty result without warnings.

    Args:
        directory: Source root to scan.
        source: Source label assigned to every loaded skill.

    Returns:
        ``LoadResult`` with loaded entries in directory-name order plus all
        warnings.
    """
    root = Path(directory)
    result = LoadResult()

    if not root.exists():
        logger.debug("Skills directory does not exist, skipping: %s", root)
        return result

    try:
        children = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        logger.warning("Failed to load skills from %s: %s", root, exc)
        return result

    for child in children:
        if child.name.startswith(".") or child.name in _IGNORED_NAMES:
            continue

        if classify_entry(child) is not EntryKind.DIRECTORY:
            continue

        skill_file = child / SKILL_FILENAME
        if not skill_file.exists():
            continue

        entry, warnings = load_skill_file(skill_file, source)
        if entry is not None:
            result.entries.append(entry)
        result.warnings.extend(warnings)

    return result
