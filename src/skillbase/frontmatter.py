"""SKILL.md frontmatter parser and validators.

The frontmatter is a small line-oriented ``key: value`` block between two
``---`` lines at the very start of the document. It is not YAML: each line is
split at its first colon, and a per-field decoder turns the raw value into its
typed form. Only parsing lives here; filesystem access belongs to the loader.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from skillbase.config import SkillValidationWarning

MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1024

_NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")

# Opening delimiter, lazily matched block, closing delimiter, rest is body.
_FRONTMATTER_PATTERN = re.compile(r"---\n(.*?)\n---\n?(.*)\Z", re.DOTALL)

ALLOWED_FRONTMATTER_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "description",
        "license",
        "compatibility",
        "metadata",
        "allowed-tools",
        "command-dispatch",
        "command-tool",
        "command-arg-mode",
    }
)


class FieldEncoding(str, Enum):
    """How a frontmatter value was decoded.

    Attributes:
        JSON: Strict JSON decode succeeded.
        CSV: Comma-separated list fallback.
        TEXT: Verbatim string.
    """

    JSON = "json"
    CSV = "csv"
    TEXT = "text"


@dataclass(frozen=True)
class DecodedField:
    """A decoded frontmatter value tagged with its encoding."""

    value: Any
    encoding: FieldEncoding


@dataclass
class FrontmatterResult:
    """Result of parsing a SKILL.md document.

    Attributes:
        fields: Decoded values keyed by frontmatter key, in document order.
        body: Markdown body after the closing delimiter (the whole input
            when there is no frontmatter block).
        warnings: Unknown-field warnings. ``skill_path`` is left empty for
            the caller to fill in.
        encodings: Encoding tag of every decoded field.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    warnings: list[SkillValidationWarning] = field(default_factory=list)
    encodings: dict[str, FieldEncoding] = field(default_factory=dict)


def decode_text(raw: str) -> DecodedField:
    """Decode a plain string field; the value is kept verbatim."""
    return DecodedField(raw, FieldEncoding.TEXT)


def decode_metadata(raw: str) -> DecodedField:
    """Decode ``metadata``: JSON when valid, otherwise the raw string."""
    try:
        return DecodedField(json.loads(raw), FieldEncoding.JSON)
    except ValueError:
        return DecodedField(raw, FieldEncoding.TEXT)


def decode_allowed_tools(raw: str) -> DecodedField:
    """Decode ``allowed-tools``: a JSON array, otherwise a comma-separated list."""
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return DecodedField([str(item) for item in parsed], FieldEncoding.JSON)
    return DecodedField([part.strip() for part in raw.split(",")], FieldEncoding.CSV)


_DECODERS: dict[str, Callable[[str], DecodedField]] = {
    "metadata": decode_metadata,
    "allowed-tools": decode_allowed_tools,
}


def decode_field(key: str, raw: str) -> DecodedField:
    """Decode a raw frontmatter value with the decoder registered for ``key``.

    Keys without a dedicated decoder (including unknown keys) are kept as text.
    """
    return _DECODERS.get(key, decode_text)(raw)


def validate_skill_name(name: str, parent_dir_name: str) -> list[str]:
    """Check a skill name against the naming rules.

    Every rule is evaluated independently, so several messages may be
    returned for one name.

    Args:
        name: Effective skill name.
        parent_dir_name: Name of the directory containing ``SKILL.md``.

    Returns:
        Violation messages; empty when the name is valid.
    """
    errors: list[str] = []

    if name != parent_dir_name:
        errors.append(f'name "{name}" does not match parent directory "{parent_dir_name}"')
    if len(name) > MAX_NAME_LENGTH:
        errors.append(f"name exceeds {MAX_NAME_LENGTH} characters ({len(name)})")
    if not _NAME_PATTERN.match(name):
        errors.append("name contains invalid characters (must be lowercase a-z, 0-9, hyphens only)")
    if name.startswith("-") or name.endswith("-"):
        errors.append("name must not start or end with a hyphen")
    if "--" in name:
        errors.append("name must not contain consecutive hyphens")

    return errors


def validate_skill_description(description: str | None) -> list[str]:
    """Check that a description is present and within the length limit."""
    if not description or not description.strip():
        return ["description is required"]
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return [f"description exceeds {MAX_DESCRIPTION_LENGTH} characters ({len(description)})"]
    return []


def validate_frontmatter_fields(keys: Iterable[str]) -> list[str]:
    """Return one message per key that is not a known frontmatter field."""
    return [
        f'unknown frontmatter field "{key}"'
        for key in keys
        if key not in ALLOWED_FRONTMATTER_FIELDS
    ]


def parse_frontmatter(content: str) -> FrontmatterResult:
    """Parse the frontmatter block of a SKILL.md document.

    A missing or malformed block is not an error: the result then has no
    fields and the whole input as its body.

    Args:
        content: Full document text.

    Returns:
        Decoded fields, body, and unknown-field warnings.
    """
    match = _FRONTMATTER_PATTERN.match(content)
    if match is None:
        return FrontmatterResult(body=content)

    block, body = match.group(1), match.group(2)
    result = FrontmatterResult(body=body)

    for line in block.split("\n"):
        key, sep, raw = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        decoded = decode_field(key, raw.strip())
        result.fields[key] = decoded.value
        result.encodings[key] = decoded.encoding

    for message in validate_frontmatter_fields(result.fields):
        result.warnings.append(SkillValidationWarning(skill_path="", message=message))

    return result
