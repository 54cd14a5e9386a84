"""Render the available-skills block injected into system prompts."""

from __future__ import annotations

from collections.abc import Sequence

from jinja2 import Environment, StrictUndefined

from skillbase.config import Skill

_SKILLS_TEMPLATE = """
<available_skills>
{% for skill in skills %}
  <skill>
    <name>{{ skill.name }}</name>
    <description>{{ prefix(skill) }}{{ skill.description }}</description>
    <location>{{ skill.path }}</location>
  </skill>
{% endfor %}
</available_skills>

When you need to use a skill, read its full SKILL.md file at the location shown above.
"""

_environment = Environment(
    autoescape=False,
    trim_blocks=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)
_template = _environment.from_string(_SKILLS_TEMPLATE)


def _emoji_prefix(skill: Skill) -> str:
    emoji = skill.metadata.emoji if skill.metadata is not None else None
    return f"{emoji} " if emoji else ""


def format_skills_xml(skills: Sequence[Skill]) -> str:
    """Format skills as an ``<available_skills>`` block.

    Each skill contributes its name, description (prefixed with its emoji
    when one is declared) and the location of its ``SKILL.md``.

    Returns:
        The block, or an empty string when there are no skills.
    """
    if not skills:
        return ""
    return _template.render(skills=skills, prefix=_emoji_prefix)


def build_skills_prompt(skills: Sequence[Skill]) -> str:
    """Build the skills section of a system prompt."""
    return format_skills_xml(skills)
