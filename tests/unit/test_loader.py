"""Tests for loading skills from a single source directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from skillbase.config import SkillSource
from skillbase.loader import (
    EntryKind,
    classify_entry,
    load_from_directory,
    load_skill_file,
    resolve_command_dispatch,
    resolve_skill_metadata,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_skill(base_dir: Path, dir_name: str, frontmatter: str | None = None) -> Path:
    """Create ``base_dir/dir_name/SKILL.md`` and return its path.

    Args:
        base_dir: Source root.
        dir_name: Skill directory name.
        frontmatter: Full file content; a minimal valid skill when ``None``.
    """
    skill_dir = base_dir / dir_name
    skill_dir.mkdir(parents=True, exist_ok=True)
    content = frontmatter or f"---\nname: {dir_name}\ndescription: Skill {dir_name}\n---\n"
    skill_md = skill_dir / "SKILL.md"
    skill_md.write_text(content, encoding="utf-8")
    return skill_md


# ---------------------------------------------------------------------------
# classify_entry
# ---------------------------------------------------------------------------


class TestClassifyEntry:
    """Symlink-aware entry classification."""

    def test_directory(self, tmp_path: Path) -> None:
        """Plain directories classify as directories."""
        (tmp_path / "d").mkdir()

        assert classify_entry(tmp_path / "d") is EntryKind.DIRECTORY

    def test_file(self, tmp_path: Path) -> None:
        """Regular files classify as files."""
        (tmp_path / "f").write_text("x")

        assert classify_entry(tmp_path / "f") is EntryKind.FILE

    def test_symlink_to_directory(self, tmp_path: Path) -> None:
        """A symlink resolving to a directory is a directory."""
        (tmp_path / "target").mkdir()
        os.symlink(tmp_path / "target", tmp_path / "link")

        assert classify_entry(tmp_path / "link") is EntryKind.DIRECTORY

    def test_broken_symlink(self, tmp_path: Path) -> None:
        """A dangling symlink is unresolvable."""
        os.symlink(tmp_path / "missing", tmp_path / "link")

        assert classify_entry(tmp_path / "link") is EntryKind.UNRESOLVABLE

    def test_missing_path(self, tmp_path: Path) -> None:
        """A path that does not exist is unresolvable."""
        assert classify_entry(tmp_path / "nope") is EntryKind.UNRESOLVABLE


# ---------------------------------------------------------------------------
# load_skill_file
# ---------------------------------------------------------------------------


class TestLoadSkillFile:
    """Single-file loading."""

    def test_minimal_skill(self, tmp_path: Path) -> None:
        """A minimal valid file produces a skill with no warnings."""
        skill_md = _make_skill(tmp_path, "alpha")

        entry, warnings = load_skill_file(skill_md, SkillSource.MANAGED)

        assert warnings == []
        assert entry is not None
        skill = entry.skill
        assert skill.name == "alpha"
        assert skill.description == "Skill alpha"
        assert skill.path == skill_md
        assert skill.base_dir == skill_md.parent
        assert skill.source is SkillSource.MANAGED
        assert skill.metadata is None
        assert skill.allowed_tools is None
        assert skill.command_dispatch is None

    def test_name_defaults_to_directory(self, tmp_path: Path) -> None:
        """Without a name field the directory name is used."""
        skill_md = _make_skill(tmp_path, "beta", "---\ndescription: no name\n---\n")

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert entry is not None
        assert entry.skill.name == "beta"
        assert warnings == []

    def test_name_mismatch_warns_but_loads(self, tmp_path: Path) -> None:
        """A name that differs from the directory is kept with a warning."""
        skill_md = _make_skill(tmp_path, "dir-name", "---\nname: other\ndescription: d\n---\n")

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert entry is not None
        assert entry.skill.name == "other"
        assert [w.message for w in warnings] == [
            'name "other" does not match parent directory "dir-name"'
        ]
        assert warnings[0].skill_path == str(skill_md)

    def test_quoted_values_are_taken_literally(self, tmp_path: Path) -> None:
        """Quotes are part of the value: an empty-looking description still loads."""
        skill_md = _make_skill(tmp_path, "foo", '---\nname: "foo"\ndescription: ""\n---\n')

        entry, warnings = load_skill_file(skill_md, SkillSource.MANAGED)

        assert entry is not None
        assert entry.skill.name == '"foo"'
        assert entry.skill.description == '""'
        messages = [w.message for w in warnings]
        assert 'name ""foo"" does not match parent directory "foo"' in messages
        assert "description is required" not in messages

    def test_missing_description_drops_skill(self, tmp_path: Path) -> None:
        """Skills without a description are rejected with a warning."""
        skill_md = _make_skill(tmp_path, "gamma", "---\nname: gamma\n---\n")

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert entry is None
        assert [w.message for w in warnings] == ["description is required"]

    def test_whitespace_description_drops_skill(self, tmp_path: Path) -> None:
        """Whitespace-only descriptions count as missing."""
        skill_md = _make_skill(tmp_path, "delta", "---\nname: delta\ndescription:    \n---\n")

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert entry is None
        assert any(w.message == "description is required" for w in warnings)

    def test_long_description_warns_but_loads(self, tmp_path: Path) -> None:
        """Overlong descriptions are kept with a warning."""
        long = "x" * 1100
        skill_md = _make_skill(tmp_path, "long", f"---\nname: long\ndescription: {long}\n---\n")

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert entry is not None
        assert entry.skill.description == long
        assert [w.message for w in warnings] == ["description exceeds 1024 characters (1100)"]

    def test_unknown_fields_warn_with_path(self, tmp_path: Path) -> None:
        """Frontmatter warnings are attributed to the file."""
        skill_md = _make_skill(tmp_path, "eps", "---\nname: eps\ndescription: d\nfoo: bar\n---\n")

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert entry is not None
        assert entry.frontmatter["foo"] == "bar"
        assert [(w.skill_path, w.message) for w in warnings] == [
            (str(skill_md), 'unknown frontmatter field "foo"')
        ]

    def test_metadata_and_allowed_tools(self, tmp_path: Path) -> None:
        """Metadata and tool lists are resolved onto the skill."""
        content = (
            "---\n"
            "name: meta\n"
            "description: d\n"
            'metadata: {"wopr": {"emoji": "🔍", "requires": {"bins": ["rg"]}}}\n'
            "allowed-tools: Read, Grep\n"
            "---\n"
        )
        skill_md = _make_skill(tmp_path, "meta", content)

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert warnings == []
        assert entry is not None
        assert entry.skill.metadata is not None
        assert entry.skill.metadata.emoji == "🔍"
        assert entry.skill.metadata.requires.bins == ["rg"]
        assert entry.metadata is entry.skill.metadata
        assert entry.skill.allowed_tools == ["Read", "Grep"]

    def test_invalid_metadata_warns_and_is_dropped(self, tmp_path: Path) -> None:
        """Metadata failing validation becomes a warning and no metadata."""
        content = (
            "---\nname: bad\ndescription: d\n"
            'metadata: {"wopr": {"install": [{"id": "x", "kind": "yum"}]}}\n'
            "---\n"
        )
        skill_md = _make_skill(tmp_path, "bad", content)

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert entry is not None
        assert entry.skill.metadata is None
        assert len(warnings) == 1
        assert warnings[0].message.startswith("invalid metadata:")

    def test_unreadable_file_becomes_warning(self, tmp_path: Path) -> None:
        """Read errors are reported as warnings, never raised."""
        skill_md = _make_skill(tmp_path, "binary")
        skill_md.write_bytes(b"\xff\xfe\x00bad")

        entry, warnings = load_skill_file(skill_md, SkillSource.EXTRA)

        assert entry is None
        assert len(warnings) == 1
        assert warnings[0].skill_path == str(skill_md)

    def test_invocation_policy_defaults(self, tmp_path: Path) -> None:
        """Every entry gets the fixed invocation policy."""
        entry, _ = load_skill_file(_make_skill(tmp_path, "inv"), SkillSource.EXTRA)

        assert entry is not None
        assert entry.invocation.disable_model_invocation is False
        assert entry.invocation.user_invocable is True


# ---------------------------------------------------------------------------
# Metadata and dispatch resolution
# ---------------------------------------------------------------------------


class TestResolveSkillMetadata:
    """Metadata sub-object selection."""

    def test_current_key(self) -> None:
        """The current key is used."""
        assert resolve_skill_metadata({"wopr": {"emoji": "a"}}) == {"emoji": "a"}

    def test_legacy_alias(self) -> None:
        """The legacy key is accepted when the current one is absent."""
        assert resolve_skill_metadata({"clawdbot": {"emoji": "b"}}) == {"emoji": "b"}

    def test_current_key_wins(self) -> None:
        """The current key takes precedence over the alias."""
        raw = {"clawdbot": {"emoji": "b"}, "wopr": {"emoji": "a"}}

        assert resolve_skill_metadata(raw) == {"emoji": "a"}

    def test_json_string_is_decoded(self) -> None:
        """String metadata is decoded as JSON."""
        assert resolve_skill_metadata('{"wopr": {"emoji": "c"}}') == {"emoji": "c"}

    @pytest.mark.parametrize("raw", [None, "", "not json", [1, 2], {"other": {}}, {"wopr": "x"}])
    def test_unusable_values(self, raw: object) -> None:
        """Anything without a mapping under a known key resolves to None."""
        assert resolve_skill_metadata(raw) is None


class TestResolveCommandDispatch:
    """Command dispatch descriptors."""

    def test_tool_dispatch(self) -> None:
        """A tool dispatch with a tool name resolves."""
        warnings: list = []

        dispatch = resolve_command_dispatch(
            {"command-dispatch": "Tool", "command-tool": "run_deploy"}, "p", warnings
        )

        assert dispatch is not None
        assert dispatch.tool_name == "run_deploy"
        assert dispatch.kind == "tool"
        assert dispatch.arg_mode == "raw"
        assert warnings == []

    def test_arg_mode_always_raw(self) -> None:
        """Any declared argument mode normalises to raw."""
        dispatch = resolve_command_dispatch(
            {"command-dispatch": "tool", "command-tool": "t", "command-arg-mode": "json"}, "p", []
        )

        assert dispatch is not None
        assert dispatch.arg_mode == "raw"

    def test_missing_tool_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Tool dispatch without a tool name is dropped with a warning."""
        warnings: list = []

        with caplog.at_level(logging.WARNING, logger="skillbase.loader"):
            dispatch = resolve_command_dispatch({"command-dispatch": "tool"}, "p", warnings)

        assert dispatch is None
        assert [w.message for w in warnings] == [
            "command-dispatch is tool but command-tool is missing"
        ]
        assert "without command-tool" in caplog.text

    def test_other_dispatch_kinds_ignored(self) -> None:
        """Only tool dispatch is recognised."""
        assert resolve_command_dispatch({"command-dispatch": "prompt"}, "p", []) is None


# ---------------------------------------------------------------------------
# load_from_directory
# ---------------------------------------------------------------------------


class TestLoadFromDirectory:
    """Directory enumeration."""

    def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        """A nonexistent root yields nothing."""
        result = load_from_directory(tmp_path / "missing", SkillSource.MANAGED)

        assert result.entries == []
        assert result.warnings == []

    def test_sorted_by_directory_name(self, tmp_path: Path) -> None:
        """Entries come back in directory-name order."""
        for name in ("charlie", "alpha", "bravo"):
            _make_skill(tmp_path, name)

        result = load_from_directory(tmp_path, SkillSource.MANAGED)

        assert [e.skill.name for e in result.entries] == ["alpha", "bravo", "charlie"]

    def test_skips_hidden_and_ignored_directories(self, tmp_path: Path) -> None:
        """Dot directories, node_modules and __pycache__ are never scanned."""
        _make_skill(tmp_path, ".hidden")
        _make_skill(tmp_path, "node_modules")
        _make_skill(tmp_path, "__pycache__")
        _make_skill(tmp_path, "visible")

        result = load_from_directory(tmp_path, SkillSource.MANAGED)

        assert [e.skill.name for e in result.entries] == ["visible"]

    def test_skips_files_and_dirs_without_skill_md(self, tmp_path: Path) -> None:
        """Only subdirectories with SKILL.md are candidates."""
        (tmp_path / "README.md").write_text("x")
        (tmp_path / "empty").mkdir()
        (tmp_path / "lower").mkdir()
        (tmp_path / "lower" / "skill.md").write_text("---\nname: lower\ndescription: d\n---\n")
        _make_skill(tmp_path, "real")

        result = load_from_directory(tmp_path, SkillSource.MANAGED)

        assert [e.skill.name for e in result.entries] == ["real"]

    def test_does_not_recurse(self, tmp_path: Path) -> None:
        """Nested skill directories are not discovered."""
        _make_skill(tmp_path / "group", "nested")

        result = load_from_directory(tmp_path, SkillSource.MANAGED)

        assert result.entries == []

    def test_follows_directory_symlinks(self, tmp_path: Path) -> None:
        """A symlinked skill directory is loaded through the link."""
        real_root = tmp_path / "real"
        _make_skill(real_root, "linked")
        source = tmp_path / "source"
        source.mkdir()
        os.symlink(real_root / "linked", source / "linked")

        result = load_from_directory(source, SkillSource.EXTRA)

        assert [e.skill.name for e in result.entries] == ["linked"]
        assert result.entries[0].skill.path == source / "linked" / "SKILL.md"

    def test_broken_symlink_is_skipped(self, tmp_path: Path) -> None:
        """Dangling links are ignored without warnings."""
        os.symlink(tmp_path / "gone", tmp_path / "dangling")

        result = load_from_directory(tmp_path, SkillSource.EXTRA)

        assert result.entries == []
        assert result.warnings == []

    def test_rejected_skill_keeps_siblings(self, tmp_path: Path) -> None:
        """One bad candidate does not stop the scan."""
        _make_skill(tmp_path, "bad", "---\nname: bad\n---\n")
        _make_skill(tmp_path, "good")

        result = load_from_directory(tmp_path, SkillSource.EXTRA)

        assert [e.skill.name for e in result.entries] == ["good"]
        assert [w.message for w in result.warnings] == ["description is required"]

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        """String roots work like paths."""
        _make_skill(tmp_path, "s")

        result = load_from_directory(str(tmp_path), SkillSource.BUNDLED)

        assert result.entries[0].skill.source is SkillSource.BUNDLED
