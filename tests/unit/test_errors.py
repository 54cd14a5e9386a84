"""Tests for the skill error hierarchy."""

from __future__ import annotations

import pickle
from pathlib import Path

import pytest

from skillbase.errors import (
    RegistryFetchError,
    SkillError,
    SkillExistsError,
    SkillInstallError,
    SkillNotFoundError,
    SkillPolicyError,
    StorageError,
)


class TestSkillError:
    """Tests for base SkillError."""

    def test_message(self) -> None:
        """Test error message stored and returned by str()."""
        error = SkillError("Something went wrong")
        assert error.message == "Something went wrong"
        assert str(error) == "Something went wrong"

    def test_repr(self) -> None:
        """Test repr produces useful debugging info."""
        assert repr(SkillError("boom")) == "SkillError('boom')"

    def test_picklable(self) -> None:
        """Test error can be pickled and unpickled."""
        restored = pickle.loads(pickle.dumps(SkillError("pickle test")))
        assert restored.message == "pickle test"


@pytest.mark.parametrize(
    "error",
    [
        SkillNotFoundError("web-search", "/skills/web-search"),
        SkillExistsError("web-search", "/skills/web-search"),
        SkillPolicyError("Invalid skill name", value="../x"),
        SkillInstallError("deploy", "git clone failed", cause=ValueError("exit 128")),
        RegistryFetchError("https://r.example", "Registry returned 500 Internal Server Error"),
        StorageError("skills.skills_state", "duplicate primary key 'a'"),
    ],
    ids=lambda e: type(e).__name__,
)
class TestSubclassContract:
    """Shared behaviour of every subclass."""

    def test_inherits_from_skill_error(self, error: SkillError) -> None:
        """Every error can be caught as SkillError."""
        assert isinstance(error, SkillError)

    def test_pickle_round_trip(self, error: SkillError) -> None:
        """Pickling preserves type, message and repr."""
        restored = pickle.loads(pickle.dumps(error))

        assert type(restored) is type(error)
        assert str(restored) == str(error)
        assert repr(restored) == repr(error)

    def test_repr_names_class(self, error: SkillError) -> None:
        """Repr starts with the class name."""
        assert repr(error).startswith(f"{type(error).__name__}(")


class TestMessages:
    """Per-class message formats."""

    def test_not_found(self) -> None:
        """The not-found message names the skill and path."""
        error = SkillNotFoundError("web-search", "/skills/web-search")

        assert str(error) == 'Skill "web-search" not found at path: /skills/web-search'
        assert error.path == Path("/skills/web-search")

    def test_exists(self) -> None:
        """The exists message names the skill and path."""
        error = SkillExistsError("dup", Path("/skills/dup"))

        assert str(error) == 'Skill "dup" already exists at /skills/dup'

    def test_policy_keeps_value(self) -> None:
        """The rejected value is kept separately from the message."""
        error = SkillPolicyError("Invalid skill path", value="a/../b")

        assert str(error) == "Invalid skill path"
        assert error.value == "a/../b"

    def test_install_wraps_cause(self) -> None:
        """Install errors keep the underlying exception."""
        cause = OSError("disk full")
        error = SkillInstallError("deploy", "copy failed", cause=cause)

        assert str(error) == 'Failed to install skill "deploy": copy failed'
        assert error.cause is cause

    def test_registry_message_is_detail(self) -> None:
        """Registry errors read as their detail."""
        error = RegistryFetchError("https://r.example", "Invalid registry manifest: missing skills array")

        assert str(error) == "Invalid registry manifest: missing skills array"
        assert error.url == "https://r.example"

    def test_storage_prefixes_table(self) -> None:
        """Storage errors are prefixed with the table name."""
        assert str(StorageError("skills.t", "table is not registered")) == "skills.t: table is not registered"
