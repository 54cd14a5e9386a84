"""Tests for skill enable/disable/usage state."""

from __future__ import annotations

from pathlib import Path

import pytest

from skillbase.config import DiscoverOptions
from skillbase.discovery import DiscoveryResult
from skillbase.state import SkillStateStore, is_enabled_record, resolve_enabled
from skillbase.storage import InMemoryStorage, SkillStateRecord

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_skill(base_dir: Path, name: str) -> None:
    skill_dir = base_dir / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(
        f"---\nname: {name}\ndescription: {name} skill\n---\n", encoding="utf-8"
    )


@pytest.fixture
def options(tmp_path: Path) -> DiscoverOptions:
    """Options with one discoverable skill named 'known'."""
    managed = tmp_path / "managed"
    _make_skill(managed, "known")
    return DiscoverOptions(managed_dir=managed, workspace_dir=tmp_path / "workspace")


@pytest.fixture
def store(options: DiscoverOptions) -> SkillStateStore:
    return SkillStateStore(InMemoryStorage(), options)


# ---------------------------------------------------------------------------
# Default-enabled policy
# ---------------------------------------------------------------------------


class TestEnabledPolicy:
    """The single place that interprets missing records."""

    def test_missing_record_is_enabled(self) -> None:
        """No record means enabled."""
        assert is_enabled_record(None) is True

    def test_record_flag_is_used(self) -> None:
        """A record's flag decides."""
        assert is_enabled_record(SkillStateRecord(id="a", enabled=True)) is True
        assert is_enabled_record(SkillStateRecord(id="a", enabled=False)) is False

    def test_resolve_enabled_from_mapping(self) -> None:
        """The bulk mapping follows the same rule."""
        states = {"off": {"enabled": False}, "on": {"enabled": True}}

        assert resolve_enabled(states, "off") is False
        assert resolve_enabled(states, "on") is True
        assert resolve_enabled(states, "absent") is True


# ---------------------------------------------------------------------------
# SkillStateStore
# ---------------------------------------------------------------------------


class TestEnableDisable:
    """Gated mutations."""

    @pytest.mark.asyncio
    async def test_unknown_skill_is_enabled_by_default(self, store: SkillStateStore) -> None:
        """Skills without a record report enabled."""
        assert await store.is_enabled("known") is True
        assert await store.get_state("known") is None

    @pytest.mark.asyncio
    async def test_disable_creates_record(self, store: SkillStateStore) -> None:
        """Disabling a skill without a record inserts one."""
        assert await store.disable("known") is True

        state = await store.get_state("known")
        assert state is not None
        assert state.enabled is False
        assert state.installed is True
        assert state.enabled_at is None
        assert state.use_count == 0
        assert await store.is_enabled("known") is False

    @pytest.mark.asyncio
    async def test_enable_after_disable(self, store: SkillStateStore) -> None:
        """Enabling flips the flag and stamps enabled_at."""
        await store.disable("known")

        assert await store.enable("known") is True

        state = await store.get_state("known")
        assert state is not None
        assert state.enabled is True
        assert state.enabled_at is not None

    @pytest.mark.asyncio
    async def test_enable_creates_record(self, store: SkillStateStore) -> None:
        """Enabling a skill without a record inserts an enabled one."""
        assert await store.enable("known") is True

        state = await store.get_state("known")
        assert state is not None
        assert state.enabled is True
        assert state.enabled_at is not None
        assert state.use_count == 0

    @pytest.mark.asyncio
    async def test_disable_clears_enabled_at(self, store: SkillStateStore) -> None:
        """Disabling an enabled record clears its timestamp."""
        await store.enable("known")
        await store.disable("known")

        state = await store.get_state("known")
        assert state is not None
        assert state.enabled_at is None

    @pytest.mark.asyncio
    async def test_nonexistent_skill_is_rejected_without_mutation(self, store: SkillStateStore) -> None:
        """Enable and disable refuse names that are not discoverable."""
        assert await store.enable("ghost") is False
        assert await store.disable("ghost") is False

        assert await store.get_all_states() == {}

    @pytest.mark.asyncio
    async def test_removed_skill_cannot_be_toggled(self, options: DiscoverOptions) -> None:
        """Existence is checked on every call, not cached."""
        store = SkillStateStore(InMemoryStorage(), options)
        _make_skill(options.managed_dir, "temp")
        assert await store.disable("temp") is True

        (options.managed_dir / "temp" / "SKILL.md").unlink()

        assert await store.enable("temp") is False
        assert await store.is_enabled("temp") is False

    @pytest.mark.asyncio
    async def test_custom_discover_function(self) -> None:
        """The existence check uses the injected discovery function."""
        calls: list[object] = []

        def fake_discover(options: DiscoverOptions | None) -> DiscoveryResult:
            calls.append(options)
            return DiscoveryResult()

        store = SkillStateStore(InMemoryStorage(), discover_fn=fake_discover)

        assert await store.enable("anything") is False
        assert calls == [None]


class TestUsageAndRemoval:
    """Unconditional operations."""

    @pytest.mark.asyncio
    async def test_record_usage_creates_enabled_record(self, store: SkillStateStore) -> None:
        """First use inserts an enabled record with a count of one."""
        await store.record_usage("anything")

        state = await store.get_state("anything")
        assert state is not None
        assert state.enabled is True
        assert state.use_count == 1
        assert state.last_used_at is not None
        assert state.enabled_at == state.last_used_at

    @pytest.mark.asyncio
    async def test_record_usage_increments(self, store: SkillStateStore) -> None:
        """Later uses increment the counter and keep the enabled flag."""
        await store.disable("known")

        await store.record_usage("known")
        await store.record_usage("known")

        state = await store.get_state("known")
        assert state is not None
        assert state.use_count == 2
        assert state.enabled is False

    @pytest.mark.asyncio
    async def test_remove_state(self, store: SkillStateStore) -> None:
        """Removing a record restores the default."""
        await store.disable("known")

        await store.remove_state("known")

        assert await store.get_state("known") is None
        assert await store.is_enabled("known") is True

    @pytest.mark.asyncio
    async def test_remove_missing_state_is_noop(self, store: SkillStateStore) -> None:
        """Removing an absent record does nothing."""
        await store.remove_state("ghost")

        assert await store.get_all_states() == {}

    @pytest.mark.asyncio
    async def test_get_all_states(self, store: SkillStateStore) -> None:
        """All records are reported with their enabled flag."""
        await store.disable("known")
        await store.record_usage("other")

        states = await store.get_all_states()

        assert states == {"known": {"enabled": False}, "other": {"enabled": True}}
        assert resolve_enabled(states, "never-seen") is True
