"""Create, install and remove managed skills, and install their dependencies.

Every name and path segment is checked against a strict character policy
before it reaches the filesystem or a subprocess. Dependency install steps
run only after an explicit per-step approval from an
``InstallConsentProvider``; a missing provider, a declined step or a
provider error stops the installation.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

from skillbase.config import (
    SKILL_FILENAME,
    DiscoverOptions,
    Skill,
    SkillInstallStep,
    SkillSource,
    get_settings,
)
from skillbase.discovery import get_skill_by_name
from skillbase.errors import (
    SkillExistsError,
    SkillInstallError,
    SkillNotFoundError,
    SkillPolicyError,
)
from skillbase.state import SkillStateStore

logger = logging.getLogger(__name__)

_SAFE_SEGMENT = re.compile(r"^[A-Za-z0-9._-]+$")

_SKILL_TEMPLATE = """\
---
name: {name}
description: {description}
---

# {name}
"""


@runtime_checkable
class InstallConsentProvider(Protocol):
    """Approves or declines individual install steps."""

    async def request_consent(
        self,
        skill_name: str,
        step: SkillInstallStep,
        raw_command: str,
    ) -> bool: ...


@dataclass
class DependencyCheck:
    """Result of checking a skill's required binaries."""

    missing: list[str] = field(default_factory=list)

    @property
    def satisfied(self) -> bool:
        return not self.missing


def _is_safe(value: str) -> bool:
    return bool(_SAFE_SEGMENT.match(value)) and value not in (".", "..")


def validate_skill_dir_name(name: str) -> str:
    """Return ``name`` if it is safe to use as a managed directory name.

    Raises:
        SkillPolicyError: If ``name`` has characters outside
            ``[A-Za-z0-9._-]`` or is ``.``/``..``.
    """
    if not _is_safe(name):
        raise SkillPolicyError("Invalid skill name", value=name)
    return name


def _managed_root(skills_dir: Path | None) -> Path:
    return (skills_dir or get_settings().skills_dir).expanduser()


def _discover_installed(name: str, root: Path, options: DiscoverOptions | None) -> Skill:
    skill = get_skill_by_name(name, options or DiscoverOptions(managed_dir=root))
    if skill is None:
        raise SkillInstallError(name, "Skill installed but not discoverable")
    return skill


def create_skill(
    name: str,
    description: str | None = None,
    *,
    skills_dir: Path | None = None,
) -> Skill:
    """Scaffold a new managed skill with a minimal ``SKILL.md``.

    Args:
        name: Skill name, also used as the directory name.
        description: Description written to the frontmatter.
        skills_dir: Managed skills root (settings default when ``None``).

    Returns:
        The created skill.

    Raises:
        SkillPolicyError: If ``name`` is not a safe directory name.
        SkillExistsError: If the skill directory already exists.
    """
    validate_skill_dir_name(name)
    target = _managed_root(skills_dir) / name
    if target.exists():
        raise SkillExistsError(name, target)

    target.mkdir(parents=True)
    desc = description or f"skillbase skill: {name}"
    skill_file = target / SKILL_FILENAME
    skill_file.write_text(_SKILL_TEMPLATE.format(name=name, description=desc), encoding="utf-8")
    logger.info("Created skill %r at %s", name, target)

    return Skill(
        name=name,
        description=desc,
        path=skill_file,
        base_dir=target,
        source=SkillSource.MANAGED,
    )


async def remove_skill(
    name: str,
    *,
    skills_dir: Path | None = None,
    state_store: SkillStateStore | None = None,
) -> None:
    """Delete a managed skill and, best-effort, its state record.

    Args:
        name: Skill name.
        skills_dir: Managed skills root (settings default when ``None``).
        state_store: ``SkillStateStore`` whose record for ``name`` should be
            removed. Failures there are logged and not raised.

    Raises:
        SkillPolicyError: If ``name`` is not a safe directory name.
        SkillNotFoundError: If the skill directory does not exist.
    """
    validate_skill_dir_name(name)
    target = _managed_root(skills_dir) / name
    if not target.exists():
        raise SkillNotFoundError(name, target)

    shutil.rmtree(target)
    logger.info("Removed skill %r", name)

    if state_store is None:
        return
    try:
        await state_store.remove_state(name)
    except Exception as exc:
        logger.warning("Failed to remove skill state for %r: %s", name, exc)


def install_skill_from_github(
    owner: str,
    repo: str,
    skill_path: str,
    name: str | None = None,
    *,
    skills_dir: Path | None = None,
    options: DiscoverOptions | None = None,
) -> Skill:
    """Install one skill directory from a GitHub repository.

    Performs a shallow, blob-less sparse clone into a temporary directory
    inside the managed root and moves ``skill_path`` into place.

    Args:
        owner: Repository owner.
        repo: Repository name.
        skill_path: Slash-separated path of the skill inside the repository.
        name: Installed name (defaults to the last path segment).
        skills_dir: Managed skills root (settings default when ``None``).
        options: Discovery options used to confirm the installation.

    Returns:
        The installed skill as discovered afterwards.

    Raises:
        SkillPolicyError: On an unsafe owner, repo, path segment or name.
        SkillExistsError: If the target directory already exists.
        SkillInstallError: If cloning fails or the result is not discoverable.
    """
    if not _is_safe(owner) or not _is_safe(repo):
        raise SkillPolicyError("Invalid GitHub owner or repo name", value=f"{owner}/{repo}")

    segments = [segment for segment in skill_path.split("/") if segment]
    if not segments or not all(_is_safe(segment) for segment in segments):
        raise SkillPolicyError("Invalid skill path", value=skill_path)
    normalized_path = "/".join(segments)

    skill_name = validate_skill_dir_name(name or segments[-1])
    root = _managed_root(skills_dir)
    target = root / skill_name
    if target.exists():
        raise SkillExistsError(skill_name, target)

    root.mkdir(parents=True, exist_ok=True)
    tmp_dir = Path(tempfile.mkdtemp(prefix=".tmp-", dir=root))
    try:
        subprocess.run(
            [
                "git",
                "clone",
                "--depth",
                "1",
                "--filter=blob:none",
                "--sparse",
                f"https://github.com/{owner}/{repo}.git",
                str(tmp_dir),
            ],
            check=True,
            capture_output=True,
        )
        subprocess.run(
            ["git", "-C", str(tmp_dir), "sparse-checkout", "set", normalized_path],
            check=True,
            capture_output=True,
        )
        (tmp_dir / normalized_path).rename(target)
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.error("GitHub install of %s/%s:%s failed: %s", owner, repo, normalized_path, exc)
        raise SkillInstallError(skill_name, "Failed to install skill from GitHub", cause=exc) from exc
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)

    logger.info("Installed skill %r from github:%s/%s/%s", skill_name, owner, repo, normalized_path)
    return _discover_installed(skill_name, root, options)


def install_skill_from_url(
    source: str,
    name: str | None = None,
    *,
    skills_dir: Path | None = None,
    options: DiscoverOptions | None = None,
) -> Skill:
    """Install a skill by cloning an HTTPS git repository.

    Args:
        source: HTTPS repository URL.
        name: Installed name (defaults to the repository name).
        skills_dir: Managed skills root (settings default when ``None``).
        options: Discovery options used to confirm the installation.

    Returns:
        The installed skill as discovered afterwards.

    Raises:
        SkillPolicyError: On an unsafe name, an unparseable URL, or a
            non-HTTPS URL.
        SkillExistsError: If the target directory already exists.
        SkillInstallError: If cloning fails or the result is not discoverable.
    """
    default_name = source.rstrip("/").rsplit("/", 1)[-1].removesuffix(".git")
    skill_name = validate_skill_dir_name(name or default_name)
    root = _managed_root(skills_dir)
    target = root / skill_name
    if target.exists():
        raise SkillExistsError(skill_name, target)

    parsed = urlparse(source)
    if not parsed.scheme or not parsed.netloc:
        raise SkillPolicyError("Invalid skill source URL", value=source)
    if parsed.scheme != "https":
        raise SkillPolicyError("Only HTTPS URLs are supported for skill installation", value=source)

    root.mkdir(parents=True, exist_ok=True)
    try:
        subprocess.run(["git", "clone", source, str(target)], check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        shutil.rmtree(target, ignore_errors=True)
        raise SkillInstallError(skill_name, f"git clone failed: {exc}", cause=exc) from exc

    logger.info("Installed skill %r from %s", skill_name, source)
    return _discover_installed(skill_name, root, options)


def clear_skill_cache(home: Path | None = None) -> bool:
    """Delete the download cache. Returns whether anything was removed."""
    cache_dir = (home / ".cache") if home is not None else get_settings().cache_dir
    if not cache_dir.exists():
        return False
    shutil.rmtree(cache_dir, ignore_errors=True)
    logger.info("Cleared skill cache at %s", cache_dir)
    return True


def check_skill_dependencies(skill: Skill) -> DependencyCheck:
    """Report required binaries of ``skill`` that are not on ``PATH``."""
    requires = skill.metadata.requires if skill.metadata is not None else None
    bins = (requires.bins if requires is not None else None) or []
    return DependencyCheck(missing=[b for b in bins if shutil.which(b) is None])


def describe_install_step(step: SkillInstallStep) -> str:
    """Render the command an install step will run, for consent prompts."""
    if step.kind == "brew":
        return f"brew install {step.formula or '(unknown)'}"
    if step.kind == "apt":
        return f"sudo apt-get install -y {step.package or '(unknown)'}"
    if step.kind == "npm":
        return f"npm install -g {step.package or '(unknown)'}"
    if step.kind == "pip":
        return f"pip install {step.package or '(unknown)'}"
    if step.kind == "script":
        return step.script or "(empty script)"
    return f"(unknown kind: {step.kind})"


def _install_argv(step: SkillInstallStep) -> list[str] | None:
    if step.kind == "brew" and step.formula:
        return ["brew", "install", step.formula]
    if step.kind == "apt" and step.package:
        return ["sudo", "apt-get", "install", "-y", step.package]
    if step.kind == "npm" and step.package:
        return ["npm", "install", "-g", step.package]
    if step.kind == "pip" and step.package:
        return ["pip", "install", step.package]
    if step.kind == "script" and step.script:
        return ["/bin/bash", "-c", step.script]
    return None


async def install_skill_dependencies(
    skill: Skill,
    consent_provider: InstallConsentProvider | None = None,
) -> bool:
    """Run the install steps declared by ``skill``, one approval per step.

    Args:
        skill: Skill whose ``metadata.install`` steps should run.
        consent_provider: Approves each step before it runs.

    Returns:
        ``True`` when there is nothing to install or every step succeeded;
        ``False`` without a provider, on a declined step, on a provider error,
        or when a step fails.
    """
    steps = skill.metadata.install if skill.metadata is not None else None
    if not steps:
        return True

    if consent_provider is None:
        logger.warning(
            "Skill %r requires install steps but no consent provider was supplied; "
            "refusing to execute untrusted commands",
            skill.name,
        )
        return False

    logger.info("Installing dependencies for skill %r", skill.name)

    for step in steps:
        raw_command = describe_install_step(step)
        try:
            approved = await consent_provider.request_consent(skill.name, step, raw_command)
        except Exception as exc:
            logger.warning(
                "Consent provider failed for step %r of skill %r; failing closed: %s",
                step.id,
                skill.name,
                exc,
            )
            return False

        if not approved:
            logger.info("Install step %r declined for skill %r: %s", step.id, skill.name, raw_command)
            return False

        argv = _install_argv(step)
        if argv is None:
            continue
        try:
            await asyncio.to_thread(subprocess.run, argv, check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.error("Failed to install %r for skill %r: %s", step.id, skill.name, exc)
            return False

    return True
