"""Fetch and search remote skill registry manifests.

A registry is a URL serving a JSON manifest::

    {"name": "...", "skills": [{"name": ..., "description": ..., "source": ...}]}

All registries are fetched concurrently. A failing registry is reported in
the error list and never affects the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx
from pydantic import BaseModel, Field, ValidationError

from skillbase.config import get_settings
from skillbase.errors import RegistryFetchError
from skillbase.registries import RegistryStore
from skillbase.storage.schema import RegistryRecord

logger = logging.getLogger(__name__)


class RegistryManifestSkill(BaseModel):
    """A skill advertised by a registry manifest."""

    name: str
    description: str = ""
    source: str
    version: str | None = None
    category: str | None = None
    tags: list[str] | None = None


class RegistryManifest(BaseModel):
    """Root of a registry manifest."""

    name: str | None = None
    skills: list[RegistryManifestSkill] = Field(default_factory=list)


class RegistrySkillEntry(RegistryManifestSkill):
    """A manifest skill tagged with the registry it came from."""

    registry: str


@dataclass
class RegistryFetchFailure:
    """A registry that could not be fetched."""

    registry: str
    error: str


@dataclass
class RegistrySearchResult:
    """Aggregated skills and per-registry failures."""

    skills: list[RegistrySkillEntry] = field(default_factory=list)
    errors: list[RegistryFetchFailure] = field(default_factory=list)


async def fetch_registry_manifest(
    url: str,
    client: httpx.AsyncClient,
    timeout: float | None = None,
) -> RegistryManifest:
    """Fetch and validate one registry manifest.

    Args:
        url: Manifest URL.
        client: HTTP client to use.
        timeout: Request timeout in seconds (settings default when ``None``).

    Returns:
        The parsed manifest.

    Raises:
        RegistryFetchError: On transport errors, non-2xx responses, or a body
            without a ``skills`` array.
    """
    timeout = timeout if timeout is not None else get_settings().fetch_timeout
    try:
        response = await client.get(url, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as exc:
        raise RegistryFetchError(url, f"Request failed: {exc}") from exc

    if not response.is_success:
        raise RegistryFetchError(
            url, f"Registry returned {response.status_code} {response.reason_phrase}"
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise RegistryFetchError(url, "Invalid registry manifest: body is not JSON") from exc

    if not isinstance(data, dict) or not isinstance(data.get("skills"), list):
        raise RegistryFetchError(url, "Invalid registry manifest: missing skills array")

    try:
        return RegistryManifest.model_validate(data)
    except ValidationError as exc:
        raise RegistryFetchError(
            url, f"Invalid registry manifest: {exc.error_count()} invalid entries"
        ) from exc


async def _record_status(
    store: RegistryStore | None,
    name: str,
    error: str | None = None,
) -> None:
    if store is None:
        return
    try:
        await store.update_fetch_status(name, datetime.now(UTC), error)
    except Exception:
        logger.debug("Failed to record fetch status for registry %r", name, exc_info=True)


async def fetch_all_registries(
    registries: Sequence[RegistryRecord],
    store: RegistryStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> RegistrySearchResult:
    """Fetch every registry concurrently and aggregate their skills.

    Args:
        registries: Registries to fetch.
        store: When given, each fetch outcome is recorded on its registry.
        client: HTTP client; a temporary one is created when ``None``.

    Returns:
        Skills from every successful registry (in registry order) and one
        failure entry per registry that could not be fetched.
    """
    result = RegistrySearchResult()
    if not registries:
        return result

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=get_settings().fetch_timeout)
    try:
        outcomes = await asyncio.gather(
            *(fetch_registry_manifest(reg.url, http) for reg in registries),
            return_exceptions=True,
        )
    finally:
        if owns_client:
            await http.aclose()

    for registry, outcome in zip(registries, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            message = str(outcome)
            logger.warning("Failed to fetch registry %r: %s", registry.id, message)
            result.errors.append(RegistryFetchFailure(registry=registry.id, error=message))
            await _record_status(store, registry.id, message)
            continue

        for skill in outcome.skills:
            result.skills.append(
                RegistrySkillEntry(**skill.model_dump(), registry=registry.id)
            )
        await _record_status(store, registry.id)

    return result


def filter_registry_skills(
    skills: Sequence[RegistrySkillEntry],
    query: str,
) -> list[RegistrySkillEntry]:
    """Return skills whose name or description contains ``query`` (case-insensitive)."""
    needle = query.lower()
    return [s for s in skills if needle in s.name.lower() or needle in s.description.lower()]


async def search_registries(
    query: str,
    registries: Sequence[RegistryRecord],
    store: RegistryStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> RegistrySearchResult:
    """Fetch all registries and keep only skills matching ``query``."""
    fetched = await fetch_all_registries(registries, store=store, client=client)
    return RegistrySearchResult(
        skills=filter_registry_skills(fetched.skills, query),
        errors=fetched.errors,
    )
