"""Command line interface for managing skills.

State and registries are persisted in the SQLite database at
``SkillsSettings.database_path``; legacy JSON files are migrated on start.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from skillbase.config import Skill, SkillInstallStep, SkillSource, get_settings
from skillbase.discovery import discover, get_skill_by_name
from skillbase.errors import SkillError
from skillbase.fetcher import search_registries
from skillbase.install import (
    check_skill_dependencies,
    clear_skill_cache,
    create_skill,
    install_skill_dependencies,
    install_skill_from_github,
    install_skill_from_url,
    remove_skill,
)
from skillbase.log import setup_logging
from skillbase.migrate import migrate_registries, migrate_skills_state
from skillbase.prompt import build_skills_prompt
from skillbase.registries import RegistryStore
from skillbase.state import SkillStateStore, resolve_enabled
from skillbase.storage.sqlite import SQLiteStorage

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(name="skillbase", help="Discover, install and manage agent skills", no_args_is_help=True)
cache_app = typer.Typer(help="Manage the download cache", no_args_is_help=True)
registry_app = typer.Typer(help="Manage skill registries", no_args_is_help=True)
app.add_typer(cache_app, name="cache")
app.add_typer(registry_app, name="registry")


class ConfirmConsentProvider:
    """Asks on the terminal before each install step."""

    async def request_consent(self, skill_name: str, step: SkillInstallStep, raw_command: str) -> bool:
        label = step.label or step.id
        return typer.confirm(f"[{skill_name}] {label}: run `{raw_command}`?", default=False)


@asynccontextmanager
async def _open_storage() -> AsyncIterator[SQLiteStorage]:
    settings = get_settings()
    storage = await SQLiteStorage.create(settings.database_path)
    try:
        await migrate_skills_state(storage, settings)
        await migrate_registries(RegistryStore(storage), settings)
        yield storage
    finally:
        await storage.close()


def _run(fn: Callable[[SQLiteStorage], Awaitable[T]]) -> T:
    async def _main() -> T:
        async with _open_storage() as storage:
            return await fn(storage)

    return asyncio.run(_main())


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]Error:[/red] {message}")
    return typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
) -> None:
    """Discover, install and manage agent skills."""
    setup_logging("DEBUG" if verbose else "WARNING", json_output=json_logs)


@app.command("list")
def list_skills(
    source: SkillSource | None = typer.Option(None, "--source", "-s", help="Only list skills from this source"),
    show_warnings: bool = typer.Option(False, "--warnings", "-w", help="Show discovery warnings"),
) -> None:
    """List discovered skills and whether they are enabled."""
    result = discover()

    async def _states(storage: SQLiteStorage) -> dict[str, dict[str, bool]]:
        return await SkillStateStore(storage).get_all_states()

    states = _run(_states)
    skills = [s for s in result.skills if source is None or s.source is source]

    if not skills:
        console.print("[yellow]No skills found.[/yellow]")
    else:
        table = Table(title="Skills", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="bold")
        table.add_column("Source")
        table.add_column("Enabled")
        table.add_column("Description")
        for skill in skills:
            enabled = resolve_enabled(states, skill.name)
            table.add_row(
                skill.name,
                skill.source.value,
                "[green]yes[/green]" if enabled else "[red]no[/red]",
                skill.description,
            )
        console.print(table)

    if show_warnings:
        for warning in result.warnings:
            console.print(f"[dim]{warning.skill_path or '-'}: {warning.message}[/dim]")


def _skill_details(skill: Skill, enabled: bool) -> dict[str, Any]:
    dispatch = skill.command_dispatch
    return {
        "name": skill.name,
        "description": skill.description,
        "source": skill.source.value,
        "path": str(skill.path),
        "base_dir": str(skill.base_dir),
        "enabled": enabled,
        "metadata": skill.metadata.model_dump(exclude_none=True) if skill.metadata else None,
        "allowed_tools": skill.allowed_tools,
        "command_dispatch": (
            {"kind": dispatch.kind, "tool_name": dispatch.tool_name, "arg_mode": dispatch.arg_mode}
            if dispatch
            else None
        ),
    }


@app.command()
def info(
    name: str = typer.Argument(..., help="Skill name"),
    as_json: bool = typer.Option(False, "--json", help="Print the details as JSON"),
) -> None:
    """Show the details of one skill."""
    skill = get_skill_by_name(name)
    if skill is None:
        raise _fail(f'Skill "{name}" not found')

    async def _enabled(storage: SQLiteStorage) -> bool:
        return await SkillStateStore(storage).is_enabled(name)

    details = _skill_details(skill, _run(_enabled))
    if as_json:
        typer.echo(json.dumps(details, indent=2))
        return

    table = Table(title=skill.name, show_header=False)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    for key, value in details.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


@app.command()
def search(query: str = typer.Argument(..., help="Text to match against names and descriptions")) -> None:
    """Search every configured registry."""

    async def _search(storage: SQLiteStorage):
        store = RegistryStore(storage)
        registries = await store.list_registries()
        return registries, await search_registries(query, registries, store=store)

    registries, result = _run(_search)
    if not registries:
        console.print("[yellow]No registries configured.[/yellow] Add one with 'skillbase registry add'.")
        raise typer.Exit(0)

    for failure in result.errors:
        err_console.print(f"[yellow]{failure.registry}:[/yellow] {failure.error}")

    if not result.skills:
        console.print(f"[yellow]No skills matched query:[/yellow] '{query}'")
        return

    table = Table(title=f"Skills matching: '{query}'", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold")
    table.add_column("Registry")
    table.add_column("Source")
    table.add_column("Description")
    for skill in result.skills:
        table.add_row(skill.name, skill.registry, skill.source, skill.description)
    console.print(table)


@app.command()
def install(
    source: str = typer.Argument(..., help="github:owner/repo/path or an HTTPS git URL"),
    name: str | None = typer.Option(None, "--name", "-n", help="Installed skill name"),
) -> None:
    """Install a skill from GitHub or a git URL."""
    try:
        if source.startswith("github:"):
            parts = source.removeprefix("github:").split("/", 2)
            if len(parts) < 3:
                raise _fail("GitHub sources look like github:owner/repo/path")
            skill = install_skill_from_github(parts[0], parts[1], parts[2], name)
        else:
            skill = install_skill_from_url(source, name)
    except SkillError as exc:
        raise _fail(exc.message) from exc

    console.print(f"[green]Installed[/green] {skill.name} -> {skill.base_dir}")
    missing = check_skill_dependencies(skill).missing
    if missing:
        console.print(f"[yellow]Missing binaries:[/yellow] {', '.join(missing)} (run 'skillbase deps {skill.name} --install')")


@app.command()
def create(
    name: str = typer.Argument(..., help="Skill name"),
    description: str | None = typer.Option(None, "--description", "-d", help="Skill description"),
) -> None:
    """Scaffold a new managed skill."""
    try:
        skill = create_skill(name, description)
    except SkillError as exc:
        raise _fail(exc.message) from exc
    console.print(f"[green]Created[/green] {skill.path}")


@app.command()
def remove(name: str = typer.Argument(..., help="Skill name")) -> None:
    """Delete a managed skill and its state."""

    async def _remove(storage: SQLiteStorage) -> None:
        await remove_skill(name, state_store=SkillStateStore(storage))

    try:
        _run(_remove)
    except SkillError as exc:
        raise _fail(exc.message) from exc
    console.print(f"[green]Removed[/green] {name}")


@app.command()
def enable(name: str = typer.Argument(..., help="Skill name")) -> None:
    """Enable a skill."""

    async def _enable(storage: SQLiteStorage) -> bool:
        return await SkillStateStore(storage).enable(name)

    if not _run(_enable):
        raise _fail(f'Skill "{name}" not found')
    console.print(f"[green]Enabled[/green] {name}")


@app.command()
def disable(name: str = typer.Argument(..., help="Skill name")) -> None:
    """Disable a skill."""

    async def _disable(storage: SQLiteStorage) -> bool:
        return await SkillStateStore(storage).disable(name)

    if not _run(_disable):
        raise _fail(f'Skill "{name}" not found')
    console.print(f"[yellow]Disabled[/yellow] {name}")


@app.command()
def prompt() -> None:
    """Print the prompt fragment listing enabled skills."""

    async def _states(storage: SQLiteStorage) -> dict[str, dict[str, bool]]:
        return await SkillStateStore(storage).get_all_states()

    states = _run(_states)
    skills = [s for s in discover().skills if resolve_enabled(states, s.name)]
    typer.echo(build_skills_prompt(skills), nl=False)


@app.command()
def deps(
    name: str = typer.Argument(..., help="Skill name"),
    run_install: bool = typer.Option(False, "--install", help="Run the declared install steps"),
) -> None:
    """Check, and optionally install, a skill's required binaries."""
    skill = get_skill_by_name(name)
    if skill is None:
        raise _fail(f'Skill "{name}" not found')

    missing = check_skill_dependencies(skill).missing
    if not missing:
        console.print(f"[green]All dependencies of {name} are available.[/green]")
        return

    console.print(f"[yellow]Missing binaries:[/yellow] {', '.join(missing)}")
    if not run_install:
        return

    ok = asyncio.run(install_skill_dependencies(skill, ConfirmConsentProvider()))
    if not ok:
        raise _fail("Dependency installation did not complete")
    console.print("[green]Dependencies installed.[/green]")


@cache_app.command("clear")
def cache_clear() -> None:
    """Delete the download cache."""
    if clear_skill_cache():
        console.print("[green]Cache cleared.[/green]")
    else:
        console.print("[dim]Cache is already empty.[/dim]")


@registry_app.command("list")
def registry_list() -> None:
    """List configured registries."""

    async def _list(storage: SQLiteStorage):
        return await RegistryStore(storage).list_registries()

    registries = _run(_list)
    if not registries:
        console.print("[yellow]No registries configured.[/yellow]")
        return

    table = Table(title="Registries", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold")
    table.add_column("URL")
    table.add_column("Last fetched")
    table.add_column("Last error")
    for registry in registries:
        fetched = registry.last_fetched_at.isoformat(timespec="seconds") if registry.last_fetched_at else "-"
        table.add_row(registry.id, registry.url, fetched, registry.last_error or "-")
    console.print(table)


@registry_app.command("add")
def registry_add(
    name: str = typer.Argument(..., help="Registry name"),
    url: str = typer.Argument(..., help="Manifest URL"),
) -> None:
    """Add a registry, or update the URL of an existing one."""

    async def _add(storage: SQLiteStorage) -> None:
        await RegistryStore(storage).add_registry(name, url)

    _run(_add)
    console.print(f"[green]Added registry[/green] {name} -> {url}")


@registry_app.command("remove")
def registry_remove(name: str = typer.Argument(..., help="Registry name")) -> None:
    """Remove a registry."""

    async def _remove(storage: SQLiteStorage) -> bool:
        return await RegistryStore(storage).remove_registry(name)

    if not _run(_remove):
        raise _fail(f'Registry "{name}" not found')
    console.print(f"[green]Removed registry[/green] {name}")


if __name__ == "__main__":
    app()
