"""
CLI commands for installing and managing release packages.

Thin wrappers over ``dyst.core.services.package_install``.  Each
command parses its arguments into models, opens an ``EngineContext``,
calls one engine operation and renders the result.
"""

from __future__ import annotations

import functools
import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from dyst.core.config.loader import load_settings
from dyst.core.context import EngineContext
from dyst.core.errors import DystError, SelectionError
from dyst.core.models.package import (
    AssetStrategy,
    InstallationPreferences,
    RenameMapping,
    RepositoryId,
)


def _open_engine(ctx: click.Context) -> EngineContext:
    config_path: Path | None = ctx.obj.get("config_path") if ctx.obj else None
    return EngineContext.from_settings(load_settings(config_path))


def _fail(message: str) -> None:
    click.secho(f"❌ {message}", fg="red", err=True)
    sys.exit(1)


def _parse_repository(text: str) -> RepositoryId:
    try:
        return RepositoryId.parse(text)
    except ValueError as e:
        _fail(str(e))
        raise  # unreachable; keeps type checkers satisfied


def _parse_rename(text: str) -> RenameMapping:
    try:
        return RenameMapping.parse(text)
    except ValueError as e:
        _fail(str(e))
        raise


def _reports_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Render engine errors as a single red line and exit 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except SelectionError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            if e.candidates:
                click.echo("   Available assets:", err=True)
                for name in e.candidates:
                    click.echo(f"      • {name}", err=True)
                click.echo("   Pick one with --filter <regex>", err=True)
            sys.exit(1)
        except DystError as e:
            _fail(str(e))

    return wrapper


class _DownloadProgress:
    """Progress callback that drives a click progress bar per download."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.bar = None
        self.seen = 0

    def __call__(self, downloaded: int, total: int) -> None:
        if not self.enabled or not total:
            return
        if self.bar is None or downloaded <= self.seen:
            self.close()
            self.bar = click.progressbar(length=total, label="Downloading", file=sys.stderr)
            self.bar.__enter__()
            self.seen = 0
        self.bar.update(downloaded - self.seen)
        self.seen = downloaded

    def close(self) -> None:
        if self.bar is not None:
            self.bar.__exit__(None, None, None)
            self.bar = None


# ── Install ─────────────────────────────────────────────────────


@click.command()
@click.argument("repository")
@click.option("--tag", "-t", default=None, help="Install this exact release tag.")
@click.option("--prerelease", "-p", is_flag=True, help="Allow the download of prereleases.")
@click.option("--filter", "-f", "asset_filter", default=None,
              help="Select the asset by a regex applied to its lower-cased name.")
@click.option("--rename", "-r", default=None,
              help="Rename an executable (ex. `binary-xyz/binary`).")
@click.option("--lock", "-l", is_flag=True, help="Lock the package, preventing updates.")
@click.option("--assets", "-a", "list_assets", is_flag=True,
              help="List the assets of the selected release instead of installing.")
@click.pass_context
@_reports_errors
def install(
    ctx: click.Context,
    repository: str,
    tag: str | None,
    prerelease: bool,
    asset_filter: str | None,
    rename: str | None,
    lock: bool,
    list_assets: bool,
) -> None:
    """Install an asset from a GitHub repository (ex. DISTREAT/projavu)."""
    from dyst.core.services.package_install import fetch_release, install as do_install
    from dyst.core.services.package_install import is_installed, list_executables

    repo = _parse_repository(repository)
    try:
        preferences = InstallationPreferences(
            prereleases=prerelease,
            tag=tag,
            asset_strategy=AssetStrategy(pattern=asset_filter),
            rename=RenameMapping.parse(rename) if rename else None,
            lock=lock,
        )
    except ValueError as e:
        _fail(str(e))
        return

    with _open_engine(ctx) as engine:
        if list_assets:
            release = fetch_release(engine, repo, preferences)
            click.secho(f"📦 {repo} {release.tag}", fg="cyan", bold=True)
            for name in release.asset_names:
                click.echo(name)
            return

        if is_installed(engine, repo):
            _fail("The requested repository is already installed")

        progress = _DownloadProgress(enabled=not ctx.obj.get("quiet", False))
        try:
            package = do_install(engine, repo, preferences, progress_callback=progress)
        finally:
            progress.close()

        click.secho(f"✅ Installed {repo} {package.tag}", fg="green", bold=True)
        for name in list_executables(engine, repo):
            click.echo(f"   {name}")


@click.command()
@click.argument("repository")
@click.pass_context
@_reports_errors
def remove(ctx: click.Context, repository: str) -> None:
    """Remove an installed repository."""
    from dyst.core.services.package_install import uninstall

    repo = _parse_repository(repository)
    with _open_engine(ctx) as engine:
        uninstall(engine, repo)
    click.secho(f"✅ Removed {repo}", fg="green")


# ── Observe ─────────────────────────────────────────────────────


@click.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
@_reports_errors
def list_packages(ctx: click.Context, as_json: bool) -> None:
    """List all installed repositories."""
    from dyst.core.services.package_install import list_installed

    with _open_engine(ctx) as engine:
        installed = list_installed(engine)

    if as_json:
        click.echo(json.dumps([{"repository": r, "tag": t} for r, t in installed], indent=2))
        return
    for repo, tag in installed:
        click.echo(f"{repo} {tag}")


@click.command("list-execs")
@click.argument("repository")
@click.pass_context
@_reports_errors
def list_execs(ctx: click.Context, repository: str) -> None:
    """List all executables of an installed repository."""
    from dyst.core.services.package_install import list_executables

    repo = _parse_repository(repository)
    with _open_engine(ctx) as engine:
        for name in list_executables(engine, repo):
            click.echo(name)


@click.command()
@click.argument("query")
@click.pass_context
@_reports_errors
def search(ctx: click.Context, query: str) -> None:
    """Search GitHub for repositories."""
    with _open_engine(ctx) as engine:
        results = engine.resolver.search(query)

    if not results:
        click.secho("No repositories found.", fg="yellow")
        return
    for full_name, description in results:
        click.echo(f"https://github.com/{full_name} - {description}")


# ── Update & preferences ────────────────────────────────────────


@click.command()
@click.pass_context
@_reports_errors
def update(ctx: click.Context) -> None:
    """Update all installed repositories."""
    from dyst.core.services.package_install import update_all

    progress = _DownloadProgress(enabled=not ctx.obj.get("quiet", False))
    with _open_engine(ctx) as engine:
        try:
            report = update_all(engine, progress_callback=progress)
        finally:
            progress.close()

    for item in report.updated:
        click.secho(
            f"✅ Updated '{item.repository}' from '{item.from_tag}' to '{item.to_tag}'",
            fg="green",
        )
    for name in report.up_to_date:
        click.echo(f"   '{name}' is up to date.")
    for name in report.skipped_locked:
        click.secho(f"⚠️  '{name}' is locked and was not updated.", fg="yellow")
    for name, error in report.failed.items():
        click.secho(f"❌ '{name}': {error}", fg="red", err=True)

    if not report.ok:
        sys.exit(1)


@click.command("lock")
@click.argument("repository")
@click.pass_context
@_reports_errors
def lock_cmd(ctx: click.Context, repository: str) -> None:
    """Lock a repository, preventing updates."""
    from dyst.core.services.package_install import lock

    repo = _parse_repository(repository)
    with _open_engine(ctx) as engine:
        lock(engine, repo)
    click.secho(f"🔒 Locked {repo}", fg="green")


@click.command("unlock")
@click.argument("repository")
@click.pass_context
@_reports_errors
def unlock_cmd(ctx: click.Context, repository: str) -> None:
    """Unlock a repository, allowing updates."""
    from dyst.core.services.package_install import unlock

    repo = _parse_repository(repository)
    with _open_engine(ctx) as engine:
        unlock(engine, repo)
    click.secho(f"🔓 Unlocked {repo}", fg="green")


@click.command("allow-prereleases")
@click.argument("repository")
@click.pass_context
@_reports_errors
def allow_prereleases_cmd(ctx: click.Context, repository: str) -> None:
    """Allow downloads of prereleases for a repository."""
    from dyst.core.services.package_install import allow_prereleases

    repo = _parse_repository(repository)
    with _open_engine(ctx) as engine:
        allow_prereleases(engine, repo)
    click.secho(f"✅ {repo} will follow prereleases", fg="green")


@click.command("rename")
@click.argument("repository")
@click.argument("mapping", metavar="OLD/NEW")
@click.pass_context
@_reports_errors
def rename_cmd(ctx: click.Context, repository: str, mapping: str) -> None:
    """Rename an executable (ex. `binary-xyz/binary`)."""
    from dyst.core.services.package_install import rename

    repo = _parse_repository(repository)
    rename_mapping = _parse_rename(mapping)
    with _open_engine(ctx) as engine:
        names = rename(engine, repo, rename_mapping)
    click.secho(f"✅ Republished {repo}", fg="green")
    for name in names:
        click.echo(f"   {name}")
