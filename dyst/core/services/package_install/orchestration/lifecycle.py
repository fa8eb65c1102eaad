"""
L5 Orchestration — Package lifecycle.

Install, uninstall, rename, lock and update tie the pure selection
logic, the extractor, the publisher and the index together.  Every
operation takes the ``EngineContext`` explicitly and either returns
or raises a ``DystError``.

Install is the only operation with compensating cleanup: a failure
anywhere between creating the package directory and committing leaves
neither directory, links nor index record behind.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable

from dyst.core.context import EngineContext
from dyst.core.errors import DystError, FilesystemError, PackageStateError, SelectionError
from dyst.core.models.package import (
    InstallationPreferences,
    InstalledPackage,
    RenameMapping,
    RepositoryId,
)
from dyst.core.models.release import Release
from dyst.core.models.report import PackageUpdate, UpdateReport
from dyst.core.services.package_install.domain.asset_selection import select_asset
from dyst.core.services.package_install.domain.release_policy import choose_release
from dyst.core.services.package_install.execution.extract import extract_stream
from dyst.core.services.package_install.execution.publish import (
    owned_links,
    publish_executables,
    unlink_owned,
)
from dyst.core.services.package_install.execution.rollback import RollbackGuard

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


# ── Queries ─────────────────────────────────────────────────────


def is_installed(ctx: EngineContext, repository: RepositoryId) -> bool:
    return ctx.index.contains(repository)


def _require_installed(ctx: EngineContext, repository: RepositoryId) -> InstalledPackage:
    package = ctx.index.get(repository)
    if package is None:
        raise PackageStateError(f"'{repository}' is not installed")
    return package


def list_installed(ctx: EngineContext) -> list[tuple[str, str]]:
    """``(repository, tag)`` for every installed package."""
    return [(str(p.repository), p.tag) for p in ctx.index.list_packages()]


def list_executables(ctx: EngineContext, repository: RepositoryId) -> list[str]:
    """Names of the links the package currently owns."""
    _require_installed(ctx, repository)
    package_dir = ctx.layout.package_dir(repository)
    return sorted(link.name for link in owned_links(package_dir, ctx.layout.executables_dir))


def fetch_release(
    ctx: EngineContext,
    repository: RepositoryId,
    preferences: InstallationPreferences,
) -> Release:
    """Resolve the release an install with ``preferences`` would use.

    The first phase of a two-phase install: callers can list the
    release's assets before committing to ``install_release``.
    """
    releases = ctx.resolver.list_releases(repository)
    release = choose_release(
        releases, tag=preferences.tag, prereleases=preferences.prereleases
    )
    logger.info("%s: resolved release %s", repository, release.tag)
    return release


# ── Install ─────────────────────────────────────────────────────


def install(
    ctx: EngineContext,
    repository: RepositoryId,
    preferences: InstallationPreferences,
    *,
    progress_callback: ProgressCallback | None = None,
) -> InstalledPackage:
    """Resolve, download, extract, record and publish a package.

    Raises:
        PackageStateError: Already installed.
        DystError: Any resolution, selection, transfer, archive,
            filesystem or index failure (after rollback).
    """
    if ctx.index.contains(repository):
        raise PackageStateError(f"'{repository}' is already installed")
    release = fetch_release(ctx, repository, preferences)
    return install_release(
        ctx, repository, release, preferences, progress_callback=progress_callback
    )


def install_release(
    ctx: EngineContext,
    repository: RepositoryId,
    release: Release,
    preferences: InstallationPreferences,
    *,
    progress_callback: ProgressCallback | None = None,
) -> InstalledPackage:
    """Install an already-resolved release as one rollback-safe unit."""
    if not release.assets:
        raise SelectionError(f"Release {release.tag} of {repository} has no assets")

    asset = select_asset(release.assets, preferences.asset_strategy, ctx.host)
    logger.info("%s: selected asset %s", repository, asset.name)

    package_dir = ctx.layout.package_dir(repository)
    try:
        package_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create {package_dir}: {e}") from e

    with RollbackGuard(ctx.index, ctx.layout, repository) as guard:
        chunks = ctx.transport.stream(asset.download_url, progress_callback=progress_callback)
        extract_stream(chunks, asset.name, package_dir)

        package = InstalledPackage.from_install(repository, release.tag, preferences)
        ctx.index.upsert(package)

        links = publish_executables(
            package_dir, ctx.layout.executables_dir, ctx.classifier, preferences.rename
        )
        guard.commit()

    if not links:
        logger.warning("%s: no executables found in %s", repository, asset.name)
    logger.info("Installed %s %s (%d executable(s))", repository, release.tag, len(links))
    return package


# ── Maintenance ─────────────────────────────────────────────────


def uninstall(ctx: EngineContext, repository: RepositoryId) -> None:
    """Remove the package directory, its index record and its links."""
    _require_installed(ctx, repository)
    package_dir = ctx.layout.package_dir(repository)

    try:
        shutil.rmtree(package_dir)
    except FileNotFoundError:
        logger.warning("%s: package directory %s was already gone", repository, package_dir)
    except OSError as e:
        raise FilesystemError(f"Cannot remove {package_dir}: {e}") from e

    author_dir = ctx.layout.author_dir(repository)
    try:
        if author_dir.is_dir() and not any(author_dir.iterdir()):
            author_dir.rmdir()
    except OSError as e:
        raise FilesystemError(f"Cannot remove {author_dir}: {e}") from e

    ctx.index.delete(repository)
    removed = unlink_owned(package_dir, ctx.layout.executables_dir)
    logger.info("Removed %s (%d link(s))", repository, len(removed))


def rename(ctx: EngineContext, repository: RepositoryId, mapping: RenameMapping) -> list[str]:
    """Republish the package's executables with a new rename mapping.

    Returns:
        The published link names.
    """
    _require_installed(ctx, repository)
    package_dir = ctx.layout.package_dir(repository)

    unlink_owned(package_dir, ctx.layout.executables_dir)
    names = publish_executables(
        package_dir, ctx.layout.executables_dir, ctx.classifier, mapping
    )
    ctx.index.set_rename(repository, mapping)
    logger.info("%s: renamed %s → %s", repository, mapping.old, mapping.new)
    return names


def lock(ctx: EngineContext, repository: RepositoryId) -> None:
    ctx.index.set_lock(repository, True)


def unlock(ctx: EngineContext, repository: RepositoryId) -> None:
    ctx.index.set_lock(repository, False)


def allow_prereleases(ctx: EngineContext, repository: RepositoryId) -> None:
    ctx.index.set_prereleases(repository, True)


# ── Update ──────────────────────────────────────────────────────


def update_package(
    ctx: EngineContext,
    package: InstalledPackage,
    *,
    progress_callback: ProgressCallback | None = None,
) -> str | None:
    """Bring one unlocked package to its latest eligible release.

    Returns:
        The new tag, or ``None`` when already up to date (nothing is
        touched in that case).
    """
    preferences = package.update_preferences()
    release = fetch_release(ctx, package.repository, preferences)

    if release.tag == package.tag:
        logger.info("'%s' is up to date.", package.repository)
        return None

    logger.info(
        "Updating '%s' from '%s' to '%s'...", package.repository, package.tag, release.tag
    )
    uninstall(ctx, package.repository)
    install_release(
        ctx, package.repository, release, preferences, progress_callback=progress_callback
    )
    return release.tag


def update_all(
    ctx: EngineContext,
    *,
    progress_callback: ProgressCallback | None = None,
) -> UpdateReport:
    """Reconcile every tracked package, one at a time.

    Locked packages are skipped with a warning.  A failure on one
    package is recorded and the remaining packages are still updated.
    """
    report = UpdateReport()
    for package in ctx.index.list_packages():
        name = str(package.repository)
        if package.lock:
            logger.warning("'%s' is locked and will not be updated.", name)
            report.skipped_locked.append(name)
            continue

        try:
            new_tag = update_package(ctx, package, progress_callback=progress_callback)
        except DystError as e:
            logger.error("Failed to update '%s': %s", name, e)
            report.failed[name] = str(e)
            continue

        if new_tag is None:
            report.up_to_date.append(name)
        else:
            report.updated.append(
                PackageUpdate(repository=name, from_tag=package.tag, to_tag=new_tag)
            )
    return report
