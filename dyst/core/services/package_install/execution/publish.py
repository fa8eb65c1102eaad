"""
L4 Execution — Executable publication.

Walks an installed package tree, marks every native executable as
executable, and links it into the shared executables directory.

A link belongs to a package exactly when its target path lies under
that package's directory.  Ownership is never recorded anywhere else,
so finding a package's links means scanning the executables directory.
The comparison is textual: links into an already-deleted package
directory are still found.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from dyst.core.errors import FilesystemError
from dyst.core.models.package import RenameMapping
from dyst.core.services.format_classifier import FormatClassifier

logger = logging.getLogger(__name__)

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def iter_package_files(package_dir: Path) -> list[Path]:
    """Every regular file under ``package_dir``, in sorted walk order."""
    files: list[Path] = []
    for root, dirs, names in os.walk(package_dir):
        dirs.sort()
        for name in sorted(names):
            path = Path(root) / name
            if path.is_file() and not path.is_symlink():
                files.append(path)
    return files


def publish_executables(
    package_dir: Path,
    executables_dir: Path,
    classifier: FormatClassifier,
    rename: RenameMapping | None = None,
) -> list[str]:
    """Link each executable of ``package_dir`` into ``executables_dir``.

    Two files with the same published name: the one visited later wins
    (a warning is logged).  An existing link at the published name is
    replaced; a regular file there is left alone and raises.

    Returns:
        Published link names, in creation order.

    Raises:
        FilesystemError: On any permission, link or path failure.
    """
    package_dir = package_dir.absolute()
    try:
        executables_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create {executables_dir}: {e}") from e

    published: dict[str, Path] = {}
    for path in iter_package_files(package_dir):
        if not classifier.is_executable(path):
            continue

        _make_executable(path)

        link_name = rename.apply(path.name) if rename else path.name
        if link_name in published:
            logger.warning(
                "'%s' is provided by both %s and %s; keeping the latter",
                link_name, published[link_name], path,
            )
        _link(path, executables_dir / link_name)
        published[link_name] = path
        logger.debug("Linked %s → %s", link_name, path)

    return list(published)


def owned_links(package_dir: Path, executables_dir: Path) -> list[Path]:
    """Symlinks in ``executables_dir`` whose target lies under ``package_dir``."""
    if not executables_dir.is_dir():
        return []
    package_dir = package_dir.absolute()
    owned: list[Path] = []
    try:
        entries = sorted(executables_dir.iterdir())
        for entry in entries:
            if not entry.is_symlink():
                continue
            target = Path(os.readlink(entry))
            if not target.is_absolute():
                target = executables_dir / target
            if target.is_relative_to(package_dir):
                owned.append(entry)
    except OSError as e:
        raise FilesystemError(f"Cannot scan {executables_dir}: {e}") from e
    return owned


def unlink_owned(package_dir: Path, executables_dir: Path) -> list[str]:
    """Remove every link owned by ``package_dir``.  Returns their names."""
    removed: list[str] = []
    for link in owned_links(package_dir, executables_dir):
        try:
            link.unlink()
        except FileNotFoundError:
            continue
        except OSError as e:
            raise FilesystemError(f"Cannot remove {link}: {e}") from e
        removed.append(link.name)
        logger.debug("Unlinked %s", link)
    return removed


def _make_executable(path: Path) -> None:
    try:
        mode = path.stat().st_mode
        path.chmod(mode | _EXEC_BITS)
    except OSError as e:
        raise FilesystemError(f"Cannot mark {path} executable: {e}") from e


def _link(target: Path, link_path: Path) -> None:
    try:
        if link_path.is_symlink():
            link_path.unlink()
        elif link_path.exists():
            raise FilesystemError(
                f"{link_path} exists and is not a link; refusing to replace it"
            )
        link_path.symlink_to(target)
    except OSError as e:
        raise FilesystemError(f"Cannot link {link_path}: {e}") from e
