"""
L4 Execution — Install rollback guard.

Used as a context manager around the side-effecting part of an
install::

    with RollbackGuard(index, layout, repository) as guard:
        ...extract, record, publish...
        guard.commit()

Leaving the block without ``commit()`` (normal exit, early return or
an exception) undoes the install: the package's links, its directory
(and the author directory if that leaves it empty) and its index
record are removed.  Cleanup is best-effort.  Its own failures are
logged and never replace the exception that triggered it.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from types import TracebackType

from dyst.core.config.loader import FilesystemLayout
from dyst.core.errors import DystError
from dyst.core.models.package import RepositoryId
from dyst.core.persistence.package_index import PackageIndex
from dyst.core.services.package_install.execution.publish import unlink_owned

logger = logging.getLogger(__name__)


class RollbackGuard:
    """Undo a partial install unless committed."""

    def __init__(self, index: PackageIndex, layout: FilesystemLayout, repository: RepositoryId):
        self.index = index
        self.layout = layout
        self.repository = repository
        self.package_dir: Path = layout.package_dir(repository)
        self.committed = False

    def commit(self) -> None:
        """Keep everything the install did."""
        self.committed = True

    def __enter__(self) -> RollbackGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if not self.committed:
            if exc is not None:
                logger.warning("Install of %s failed, rolling back: %s", self.repository, exc)
            self.rollback()
        return False

    def rollback(self) -> None:
        """Best-effort removal of everything the install may have created."""
        try:
            unlink_owned(self.package_dir, self.layout.executables_dir)
        except DystError as e:
            logger.error("Rollback: could not remove links of %s: %s", self.repository, e)

        shutil.rmtree(self.package_dir, ignore_errors=True)
        author_dir = self.layout.author_dir(self.repository)
        try:
            author_dir.rmdir()
        except OSError:
            pass  # not empty, or already gone

        try:
            self.index.delete(self.repository)
        except DystError as e:
            logger.error("Rollback: could not delete index record of %s: %s", self.repository, e)

        logger.info("Rolled back install of %s", self.repository)
