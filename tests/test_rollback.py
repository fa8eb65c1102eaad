"""
Tests for the install rollback guard.
"""

from pathlib import Path

import pytest

from dyst.core.errors import ArchiveError, PackageIndexError
from dyst.core.models.package import InstalledPackage, RepositoryId
from dyst.core.persistence.package_index import PackageIndex
from dyst.core.services.package_install.execution.rollback import RollbackGuard

REPO = RepositoryId(author="acme", name="tool")


@pytest.fixture
def index(layout):
    idx = PackageIndex(layout.index_path).open()
    yield idx
    idx.close()


def _half_install(layout, index) -> Path:
    pkg = layout.package_dir(REPO)
    pkg.mkdir(parents=True)
    (pkg / "tool").write_bytes(b"\x7fELF")
    (layout.executables_dir / "tool").symlink_to(pkg / "tool")
    index.upsert(InstalledPackage(repository=REPO, tag="v1"))
    return pkg


class TestRollbackGuard:
    def test_commit_keeps_everything(self, layout, index):
        with RollbackGuard(index, layout, REPO) as guard:
            pkg = _half_install(layout, index)
            guard.commit()

        assert pkg.is_dir()
        assert index.contains(REPO)
        assert (layout.executables_dir / "tool").is_symlink()

    def test_exception_rolls_back_and_propagates(self, layout, index):
        with pytest.raises(ArchiveError, match="corrupt"):
            with RollbackGuard(index, layout, REPO):
                _half_install(layout, index)
                raise ArchiveError("corrupt")

        assert not layout.package_dir(REPO).exists()
        assert not layout.author_dir(REPO).exists()
        assert not index.contains(REPO)
        assert not (layout.executables_dir / "tool").is_symlink()

    def test_exit_without_commit_rolls_back(self, layout, index):
        with RollbackGuard(index, layout, REPO):
            _half_install(layout, index)
        assert not layout.package_dir(REPO).exists()
        assert not index.contains(REPO)

    def test_author_dir_with_other_packages_kept(self, layout, index):
        other = layout.package_dir(RepositoryId(author="acme", name="other"))
        other.mkdir(parents=True)

        with RollbackGuard(index, layout, REPO):
            _half_install(layout, index)

        assert other.is_dir()
        assert not layout.package_dir(REPO).exists()

    def test_cleanup_failure_does_not_mask_original(self, layout, index, monkeypatch):
        def broken_delete(repository):
            raise PackageIndexError("database is locked")

        monkeypatch.setattr(index, "delete", broken_delete)
        with pytest.raises(ArchiveError):
            with RollbackGuard(index, layout, REPO):
                _half_install(layout, index)
                raise ArchiveError("corrupt")
        assert not layout.package_dir(REPO).exists()
