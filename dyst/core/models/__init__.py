"""
Domain models — Pydantic types for the package lifecycle engine.

All models are re-exported here for convenient access:

    from dyst.core.models import Release, InstalledPackage, RepositoryId
"""

from dyst.core.models.host import HostPlatform
from dyst.core.models.package import (
    AssetStrategy,
    InstallationPreferences,
    InstalledPackage,
    RenameMapping,
    RepositoryId,
)
from dyst.core.models.release import Release, ReleaseAsset
from dyst.core.models.report import PackageUpdate, UpdateReport

__all__ = [
    # package.py
    "AssetStrategy",
    # host.py
    "HostPlatform",
    "InstallationPreferences",
    "InstalledPackage",
    # report.py
    "PackageUpdate",
    # release.py
    "Release",
    "ReleaseAsset",
    "RenameMapping",
    "RepositoryId",
    "UpdateReport",
]
