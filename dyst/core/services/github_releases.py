"""
Release resolver — GitHub releases and repository search.

The engine only depends on ``ReleaseResolver``; ``GitHubReleases`` is
the production implementation over the REST API.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from dyst.core.config.loader import DEFAULT_API_URL
from dyst.core.errors import ResolutionError, TransferError
from dyst.core.models.package import RepositoryId
from dyst.core.models.release import Release, ReleaseAsset
from dyst.core.services.http_transport import HttpStatusError, HttpTransport

logger = logging.getLogger(__name__)


class ReleaseResolver(ABC):
    """Source of release metadata for a repository."""

    @abstractmethod
    def list_releases(self, repository: RepositoryId) -> list[Release]:
        """Return the repository's releases, newest first.

        Raises:
            ResolutionError: The repository does not exist or is unreachable.
            TransferError: The request itself failed.
        """

    @abstractmethod
    def search(self, query: str) -> list[tuple[str, str]]:
        """Return ``(full_name, description)`` of matching repositories."""


class GitHubReleases(ReleaseResolver):
    """GitHub REST API client for releases and search."""

    def __init__(self, transport: HttpTransport, api_url: str = DEFAULT_API_URL):
        self.transport = transport
        self.api_url = api_url.rstrip("/")

    def list_releases(self, repository: RepositoryId) -> list[Release]:
        url = f"{self.api_url}/repos/{repository.author}/{repository.name}/releases"
        try:
            data = self.transport.get_json(url, {"per_page": 100})
        except HttpStatusError as e:
            raise ResolutionError(
                f"The requested repository could not be fetched ({e.reason or e.status})"
            ) from e

        if not isinstance(data, list):
            raise TransferError(f"Unexpected release listing for {repository}")

        releases = [_parse_release(item) for item in data if isinstance(item, dict)]
        logger.debug("%s: %d release(s)", repository, len(releases))
        return releases

    def search(self, query: str) -> list[tuple[str, str]]:
        data = self.transport.get_json(
            f"{self.api_url}/search/repositories", {"q": query}
        )
        results: list[tuple[str, str]] = []
        for item in (data or {}).get("items", []):
            if not item.get("releases_url"):
                continue
            results.append((item.get("full_name", ""), item.get("description") or "n/a"))
        return results


def _parse_release(item: dict[str, Any]) -> Release:
    return Release(
        tag=item.get("tag_name", ""),
        prerelease=bool(item.get("prerelease", False)),
        assets=[
            ReleaseAsset(name=a.get("name", ""), download_url=a.get("browser_download_url", ""))
            for a in item.get("assets", [])
        ],
    )
