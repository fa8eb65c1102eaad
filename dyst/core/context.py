"""
Engine context — everything an engine operation touches.

The index handle, the filesystem roots, the release resolver, the
transport, the format classifier and the host identity are bundled
here and passed explicitly to every operation.  Nothing in the engine
reaches for a global instance, so tests build a context around a
temporary store and fake collaborators.

    with EngineContext.from_settings(load_settings()) as ctx:
        install(ctx, repository, preferences)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dyst.core.config.loader import FilesystemLayout, Settings
from dyst.core.models.host import HostPlatform
from dyst.core.persistence.package_index import PackageIndex
from dyst.core.services.format_classifier import FormatClassifier, MagicFormatClassifier
from dyst.core.services.github_releases import GitHubReleases, ReleaseResolver
from dyst.core.services.http_transport import HttpTransport


@dataclass
class EngineContext:
    """Collaborators and roots for one CLI invocation."""

    index: PackageIndex
    layout: FilesystemLayout
    resolver: ReleaseResolver
    transport: Any  # anything with HttpTransport.stream's signature
    classifier: FormatClassifier = field(default_factory=MagicFormatClassifier)
    host: HostPlatform = field(default_factory=HostPlatform.detect)

    @classmethod
    def from_settings(cls, settings: Settings) -> EngineContext:
        layout = FilesystemLayout.from_settings(settings)
        transport = HttpTransport(token=settings.github_token, timeout=settings.timeout)
        return cls(
            index=PackageIndex(layout.index_path),
            layout=layout,
            resolver=GitHubReleases(transport, settings.github_api_url),
            transport=transport,
        )

    def close(self) -> None:
        self.index.close()

    def __enter__(self) -> EngineContext:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
