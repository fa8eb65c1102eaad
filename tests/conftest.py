"""
Shared test fixtures and configuration.

The engine never touches the network in tests: ``FakeResolver`` and
``FakeTransport`` stand in for GitHub, and ``engine`` wires them into
an ``EngineContext`` around a temporary package store.
"""

from __future__ import annotations

import io
import tarfile
import zipfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from dyst.core.config.loader import FilesystemLayout
from dyst.core.context import EngineContext
from dyst.core.errors import ResolutionError, TransferError
from dyst.core.models.host import HostPlatform
from dyst.core.models.package import RepositoryId
from dyst.core.models.release import Release, ReleaseAsset
from dyst.core.persistence.package_index import PackageIndex
from dyst.core.services.format_classifier import MagicFormatClassifier
from dyst.core.services.github_releases import ReleaseResolver

# Smallest header the classifier accepts as an ELF executable
_ELF = b"\x7fELF\x02\x01\x01\x00" + b"\x00" * 56
_TEXT = b"# README\nnot a binary\n"

_LINUX_X64 = HostPlatform(os="linux", arch="x86_64")


class FakeResolver(ReleaseResolver):
    """In-memory release listings keyed by ``author/name``."""

    def __init__(self) -> None:
        self.releases: dict[str, list[Release]] = {}
        self.calls: list[str] = []

    def set(self, repository: str, releases: list[Release]) -> None:
        self.releases[repository] = releases

    def list_releases(self, repository: RepositoryId) -> list[Release]:
        self.calls.append(str(repository))
        if str(repository) not in self.releases:
            raise ResolutionError("The requested repository could not be fetched (Not Found)")
        return self.releases[str(repository)]

    def search(self, query: str) -> list[tuple[str, str]]:
        return [(name, "fake") for name in self.releases if query in name]


class FakeTransport:
    """Serves byte payloads by URL, in small chunks."""

    def __init__(self) -> None:
        self.payloads: dict[str, bytes] = {}
        self.fail_after: dict[str, int] = {}
        self.calls: list[str] = []

    def serve(self, url: str, payload: bytes) -> None:
        self.payloads[url] = payload

    def stream(self, url: str, *, chunk_size: int = 16, progress_callback=None) -> Iterator[bytes]:
        self.calls.append(url)
        payload = self.payloads.get(url)
        if payload is None:
            raise TransferError(f"GET {url} failed: HTTP 404 (Not Found)")
        sent = 0
        for start in range(0, len(payload), chunk_size):
            if url in self.fail_after and sent >= self.fail_after[url]:
                raise TransferError(f"Download of {url} interrupted: connection reset")
            chunk = payload[start:start + chunk_size]
            sent += len(chunk)
            if progress_callback:
                progress_callback(sent, len(payload))
            yield chunk


def _tar_gz(files: dict[str, bytes], dirs: tuple[str, ...] = ()) -> bytes:
    """A .tar.gz holding ``files`` (and explicit directory entries)."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name in dirs:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def _zip(files: dict[str, bytes], dirs: tuple[str, ...] = (), encrypted: bool = False) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name in dirs:
            zf.writestr(name if name.endswith("/") else name + "/", b"")
        for name, data in files.items():
            zf.writestr(name, data)
    payload = buf.getvalue()
    return _mark_encrypted(payload) if encrypted else payload


def _mark_encrypted(data: bytes) -> bytes:
    """Set the "encrypted" flag bit in every local and central header."""
    buf = bytearray(data)
    for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        start = 0
        while (pos := buf.find(signature, start)) != -1:
            buf[pos + flag_offset] |= 0x01
            start = pos + 4
    return bytes(buf)


def _release(tag: str, *asset_names: str, prerelease: bool = False, repo: str = "") -> Release:
    """A release whose asset URLs are ``https://dl.test/[<repo>/]<tag>/<name>``."""
    base = f"https://dl.test/{repo}/{tag}" if repo else f"https://dl.test/{tag}"
    return Release(
        tag=tag,
        prerelease=prerelease,
        assets=[
            ReleaseAsset(name=name, download_url=f"{base}/{name}")
            for name in asset_names
        ],
    )


@pytest.fixture
def layout(tmp_path: Path) -> FilesystemLayout:
    """Empty package store and executables directory."""
    store = tmp_path / "store"
    bin_dir = tmp_path / "bin"
    store.mkdir()
    bin_dir.mkdir()
    return FilesystemLayout(package_store=store, executables_dir=bin_dir)


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def engine(layout: FilesystemLayout, resolver: FakeResolver, transport: FakeTransport):
    """EngineContext on a temp store, a linux/x86_64 host and fake collaborators."""
    ctx = EngineContext(
        index=PackageIndex(layout.index_path),
        layout=layout,
        resolver=resolver,
        transport=transport,
        classifier=MagicFormatClassifier(),
        host=_LINUX_X64,
    )
    yield ctx
    ctx.close()


@pytest.fixture
def publish_tool(resolver: FakeResolver, transport: FakeTransport):
    """Register ``repo`` with one linux tarball release containing ``files``.

    Returns the Release.
    """

    def _publish(
        repo: str,
        tag: str = "v1.0.0",
        files: dict[str, bytes] | None = None,
        asset: str = "tool-linux-amd64.tar.gz",
        extra_assets: tuple[str, ...] = (),
    ) -> Release:
        files = files if files is not None else {"tool-1.0/bin/tool": _ELF}
        rel = _release(tag, asset, *extra_assets, repo=repo)
        transport.serve(rel.assets[0].download_url, _tar_gz(files))
        existing = [r for r in resolver.releases.get(repo, []) if r.tag != tag]
        resolver.set(repo, [rel, *existing])
        return rel

    return _publish


@pytest.fixture
def elf_bytes() -> bytes:
    """Contents the classifier accepts as a native executable."""
    return _ELF


@pytest.fixture
def text_bytes() -> bytes:
    return _TEXT


@pytest.fixture
def make_tar_gz():
    """Build a .tar.gz from ``{name: bytes}`` (plus optional ``dirs``)."""
    return _tar_gz


@pytest.fixture
def make_zip():
    return _zip


@pytest.fixture
def make_release():
    """Build a Release whose asset URLs live under ``https://dl.test``."""
    return _release


@pytest.fixture
def snapshot():
    """Every path under a root (links included), relative, as text."""

    def _snapshot(root: Path) -> set[str]:
        return {str(p.relative_to(root)) for p in root.rglob("*")}

    return _snapshot
