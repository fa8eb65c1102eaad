"""
L4 Execution — Archive extraction.

Turns a downloaded byte stream plus a filename hint into files under
an output directory.

Recognized extensions (the last suffix of the hint):

    tar  zip  gz  bz2  xz  zst  rar        (+ tgz, tbz2, txz, tzst)

Archives are spooled to a temporary file first; enumeration and
extraction need the whole payload.  Anything else is written
verbatim, chunk by chunk, as a single file named by the hint.

There is no partial recovery: a transfer, disk or parse failure
aborts the extraction and the caller restarts the install.
"""

from __future__ import annotations

import bz2
import gzip
import logging
import lzma
import os
import stat
import tarfile
import tempfile
import zipfile
import zlib
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import IO

import rarfile
import zstandard

from dyst.core.errors import ArchiveError, FilesystemError

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSIONS = frozenset({"tar", "zip", "gz", "bz2", "xz", "zst", "rar"})

# single-suffix tarball spellings → compression suffix
_TARBALL_ALIASES = {"tgz": "gz", "tbz": "bz2", "tbz2": "bz2", "txz": "xz", "tzst": "zst"}

_COPY_CHUNK = 256 * 1024

# Errors raised while *reading* archive content.  zipfile signals
# encrypted or unsupported entries with RuntimeError / NotImplementedError.
_READ_ERRORS = (
    tarfile.TarError,
    zipfile.BadZipFile,
    rarfile.Error,
    zstandard.ZstdError,
    zlib.error,
    lzma.LZMAError,
    EOFError,
    OSError,
    ValueError,
    RuntimeError,
)


def archive_kind(filename: str) -> tuple[str, str] | None:
    """Classify a filename hint.

    Returns:
        ``(container, compression)`` where container is ``tar``,
        ``zip``, ``rar`` or ``stream`` (a single compressed file),
        or ``None`` when the extension is not an archive.
    """
    parts = filename.lower().split(".")
    if len(parts) < 2:
        return None
    ext = parts[-1]

    if ext in _TARBALL_ALIASES:
        return "tar", _TARBALL_ALIASES[ext]
    if ext not in ARCHIVE_EXTENSIONS:
        return None
    if ext in ("tar", "zip", "rar"):
        return ext, ""
    if len(parts) >= 3 and parts[-2] == "tar":
        return "tar", ext
    return "stream", ext


def extract_stream(
    chunks: Iterable[bytes],
    filename_hint: str,
    output_dir: Path,
) -> list[Path]:
    """Materialize a download under ``output_dir``.

    Args:
        chunks: The payload, as produced by the transport.
        filename_hint: Asset name; only its extension matters, except
            for the verbatim path where it names the written file.
        output_dir: Existing directory to write into.

    Returns:
        Paths of the files written.

    Raises:
        TransferError: Propagated from ``chunks``.
        ArchiveError: Corrupt, unsupported or unsafe archive.
        FilesystemError: A write failed.
    """
    kind = archive_kind(filename_hint)
    if kind is None:
        target = output_dir / _plain_name(filename_hint)
        _write_chunks(chunks, target)
        logger.debug("Wrote %s verbatim", target)
        return [target]

    container, compression = kind
    try:
        buffer = tempfile.TemporaryFile(prefix="dyst-")
    except OSError as e:
        raise FilesystemError(f"Cannot create a temporary download buffer: {e}") from e

    with buffer:
        for chunk in chunks:
            try:
                buffer.write(chunk)
            except OSError as e:
                raise FilesystemError(f"Cannot buffer download: {e}") from e
        buffer.seek(0)

        if container == "tar":
            written = _extract_tar(buffer, compression, output_dir)
        elif container == "zip":
            written = _extract_zip(buffer, output_dir)
        elif container == "rar":
            written = _extract_rar(buffer, output_dir)
        else:
            written = _extract_single(buffer, compression, filename_hint, output_dir)

    logger.info("Extracted %d file(s) from %s", len(written), filename_hint)
    return written


# ── Containers ──────────────────────────────────────────────────


def _extract_tar(buffer: IO[bytes], compression: str, output_dir: Path) -> list[Path]:
    written: list[Path] = []
    try:
        if compression == "zst":
            reader = zstandard.ZstdDecompressor().stream_reader(buffer)
            tar = tarfile.open(fileobj=reader, mode="r|")
        else:
            tar = tarfile.open(fileobj=buffer, mode="r:*")
    except _READ_ERRORS as e:
        raise ArchiveError(f"Cannot open tar archive: {e}") from e

    with tar:
        try:
            for member in tar:
                if member.isdir() or _is_directory_marker(member.name):
                    continue
                if not member.isfile():
                    logger.info("Skipping non-regular archive entry %s", member.name)
                    continue
                target = _entry_target(output_dir, member.name)
                source = tar.extractfile(member)
                if source is None:
                    continue
                with source:
                    _copy_entry(source, target, member.mode & 0o777)
                written.append(target)
        except _READ_ERRORS as e:
            raise ArchiveError(f"Corrupt tar archive: {e}") from e
    return written


def _extract_zip(buffer: IO[bytes], output_dir: Path) -> list[Path]:
    written: list[Path] = []
    try:
        with zipfile.ZipFile(buffer) as zf:
            for info in zf.infolist():
                if info.is_dir() or _is_directory_marker(info.filename):
                    continue
                mode = info.external_attr >> 16
                if stat.S_ISLNK(mode):
                    logger.info("Skipping symlink archive entry %s", info.filename)
                    continue
                target = _entry_target(output_dir, info.filename)
                with zf.open(info) as source:
                    _copy_entry(source, target, mode & 0o777)
                written.append(target)
    except _READ_ERRORS as e:
        raise ArchiveError(f"Corrupt zip archive: {e}") from e
    return written


def _extract_rar(buffer: IO[bytes], output_dir: Path) -> list[Path]:
    written: list[Path] = []
    try:
        with rarfile.RarFile(buffer) as rf:
            for info in rf.infolist():
                if info.is_dir() or _is_directory_marker(info.filename):
                    continue
                if info.is_symlink():
                    logger.info("Skipping symlink archive entry %s", info.filename)
                    continue
                target = _entry_target(output_dir, info.filename)
                with rf.open(info) as source:
                    _copy_entry(source, target, None)
                written.append(target)
    except _READ_ERRORS as e:
        raise ArchiveError(f"Corrupt rar archive: {e}") from e
    return written


def _extract_single(
    buffer: IO[bytes], compression: str, filename_hint: str, output_dir: Path
) -> list[Path]:
    """A lone compressed file (``tool.gz``) becomes ``tool``."""
    name = _plain_name(filename_hint.rsplit(".", 1)[0])
    target = output_dir / name
    try:
        if compression == "gz":
            source = gzip.GzipFile(fileobj=buffer)
        elif compression == "bz2":
            source = bz2.BZ2File(buffer)
        elif compression == "xz":
            source = lzma.LZMAFile(buffer)
        else:
            source = zstandard.ZstdDecompressor().stream_reader(buffer)
        with source:
            _copy_entry(source, target, None)
    except _READ_ERRORS as e:
        raise ArchiveError(f"Corrupt {compression} stream: {e}") from e
    return [target]


# ── Entry helpers ───────────────────────────────────────────────


def _is_directory_marker(name: str) -> bool:
    return name.endswith("/") or name.endswith("\\")


def _entry_target(output_dir: Path, name: str) -> Path:
    """Map an archive entry name to a path inside ``output_dir``."""
    rel = PurePosixPath(name.replace("\\", "/"))
    if rel.is_absolute() or ".." in rel.parts:
        raise ArchiveError(f"Archive entry escapes the package directory: {name}")
    parts = [p for p in rel.parts if p not in ("", ".")]
    if not parts:
        raise ArchiveError(f"Archive entry has an empty path: {name!r}")
    return output_dir.joinpath(*parts)


def _plain_name(hint: str) -> str:
    name = PurePosixPath(hint.replace("\\", "/")).name
    if name in ("", ".", ".."):
        raise FilesystemError(f"Unusable file name: {hint!r}")
    return name


def _copy_entry(source: IO[bytes], target: Path, mode: int | None) -> None:
    """Copy one entry; read failures are archive errors, writes are filesystem errors."""
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        out = open(target, "wb")
    except OSError as e:
        raise FilesystemError(f"Cannot create {target}: {e}") from e

    with out:
        while True:
            try:
                chunk = source.read(_COPY_CHUNK)
            except _READ_ERRORS as e:
                raise ArchiveError(f"Cannot read archive entry {target.name}: {e}") from e
            if not chunk:
                break
            try:
                out.write(chunk)
            except OSError as e:
                raise FilesystemError(f"Cannot write {target}: {e}") from e

    if mode:
        try:
            os.chmod(target, mode)
        except OSError as e:
            raise FilesystemError(f"Cannot set permissions on {target}: {e}") from e


def _write_chunks(chunks: Iterable[bytes], target: Path) -> None:
    """Stream chunks straight to ``target`` as they arrive."""
    try:
        out = open(target, "wb")
    except OSError as e:
        raise FilesystemError(f"Cannot create {target}: {e}") from e
    with out:
        for chunk in chunks:
            try:
                out.write(chunk)
            except OSError as e:
                raise FilesystemError(f"Cannot write {target}: {e}") from e
