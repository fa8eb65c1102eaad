"""
Error taxonomy for the package lifecycle engine.

Every engine operation either succeeds or raises one of these.
Low-level exceptions (OSError, sqlite3.Error, urllib errors, archive
library errors) are translated where they happen and chained with
``raise ... from exc`` so the original cause stays visible under
``--debug``.
"""

from __future__ import annotations


class DystError(Exception):
    """Base class for every error surfaced to the user."""


class ConfigError(DystError):
    """Raised when settings or the config file are invalid."""


class ResolutionError(DystError):
    """No release (or no release with the pinned tag) could be resolved."""


class SelectionError(DystError):
    """No asset of the release matched the selection strategy.

    ``candidates`` carries every asset name of the release so the
    caller can suggest a manual ``--filter``.
    """

    def __init__(self, message: str, candidates: list[str] | None = None) -> None:
        super().__init__(message)
        self.candidates: list[str] = list(candidates or [])


class TransferError(DystError):
    """A network request or a read from the response body failed."""


class ArchiveError(DystError):
    """The downloaded archive is corrupt, unsupported, or unsafe."""


class FilesystemError(DystError):
    """A filesystem operation failed (permissions, space, paths)."""


class PackageIndexError(DystError):
    """The package index is unavailable or corrupt."""


class PackageStateError(DystError):
    """The repository is not in the state the operation requires."""
