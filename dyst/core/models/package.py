"""
Package models — repository identity, installation preferences, and
the persisted record of an installed package.

Compound values (``author/name``, ``old/new``, the asset filter) are
structured here.  Their text forms exist only at the CLI and at the
package index boundary.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator


def _split_pair(text: str, what: str, example: str) -> tuple[str, str]:
    """Split ``left/right`` text, requiring exactly one separator."""
    if text.count("/") != 1:
        raise ValueError(f"The provided {what} seems invalid (expected `{example}`)")
    left, right = text.split("/")
    if not left or not right or left in (".", "..") or right in (".", ".."):
        raise ValueError(f"The provided {what} seems invalid (expected `{example}`)")
    return left, right


class RepositoryId(BaseModel):
    """``author/name`` — the unique key of an installed package."""

    model_config = ConfigDict(frozen=True)

    author: str
    name: str

    @classmethod
    def parse(cls, text: str) -> RepositoryId:
        author, name = _split_pair(text.strip(), "repository", "author/name")
        return cls(author=author, name=name)

    def __str__(self) -> str:
        return f"{self.author}/{self.name}"


class RenameMapping(BaseModel):
    """Publish the executable named ``old`` as ``new``."""

    model_config = ConfigDict(frozen=True)

    old: str
    new: str

    @classmethod
    def parse(cls, text: str) -> RenameMapping:
        old, new = _split_pair(text, "rename option", "match/replace")
        return cls(old=old, new=new)

    def serialize(self) -> str:
        return f"{self.old}/{self.new}"

    def apply(self, file_name: str) -> str:
        """Return the published name for ``file_name``."""
        return self.new if file_name == self.old else file_name


class AssetStrategy(BaseModel):
    """How to pick an asset: automatic host matching, or a regex filter.

    A pattern fully replaces the automatic heuristic.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str | None = None

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"The filter contains illegal regex syntax: {exc}") from exc
        return value

    @classmethod
    def automatic(cls) -> AssetStrategy:
        return cls()

    @classmethod
    def pattern_filter(cls, pattern: str) -> AssetStrategy:
        return cls(pattern=pattern)

    @property
    def is_automatic(self) -> bool:
        return self.pattern is None


class InstallationPreferences(BaseModel):
    """Per-invocation install options; projected into an InstalledPackage."""

    prereleases: bool = False
    tag: str | None = None
    asset_strategy: AssetStrategy = AssetStrategy()
    rename: RenameMapping | None = None
    lock: bool = False


class InstalledPackage(BaseModel):
    """Persisted record of one installed package."""

    repository: RepositoryId
    tag: str
    lock: bool = False
    asset_strategy: AssetStrategy = AssetStrategy()
    rename: RenameMapping | None = None
    prereleases: bool = False

    @classmethod
    def from_install(
        cls,
        repository: RepositoryId,
        tag: str,
        preferences: InstallationPreferences,
    ) -> InstalledPackage:
        return cls(
            repository=repository,
            tag=tag,
            lock=preferences.lock,
            asset_strategy=preferences.asset_strategy,
            rename=preferences.rename,
            prereleases=preferences.prereleases,
        )

    def update_preferences(self) -> InstallationPreferences:
        """Preferences for re-installing during an update.

        The originally pinned tag is not kept, so updates always
        chase the latest eligible release.
        """
        return InstallationPreferences(
            prereleases=self.prereleases,
            asset_strategy=self.asset_strategy,
            rename=self.rename,
            lock=self.lock,
        )
