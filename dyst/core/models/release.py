"""
Release model — what the release resolver hands the engine.

Both types are immutable snapshots of the hosting platform's
metadata; the engine never mutates them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ReleaseAsset(BaseModel):
    """One downloadable file attached to a release."""

    model_config = ConfigDict(frozen=True)

    name: str
    download_url: str


class Release(BaseModel):
    """A tagged, possibly-prerelease bundle of assets."""

    model_config = ConfigDict(frozen=True)

    tag: str
    prerelease: bool = False
    assets: list[ReleaseAsset] = Field(default_factory=list)

    @property
    def asset_names(self) -> list[str]:
        return [asset.name for asset in self.assets]
