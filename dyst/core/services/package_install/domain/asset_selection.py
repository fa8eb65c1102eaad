"""
L1 Domain — Asset selection (pure).

Scores every asset of a release against the host platform (or a
user-supplied regex) and picks the best one.  No I/O.
"""

from __future__ import annotations

import re

from dyst.core.errors import SelectionError
from dyst.core.models.host import HostPlatform
from dyst.core.models.package import AssetStrategy
from dyst.core.models.release import ReleaseAsset


def score_asset(name: str, strategy: AssetStrategy, host: HostPlatform) -> int:
    """Score one asset name.

    Automatic: occurrences of each host identifier (os, arch, and
    arch aliases such as ``amd64``) in the lower-cased name.
    Pattern: number of non-overlapping regex matches in the
    lower-cased name.  The two never combine.
    """
    lowered = name.lower()
    if strategy.pattern is not None:
        return sum(1 for _ in re.finditer(strategy.pattern, lowered))
    return sum(lowered.count(ident) for ident in host.identifiers if ident)


def select_asset(
    assets: list[ReleaseAsset],
    strategy: AssetStrategy,
    host: HostPlatform,
) -> ReleaseAsset:
    """Pick the highest-scoring asset.

    Assets scoring 0 are never picked.  Among equal scores the one
    listed first in the release wins.

    Raises:
        SelectionError: No asset scored above 0 (or the list is empty).
    """
    best: ReleaseAsset | None = None
    best_score = 0
    for asset in assets:
        score = score_asset(asset.name, strategy, host)
        if score > best_score:
            best, best_score = asset, score

    if best is None:
        raise SelectionError(
            "No asset matches this platform; choose one with a filter",
            candidates=[asset.name for asset in assets],
        )
    return best
