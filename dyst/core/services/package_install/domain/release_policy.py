"""
L1 Domain — Release eligibility (pure).
"""

from __future__ import annotations

from dyst.core.errors import ResolutionError
from dyst.core.models.release import Release


def choose_release(
    releases: list[Release],
    *,
    tag: str | None = None,
    prereleases: bool = False,
) -> Release:
    """Pick the release to install from a newest-first listing.

    A pinned ``tag`` must match exactly (prerelease or not).
    Otherwise the newest release wins, skipping prereleases unless
    they are allowed.

    Raises:
        ResolutionError: Nothing eligible.
    """
    if tag is not None:
        for release in releases:
            if release.tag == tag:
                return release
        raise ResolutionError(f"There is no release tagged '{tag}'")

    for release in releases:
        if prereleases or not release.prerelease:
            return release
    raise ResolutionError("There is no release available")
