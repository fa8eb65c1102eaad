"""
UpdateReport — outcome of reconciling every tracked package.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PackageUpdate(BaseModel):
    """A package moved from one tag to another."""

    repository: str
    from_tag: str
    to_tag: str


class UpdateReport(BaseModel):
    """Per-record results of ``update_all``.

    Reconciliation continues past failures; ``failed`` maps each
    repository that could not be reconciled to its error message.
    """

    updated: list[PackageUpdate] = Field(default_factory=list)
    up_to_date: list[str] = Field(default_factory=list)
    skipped_locked: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed
