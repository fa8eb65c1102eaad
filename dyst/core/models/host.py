"""
Host platform identity used by automatic asset selection.
"""

from __future__ import annotations

import platform

from pydantic import BaseModel, ConfigDict

# platform.machine() spellings → canonical architecture names
_ARCH_MAP = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "armv8": "aarch64",
    "i686": "x86",
    "i386": "x86",
}

# Vendors name x86-64 assets inconsistently
_ARCH_ALIASES = {
    "x86_64": ("amd64",),
}


class HostPlatform(BaseModel):
    """Operating system and CPU architecture of the running host."""

    model_config = ConfigDict(frozen=True)

    os: str
    arch: str

    @classmethod
    def detect(cls) -> HostPlatform:
        """Identify the current host (``linux``/``darwin``/``windows``, ``x86_64``...)."""
        machine = platform.machine().lower()
        return cls(
            os=platform.system().lower(),
            arch=_ARCH_MAP.get(machine, machine),
        )

    @property
    def identifiers(self) -> list[str]:
        """Substrings counted when scoring asset names."""
        return [self.os, self.arch, *_ARCH_ALIASES.get(self.arch, ())]
