"""
Format classifier — decides which extracted files are executables.

Classification looks only at the leading bytes of a file, never at
its name or permission bits (archives routinely lose those).
"""

from __future__ import annotations

import logging
import struct
from abc import ABC, abstractmethod
from pathlib import Path

from dyst.core.errors import FilesystemError

logger = logging.getLogger(__name__)

_ELF = b"\x7fELF"
_MACHO_THIN = {
    b"\xfe\xed\xfa\xce",  # 32-bit big endian
    b"\xce\xfa\xed\xfe",  # 32-bit little endian
    b"\xfe\xed\xfa\xcf",  # 64-bit big endian
    b"\xcf\xfa\xed\xfe",  # 64-bit little endian
}
_MACHO_FAT = b"\xca\xfe\xba\xbe"
_PE = b"MZ"

# Java class files share the fat Mach-O magic; their next word is a
# class-file version (>= 45), a fat header's is the arch count.
_MAX_FAT_ARCHS = 30


class FormatClassifier(ABC):
    """Binary-vs-everything-else classification capability."""

    @abstractmethod
    def is_executable(self, path: Path) -> bool:
        """True if ``path`` holds a native executable image."""


class MagicFormatClassifier(FormatClassifier):
    """Recognizes ELF, Mach-O (thin and universal) and PE images."""

    def is_executable(self, path: Path) -> bool:
        try:
            with open(path, "rb") as f:
                head = f.read(8)
        except OSError as e:
            raise FilesystemError(f"Cannot read {path}: {e}") from e
        return is_executable_header(head)


def is_executable_header(head: bytes) -> bool:
    """Classify a file by its first eight bytes."""
    if head.startswith(_ELF) or head.startswith(_PE):
        return True
    magic = head[:4]
    if magic in _MACHO_THIN:
        return True
    if magic == _MACHO_FAT and len(head) >= 8:
        (nfat_arch,) = struct.unpack(">I", head[4:8])
        return 0 < nfat_arch <= _MAX_FAT_ARCHS
    return False
