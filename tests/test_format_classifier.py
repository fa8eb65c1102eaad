"""
Tests for the executable-format classifier — magic-byte detection.
"""

import pytest

from dyst.core.errors import FilesystemError
from dyst.core.services.format_classifier import MagicFormatClassifier, is_executable_header


class TestFormatClassifier:
    @pytest.mark.parametrize("head", [
        b"\x7fELF\x02\x01\x01\x00",
        b"MZ\x90\x00\x03\x00\x00\x00",
        b"\xcf\xfa\xed\xfe\x07\x00\x00\x01",
        b"\xfe\xed\xfa\xce\x00\x00\x00\x07",
        b"\xca\xfe\xba\xbe\x00\x00\x00\x02",
    ])
    def test_executable_headers(self, head):
        assert is_executable_header(head)

    @pytest.mark.parametrize("head", [
        b"#!/bin/sh",
        b"\x1f\x8b\x08\x00\x00\x00\x00\x00",
        b"\xca\xfe\xba\xbe\x00\x00\x00\x34",  # Java class file, version 52
        b"\xca\xfe\xba\xbe\x00\x00\x00\x00",
        b"\xca\xfe\xba\xbe",
        b"",
    ])
    def test_other_headers(self, head):
        assert not is_executable_header(head)

    def test_reads_file(self, tmp_path):
        binary = tmp_path / "tool"
        binary.write_bytes(b"\x7fELF" + b"\x00" * 100)
        text = tmp_path / "README.md"
        text.write_text("# tool\n")

        classifier = MagicFormatClassifier()
        assert classifier.is_executable(binary)
        assert not classifier.is_executable(text)

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(FilesystemError):
            MagicFormatClassifier().is_executable(tmp_path / "missing")
