# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for archive enumeration and extraction."""

from __future__ import annotations

import zlib
from pathlib import Path

import pytest

from fairground.archive import ArchiveReader, is_signature_entry
from fairground.errors import ArchiveOpenError

from tests.helpers.archives import write_zip


def test_entries_preserve_archive_order(tmp_path: Path) -> None:
    archive_path = write_zip(
        tmp_path / "app.zip",
        [("App.app/Contents/MacOS/App", b"binary"), ("App.app/Contents/Info.plist", b"plist"), ("App.app/", b"")],
    )

    with ArchiveReader.open(archive_path) as reader:
        entries = reader.entries()

    assert [entry.path for entry in entries] == [
        "App.app/Contents/MacOS/App",
        "App.app/Contents/Info.plist",
        "App.app/",
    ]
    assert entries[0].uncompressed_size == len(b"binary")
    assert entries[0].checksum == zlib.crc32(b"binary")
    assert entries[2].is_directory
    assert entries[0].components == ("App.app", "Contents", "MacOS", "App")


def test_extract_returns_payload(tmp_path: Path) -> None:
    archive_path = write_zip(tmp_path / "app.zip", [("App.app/README", b"hello" * 100)])

    with ArchiveReader.open(archive_path) as reader:
        (entry,) = reader.entries()
        assert reader.extract(entry) == b"hello" * 100
        assert reader.source == archive_path


def test_open_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ArchiveOpenError, match="not found"):
        ArchiveReader.open(tmp_path / "missing.zip")


def test_open_non_zip_raises(tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.zip"
    bogus.write_bytes(b"this is not a zip archive")

    with pytest.raises(ArchiveOpenError):
        ArchiveReader.open(bogus)


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("App.app/Contents/_CodeSignature/CodeResources", True),
        ("App.app/Contents/CodeSignature", True),
        ("App.app/Contents/CodeDirectory", True),
        ("App.app/Contents/CodeRequirements-1", True),
        ("App.app/Contents/MacOS/App", False),
        ("App.app/Contents/_CodeSignature/", False),
    ],
)
def test_is_signature_entry(path: str, expected: bool) -> None:
    assert is_signature_entry(path) is expected
