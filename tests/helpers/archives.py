# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Builders for synthetic app archives and Mach-O images used in tests."""

from __future__ import annotations

import plistlib
import struct
import zipfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from fairground.archive import ArchiveEntry, ArchiveReader

MH_MAGIC_64 = 0xFEEDFACF
FAT_MAGIC = 0xCAFEBABE
LC_SEGMENT_64 = 0x19
LC_CODE_SIGNATURE = 0x1D
SEGMENT_64_SIZE = 72
LINKEDIT_DATA_SIZE = 16


def write_zip(path: Path, entries: Iterable[tuple[str, bytes]]) -> Path:
    """Write ``entries`` to a deflated zip at ``path`` in the given order."""

    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in entries:
            archive.writestr(name, payload)
    return path


def info_plist(values: Mapping[str, Any] | None = None) -> bytes:
    """Return an XML property list for an app named ``App``."""

    document: dict[str, Any] = {
        "CFBundleIdentifier": "app.App-Name",
        "CFBundleExecutable": "App",
        "CFBundleName": "App",
        "CFBundleShortVersionString": "1.0.0",
    }
    document.update(values or {})
    return plistlib.dumps(document)


def mac_app_entries(
    executable: bytes,
    *,
    plist: bytes | None = None,
    extra: Iterable[tuple[str, bytes]] = (),
) -> list[tuple[str, bytes]]:
    """Return the entries of a minimal macOS ``App.app`` bundle."""

    entries = [
        ("App.app/Contents/Info.plist", plist if plist is not None else info_plist()),
        ("App.app/Contents/MacOS/App", executable),
    ]
    entries.extend(extra)
    return entries


def thin_macho(code: bytes, signature: bytes) -> bytes:
    """Return a 64-bit little-endian Mach-O image with an embedded signature blob.

    The image has a ``__LINKEDIT`` segment covering the code and the
    signature, and an ``LC_CODE_SIGNATURE`` command pointing at the blob.
    """

    sizeofcmds = SEGMENT_64_SIZE + LINKEDIT_DATA_SIZE
    data_start = 32 + sizeofcmds
    linkedit_size = len(code) + len(signature)
    header = struct.pack("<IiiIIIII", MH_MAGIC_64, 0x0100000C, 0, 2, 2, sizeofcmds, 0, 0)
    segment = struct.pack(
        "<II16sQQQQiiII",
        LC_SEGMENT_64,
        SEGMENT_64_SIZE,
        b"__LINKEDIT",
        0x100000000,
        0x4000,
        data_start,
        linkedit_size,
        1,
        1,
        0,
        0,
    )
    code_signature = struct.pack("<IIII", LC_CODE_SIGNATURE, LINKEDIT_DATA_SIZE, data_start + len(code), len(signature))
    return header + segment + code_signature + code + signature


def fat_macho(*slices: bytes, align: int = 12) -> bytes:
    """Return a big-endian 32-bit universal image wrapping ``slices``."""

    table = struct.pack(">II", FAT_MAGIC, len(slices))
    body = b""
    cursor = 8 + 20 * len(slices)
    entries = b""
    for index, chunk in enumerate(slices):
        alignment = 1 << align
        offset = (cursor + alignment - 1) // alignment * alignment
        body += bytes(offset - cursor) + chunk
        entries += struct.pack(">iiIII", 0x0100000C + index, 0, offset, len(chunk), align)
        cursor = offset + len(chunk)
    return table + entries + body


class CountingReader(ArchiveReader):
    """Archive reader that records every extracted member."""

    def __init__(self, archive: zipfile.ZipFile, *, source: Path | None = None) -> None:
        super().__init__(archive, source=source)
        self.extracted: list[str] = []

    def extract(self, entry: ArchiveEntry) -> bytes:
        self.extracted.append(entry.path)
        return super().extract(entry)


__all__ = [
    "CountingReader",
    "fat_macho",
    "info_plist",
    "mac_app_entries",
    "thin_macho",
    "write_zip",
]
