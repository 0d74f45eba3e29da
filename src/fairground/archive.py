# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Read-only access to zip-based application archives."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Final, Self

from .errors import ArchiveOpenError

SIGNATURE_LEAF_NAMES: Final[frozenset[str]] = frozenset(
    {"CodeSignature", "CodeResources", "CodeDirectory", "CodeRequirements-1"},
)


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """Immutable snapshot of a single archive member.

    Attributes:
        path: Member path using ``/`` separators, as stored in the archive.
        uncompressed_size: Size of the payload once decompressed.
        compressed_size: Size of the payload as stored.
        checksum: CRC-32 recorded in the archive directory.
        is_directory: Whether the member is a directory marker.
    """

    path: str
    uncompressed_size: int
    compressed_size: int
    checksum: int
    is_directory: bool = False

    @property
    def components(self) -> tuple[str, ...]:
        """Return the non-empty path components of the entry."""

        return tuple(part for part in self.path.split("/") if part)


def is_signature_entry(path: str) -> bool:
    """Return whether ``path`` names a code-signature-only member.

    Args:
        path: Archive member path.

    Returns:
        bool: ``True`` when the last component is a signature blob name.
    """

    leaf = path.rstrip("/").rsplit("/", 1)[-1]
    return leaf in SIGNATURE_LEAF_NAMES


class ArchiveReader:
    """Enumerate and extract members of a zip archive.

    The reader keeps the underlying file handle open until :meth:`close` is
    called or the context manager exits. Entries are reported in on-disk
    central directory order.
    """

    def __init__(self, archive: zipfile.ZipFile, *, source: Path | None = None) -> None:
        self._archive = archive
        self._source = source
        self._entries: tuple[ArchiveEntry, ...] | None = None
        self._infos: dict[str, zipfile.ZipInfo] = {}

    @classmethod
    def open(cls, path: Path) -> Self:
        """Open ``path`` as a read-only archive.

        Args:
            path: Filesystem path to a zip-compatible artifact.

        Returns:
            ArchiveReader: Reader bound to the opened archive.

        Raises:
            ArchiveOpenError: If the file is missing or is not a valid archive.
        """

        try:
            archive = zipfile.ZipFile(path, mode="r")
        except FileNotFoundError as exc:
            raise ArchiveOpenError(f"Archive not found: {path}") from exc
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveOpenError(f"Error opening archive {path}: {exc}") from exc
        return cls(archive, source=Path(path))

    @property
    def source(self) -> Path | None:
        return self._source

    def entries(self) -> tuple[ArchiveEntry, ...]:
        """Return every member of the archive in on-disk order."""

        if self._entries is None:
            collected: list[ArchiveEntry] = []
            for info in self._archive.infolist():
                self._infos[info.filename] = info
                collected.append(
                    ArchiveEntry(
                        path=info.filename,
                        uncompressed_size=info.file_size,
                        compressed_size=info.compress_size,
                        checksum=info.CRC,
                        is_directory=info.is_dir(),
                    ),
                )
            self._entries = tuple(collected)
        return self._entries

    def extract(self, entry: ArchiveEntry) -> bytes:
        """Return the decompressed payload of ``entry``.

        Args:
            entry: Entry previously returned by :meth:`entries`.

        Returns:
            bytes: Decompressed member contents (empty for directories).

        Raises:
            ArchiveOpenError: If the member cannot be read.
        """

        if entry.is_directory:
            return b""
        self.entries()
        info = self._infos.get(entry.path)
        if info is None:
            raise ArchiveOpenError(f"Archive member not found: {entry.path}")
        try:
            return self._archive.read(info)
        except (zipfile.BadZipFile, OSError, RuntimeError) as exc:
            raise ArchiveOpenError(f"Error extracting {entry.path}: {exc}") from exc

    def close(self) -> None:
        self._archive.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["ArchiveEntry", "ArchiveReader", "SIGNATURE_LEAF_NAMES", "is_signature_entry"]
