# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Mach-O detection and code-signature removal.

Two builds of the same sources signed by different identities differ in the
embedded signature blob and in the load commands that describe it. The
strippers in this module remove both so the remaining bytes can be compared.
"""

from __future__ import annotations

import shutil
import struct
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Literal, Protocol, TypeAlias

from .errors import FairgroundError
from .logging import ConsoleLogger, default_logger

LC_SEGMENT: Final[int] = 0x1
LC_SEGMENT_64: Final[int] = 0x19
LC_CODE_SIGNATURE: Final[int] = 0x1D
LINKEDIT_SEGMENT: Final[bytes] = b"__LINKEDIT"
PAGE_SIZE: Final[int] = 0x4000
MAX_FAT_ARCHES: Final[int] = 30

# magic bytes -> (struct byte order, 64-bit header)
_THIN_MAGICS: Final[dict[bytes, tuple[str, bool]]] = {
    b"\xfe\xed\xfa\xce": (">", False),
    b"\xce\xfa\xed\xfe": ("<", False),
    b"\xfe\xed\xfa\xcf": (">", True),
    b"\xcf\xfa\xed\xfe": ("<", True),
}

# magic bytes -> (struct byte order, 64-bit arch table)
_FAT_MAGICS: Final[dict[bytes, tuple[str, bool]]] = {
    b"\xca\xfe\xba\xbe": (">", False),
    b"\xbe\xba\xfe\xca": ("<", False),
    b"\xca\xfe\xba\xbf": (">", True),
    b"\xbf\xba\xfe\xca": ("<", True),
}

StripperName: TypeAlias = Literal["builtin", "codesign"]


class MachOFormatError(ValueError):
    """Raised internally when a payload looks like Mach-O but cannot be parsed."""


def is_macho(payload: bytes) -> bool:
    """Return whether ``payload`` starts with a thin or universal Mach-O magic.

    Args:
        payload: Candidate binary contents.

    Returns:
        bool: ``True`` for any recognised Mach-O magic number.
    """

    magic = bytes(payload[:4])
    return magic in _THIN_MAGICS or magic in _FAT_MAGICS


def _round_up(value: int, alignment: int) -> int:
    return (value + alignment - 1) // alignment * alignment


def _strip_thin(data: bytes) -> bytes:
    endian, is64 = _THIN_MAGICS[bytes(data[:4])]
    header_size = 32 if is64 else 28
    ncmds, sizeofcmds = struct.unpack_from(f"{endian}II", data, 16)
    commands_end = header_size + sizeofcmds
    if commands_end > len(data):
        raise MachOFormatError("load commands exceed payload")

    signature: tuple[int, int, int, int] | None = None
    linkedit_offset: int | None = None
    offset = header_size
    for _ in range(ncmds):
        cmd, cmdsize = struct.unpack_from(f"{endian}II", data, offset)
        if cmdsize < 8 or offset + cmdsize > commands_end:
            raise MachOFormatError(f"invalid load command size {cmdsize} at {offset}")
        if cmd == LC_CODE_SIGNATURE:
            dataoff, datasize = struct.unpack_from(f"{endian}II", data, offset + 8)
            signature = (offset, cmdsize, dataoff, datasize)
        elif cmd in (LC_SEGMENT, LC_SEGMENT_64):
            if bytes(data[offset + 8 : offset + 24]).rstrip(b"\0") == LINKEDIT_SEGMENT:
                linkedit_offset = offset
        offset += cmdsize

    if signature is None:
        return bytes(data)
    command_offset, command_size, dataoff, datasize = signature
    if dataoff + datasize > len(data):
        raise MachOFormatError("code signature exceeds payload")

    buffer = bytearray(data[:dataoff])
    buffer += data[dataoff + datasize :]

    if linkedit_offset is not None:
        if is64:
            vmsize_at, fileoff_at, filesize_at, word = linkedit_offset + 32, linkedit_offset + 40, linkedit_offset + 48, "Q"
        else:
            vmsize_at, fileoff_at, filesize_at, word = linkedit_offset + 28, linkedit_offset + 32, linkedit_offset + 36, "I"
        (fileoff,) = struct.unpack_from(f"{endian}{word}", buffer, fileoff_at)
        (filesize,) = struct.unpack_from(f"{endian}{word}", buffer, filesize_at)
        if fileoff <= dataoff and dataoff + datasize <= fileoff + filesize:
            filesize -= datasize
            struct.pack_into(f"{endian}{word}", buffer, filesize_at, filesize)
            struct.pack_into(f"{endian}{word}", buffer, vmsize_at, _round_up(filesize, PAGE_SIZE))

    relative = command_offset - header_size
    commands = bytes(buffer[header_size:commands_end])
    buffer[header_size:commands_end] = (
        commands[:relative] + commands[relative + command_size :] + bytes(command_size)
    )
    struct.pack_into(f"{endian}II", buffer, 16, ncmds - 1, sizeofcmds - command_size)
    return bytes(buffer)


def _strip_fat(data: bytes) -> bytes:
    endian, is64 = _FAT_MAGICS[bytes(data[:4])]
    (count,) = struct.unpack_from(f"{endian}I", data, 4)
    # Java class files share the 0xCAFEBABE magic but carry a large version here.
    if count == 0 or count > MAX_FAT_ARCHES:
        raise MachOFormatError(f"implausible architecture count {count}")
    entry_format = f"{endian}iiQQII" if is64 else f"{endian}iiIII"
    entry_size = struct.calcsize(entry_format)

    arches: list[list[int]] = []
    for index in range(count):
        fields = list(struct.unpack_from(entry_format, data, 8 + index * entry_size))
        slice_offset, slice_size = fields[2], fields[3]
        if slice_offset + slice_size > len(data):
            raise MachOFormatError(f"architecture {index} exceeds payload")
        arches.append(fields)

    slices: list[bytes] = []
    for fields in arches:
        chunk = bytes(data[fields[2] : fields[2] + fields[3]])
        slices.append(_strip_thin(chunk) if chunk[:4] in _THIN_MAGICS else chunk)

    cursor = 8 + count * entry_size
    body = bytearray()
    table = bytearray(data[:8])
    for fields, chunk in zip(arches, slices, strict=True):
        alignment = 1 << min(fields[4], 20)
        padded = _round_up(cursor, alignment)
        body += bytes(padded - cursor)
        fields[2], fields[3] = padded, len(chunk)
        table += struct.pack(entry_format, *fields)
        body += chunk
        cursor = padded + len(chunk)
    return bytes(table + body)


class SignatureStripper(Protocol):
    """Remove code signatures from a binary payload."""

    def strip(self, payload: bytes) -> bytes:
        """Return ``payload`` without its code signature."""


@dataclass(slots=True)
class MachOSignatureStripper:
    """Strip Mach-O code signatures entirely in memory.

    Payloads that are not Mach-O, or that cannot be parsed, are returned
    unchanged so the subsequent byte comparison reports their differences.
    """

    logger: ConsoleLogger = field(default_factory=default_logger)

    def strip(self, payload: bytes) -> bytes:
        """Return ``payload`` with its code signature removed.

        Args:
            payload: Binary contents of a thin or universal Mach-O image.

        Returns:
            bytes: Normalised contents, or ``payload`` when it is not Mach-O.
        """

        magic = bytes(payload[:4])
        try:
            if magic in _THIN_MAGICS:
                return _strip_thin(payload)
            if magic in _FAT_MAGICS:
                return _strip_fat(payload)
        except (struct.error, MachOFormatError) as exc:
            self.logger.debug(f"macho passthrough reason={exc.__class__.__name__} detail=\"{exc}\"")
        return payload


@dataclass(slots=True)
class CodesignStripper:
    """Strip signatures by running ``codesign --remove-signature`` on a scratch copy."""

    executable: str = "codesign"

    def strip(self, payload: bytes) -> bytes:
        """Return ``payload`` after ``codesign`` removed its signature.

        Args:
            payload: Binary contents to normalise.

        Returns:
            bytes: Contents of the scratch copy after signature removal.

        Raises:
            FairgroundError: If ``codesign`` is unavailable or fails.
        """

        if not is_macho(payload):
            return payload
        tool = shutil.which(self.executable)
        if tool is None:
            raise FairgroundError(f"{self.executable} is not available on PATH")
        with tempfile.TemporaryDirectory(prefix="fairground-codesign-") as scratch:
            target = Path(scratch) / "binary"
            target.write_bytes(payload)
            completed = subprocess.run(
                [tool, "--remove-signature", str(target)],
                capture_output=True,
                text=True,
                check=False,
            )
            if completed.returncode != 0:
                raise FairgroundError(
                    f"{self.executable} --remove-signature failed ({completed.returncode}): "
                    f"{completed.stderr.strip()}",
                )
            return target.read_bytes()


def build_stripper(name: StripperName, *, logger: ConsoleLogger | None = None) -> SignatureStripper:
    """Return the signature stripper registered under ``name``."""

    if name == "codesign":
        return CodesignStripper()
    return MachOSignatureStripper(logger=logger or default_logger())


__all__ = [
    "CodesignStripper",
    "LC_CODE_SIGNATURE",
    "MachOSignatureStripper",
    "SignatureStripper",
    "StripperName",
    "build_stripper",
    "is_macho",
]
