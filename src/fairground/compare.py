# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Lock-step comparison of a trusted and an untrusted application archive.

Both archives must enumerate the same entries in the same order. Entries with
equal CRC-32 checksums are accepted without decompression. Differing entries
are tolerated only when they are known non-deterministic build products, or
when they are app binaries whose signature-stripped payloads differ by fewer
bytes than the operator-supplied threshold.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from .archive import ArchiveEntry, ArchiveReader, is_signature_entry
from .diff import DEFAULT_EDIT_LIMIT, DiffResult, diff_bytes
from .errors import (
    ContentMismatchError,
    EntryCountMismatchError,
    EntryPathMismatchError,
    InvalidRootPathError,
)
from .logging import ConsoleLogger, default_logger
from .macho import MachOSignatureStripper, SignatureStripper, is_macho
from .plist import PropertyList, PropertyListError

PAYLOAD_FOLDER: Final[str] = "Payload"
APP_SUFFIX: Final[str] = ".app"
SIGNATURE_FOLDER: Final[str] = "_CodeSignature"
TOLERATED_SUFFIXES: Final[tuple[str, ...]] = (".car", ".nib")
TOLERATED_PARENT_SUFFIXES: Final[tuple[str, ...]] = (".storyboardc",)


class Platform(StrEnum):
    """Archive layouts understood by the comparator."""

    MACOS = "macos"
    IOS = "ios"

    def executable_path(self, app_name: str) -> str:
        if self is Platform.IOS:
            return f"{PAYLOAD_FOLDER}/{app_name}{APP_SUFFIX}/{app_name}"
        return f"{app_name}{APP_SUFFIX}/Contents/MacOS/{app_name}"

    def info_plist_path(self, app_name: str) -> str:
        if self is Platform.IOS:
            return f"{PAYLOAD_FOLDER}/{app_name}{APP_SUFFIX}/Info.plist"
        return f"{app_name}{APP_SUFFIX}/Contents/Info.plist"


@dataclass(frozen=True, slots=True)
class EntryDifference:
    """A non-zero difference that was tolerated under the threshold."""

    path: str
    diff: DiffResult


@dataclass(frozen=True, slots=True)
class FairSealDraft:
    """Result of a successful comparison, before assets are hashed.

    Attributes:
        app_name: Name of the ``.app`` bundle, without its extension.
        platform: Archive layout detected from the entry paths.
        core_size: Uncompressed size of the main executable, ``None`` when the
            archive does not contain one.
        info_properties: Parsed Info.plist of the trusted archive, if present.
        differences: App binary differences tolerated under the threshold.
        tolerated_paths: Entries whose differences were accepted unconditionally.
        compared_entries: Number of entry pairs walked.
    """

    app_name: str
    platform: Platform
    core_size: int | None = None
    info_properties: PropertyList | None = None
    differences: tuple[EntryDifference, ...] = ()
    tolerated_paths: tuple[str, ...] = ()
    compared_entries: int = 0


def is_tolerated_path(path: str) -> bool:
    """Return whether differences in ``path`` are accepted without inspection.

    Args:
        path: Archive member path.

    Returns:
        bool: ``True`` for signature directory members, compiled asset
        catalogs and compiled interface files.
    """

    parts = [part for part in path.split("/") if part]
    if not parts:
        return False
    parents = parts[:-1]
    if SIGNATURE_FOLDER in parents:
        return True
    if parts[-1].endswith(TOLERATED_SUFFIXES):
        return True
    return any(parent.endswith(TOLERATED_PARENT_SUFFIXES) for parent in parents)


def resolve_root(entries: tuple[ArchiveEntry, ...]) -> tuple[str, Platform]:
    """Return the app name and platform implied by the archive's root folder.

    Args:
        entries: Entries of the archive being inspected.

    Returns:
        tuple[str, Platform]: Bundle name without ``.app`` and the detected layout.

    Raises:
        InvalidRootPathError: If the entries do not share exactly one ``.app`` root.
    """

    roots: set[str] = set()
    payload = False
    for entry in entries:
        components = list(entry.components)
        while components and components[0] == PAYLOAD_FOLDER:
            payload = True
            components.pop(0)
        if components:
            roots.add(components[0])
    if len(roots) != 1:
        raise InvalidRootPathError(roots)
    (root,) = roots
    if not root.endswith(APP_SUFFIX):
        raise InvalidRootPathError(roots)
    return root[: -len(APP_SUFFIX)], Platform.IOS if payload else Platform.MACOS


@dataclass(slots=True)
class ArchiveComparator:
    """Compare two archives entry by entry and produce a :class:`FairSealDraft`."""

    stripper: SignatureStripper | None = None
    logger: ConsoleLogger = field(default_factory=default_logger)
    diff_limit: int = DEFAULT_EDIT_LIMIT

    def __post_init__(self) -> None:
        if self.stripper is None:
            self.stripper = MachOSignatureStripper(logger=self.logger)

    def compare(
        self,
        trusted: ArchiveReader,
        untrusted: ArchiveReader,
        threshold: int | None = None,
    ) -> FairSealDraft:
        """Walk both archives in lock step.

        Args:
            trusted: Reader over the build produced by the trusted pipeline.
            untrusted: Reader over the build published by the developer.
            threshold: Exclusive upper bound on the number of byte changes
                tolerated in app binaries; ``None`` tolerates none.

        Returns:
            FairSealDraft: Summary of the accepted comparison.

        Raises:
            EntryCountMismatchError: If the archives list different entry counts.
            InvalidRootPathError: If the archives lack a single ``.app`` root.
            EntryPathMismatchError: If entries at the same position differ in path.
            ContentMismatchError: If payloads differ beyond what is tolerated.
        """

        trusted_entries = tuple(item for item in trusted.entries() if not is_signature_entry(item.path))
        untrusted_entries = tuple(item for item in untrusted.entries() if not is_signature_entry(item.path))
        if len(trusted_entries) != len(untrusted_entries):
            raise EntryCountMismatchError(len(trusted_entries), len(untrusted_entries))

        app_name, platform = resolve_root(trusted_entries)
        executable_path = platform.executable_path(app_name)
        info_plist_path = platform.info_plist_path(app_name)
        self.logger.debug(
            f"comparing entries={len(trusted_entries)} app={app_name} platform={platform.value} "
            f"threshold={threshold}",
        )

        core_size: int | None = None
        info_properties: PropertyList | None = None
        differences: list[EntryDifference] = []
        tolerated: list[str] = []

        for index, (trusted_entry, untrusted_entry) in enumerate(
            zip(trusted_entries, untrusted_entries, strict=True),
        ):
            if trusted_entry.path != untrusted_entry.path:
                raise EntryPathMismatchError(index, trusted_entry.path, untrusted_entry.path)
            path = trusted_entry.path
            is_executable = path == executable_path

            trusted_payload: bytes | None = None
            if is_executable:
                core_size = trusted_entry.uncompressed_size
            elif path == info_plist_path:
                trusted_payload = trusted.extract(trusted_entry)
                try:
                    info_properties = PropertyList.loads(trusted_payload)
                except PropertyListError as exc:
                    self.logger.warn(f"{path}: {exc}")

            if trusted_entry.checksum == untrusted_entry.checksum:
                continue
            if is_tolerated_path(path):
                self.logger.debug(f"tolerating path={path}")
                tolerated.append(path)
                continue

            if trusted_payload is None:
                trusted_payload = trusted.extract(trusted_entry)
            untrusted_payload = untrusted.extract(untrusted_entry)
            is_app_binary = is_executable or is_macho(trusted_payload)
            if is_app_binary and self.stripper is not None:
                trusted_payload = self.stripper.strip(trusted_payload)
                untrusted_payload = self.stripper.strip(untrusted_payload)
            if trusted_payload == untrusted_payload:
                continue

            # reaching the threshold already fails, so the search need not go further
            limit = self.diff_limit if threshold is None else threshold
            diff = diff_bytes(untrusted_payload, trusted_payload, limit=limit)
            if diff.is_empty:
                continue
            if is_app_binary and threshold is not None and diff.total_changes < threshold:
                self.logger.warn(
                    f"tolerating {diff.total_changes} byte changes in {path} "
                    f"(threshold {threshold})",
                )
                differences.append(EntryDifference(path=path, diff=diff))
                continue
            raise ContentMismatchError(path, diff, threshold)

        return FairSealDraft(
            app_name=app_name,
            platform=platform,
            core_size=core_size,
            info_properties=info_properties,
            differences=tuple(differences),
            tolerated_paths=tuple(tolerated),
            compared_entries=len(trusted_entries),
        )


__all__ = [
    "ArchiveComparator",
    "EntryDifference",
    "FairSealDraft",
    "Platform",
    "is_tolerated_path",
    "resolve_root",
]
