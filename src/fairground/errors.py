# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Exception hierarchy shared by the verification and catalog pipelines."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from .diff import DiffResult

MAX_REPORTED_RANGES: Final[int] = 10


class FairgroundError(RuntimeError):
    """Base class for every failure surfaced by the fairground tooling."""


class ConfigError(FairgroundError):
    """Raised when configuration documents are malformed or inconsistent."""


class ArchiveOpenError(FairgroundError):
    """Raised when an artifact cannot be opened as a zip archive."""


class StructuralMismatchError(FairgroundError):
    """Raised when two archives do not share the same entry layout."""


class EntryCountMismatchError(StructuralMismatchError):
    """Raised when the trusted and untrusted archives list different entry counts."""

    def __init__(self, trusted: int, untrusted: int) -> None:
        super().__init__(
            f"Trusted and untrusted artifact content counts do not match ({trusted} vs. {untrusted})",
        )
        self.trusted = trusted
        self.untrusted = untrusted


class EntryPathMismatchError(StructuralMismatchError):
    """Raised when entries at the same position carry different paths."""

    def __init__(self, index: int, trusted: str, untrusted: str) -> None:
        super().__init__(
            f"Trusted and untrusted artifact content paths do not match at entry {index}: "
            f"{trusted!r} vs. {untrusted!r}",
        )
        self.index = index
        self.trusted = trusted
        self.untrusted = untrusted


class InvalidRootPathError(StructuralMismatchError):
    """Raised when an archive does not contain exactly one ``.app`` root."""

    def __init__(self, roots: set[str]) -> None:
        listing = ", ".join(sorted(roots)) or "<none>"
        super().__init__(f"Invalid root path in archive: {listing}")
        self.roots = frozenset(roots)


class ContentMismatchError(FairgroundError):
    """Raised when an entry's payloads differ beyond what is tolerated."""

    def __init__(self, path: str, diff: DiffResult, threshold: int | None) -> None:
        inserted = ", ".join(str(item) for item in diff.inserted_ranges[:MAX_REPORTED_RANGES])
        removed = ", ".join(str(item) for item in diff.removed_ranges[:MAX_REPORTED_RANGES])
        super().__init__(
            f"Trusted and untrusted artifact content mismatch at {path}: "
            f"{diff.insertions} insertions in {len(diff.inserted_ranges)} ranges [{inserted}] and "
            f"{diff.removals} removals in {len(diff.removed_ranges)} ranges [{removed}] "
            f"totalChanges {diff.total_changes} beyond permitted threshold: {threshold}",
        )
        self.path = path
        self.diff = diff
        self.threshold = threshold


class InvalidSealError(FairgroundError):
    """Raised when a seal cannot be assembled from a comparison result."""


class MissingPropertyListError(InvalidSealError):
    """Raised when the sealed archive carries no readable Info.plist."""


class MissingEntitlementsError(InvalidSealError):
    """Raised when no entitlements document is available for the sealed app."""


class DownloadError(FairgroundError):
    """Raised when an artifact cannot be downloaded."""

    def __init__(self, url: str, status_code: int | None = None, *, reason: str | None = None) -> None:
        details = [f"code: {status_code}"] if status_code is not None else []
        if reason:
            details.append(reason)
        super().__init__(f"Unable to download: {url} {' '.join(details) or 'no response'}")
        self.url = url
        self.status_code = status_code
        self.reason = reason


class HubError(FairgroundError):
    """Raised when the project hub cannot satisfy a request."""


class CatalogDeadlineError(HubError):
    """Raised when catalog assembly runs past its deadline."""


class CatalogIntegrityError(FairgroundError):
    """Raised when a catalog document cannot be parsed or validated."""


class EntitlementError(FairgroundError):
    """Base class for entitlement policy violations."""

    def __init__(self, message: str, *, entitlement: str) -> None:
        super().__init__(message)
        self.entitlement = entitlement


class SandboxRequiredError(EntitlementError):
    """Raised when an app does not opt in to the app sandbox."""


class ForbiddenEntitlementError(EntitlementError):
    """Raised when an app requests an entitlement that is never permitted."""


class MissingUsageDescriptionError(EntitlementError):
    """Raised when an entitlement lacks a non-blank usage description."""


__all__ = [
    "ArchiveOpenError",
    "CatalogDeadlineError",
    "CatalogIntegrityError",
    "ConfigError",
    "ContentMismatchError",
    "DownloadError",
    "EntitlementError",
    "EntryCountMismatchError",
    "EntryPathMismatchError",
    "FairgroundError",
    "ForbiddenEntitlementError",
    "HubError",
    "InvalidRootPathError",
    "InvalidSealError",
    "MissingEntitlementsError",
    "MAX_REPORTED_RANGES",
    "MissingPropertyListError",
    "MissingUsageDescriptionError",
    "SandboxRequiredError",
    "StructuralMismatchError",
]
