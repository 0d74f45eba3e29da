# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""FairSeal assembly: asset hashing, tint resolution and the end-to-end run."""

from __future__ import annotations

import hashlib
import re
import shutil
import tempfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .archive import ArchiveReader
from .compare import ArchiveComparator, FairSealDraft, Platform
from .entitlements import AppPermission, EntitlementValidator
from .errors import (
    FairgroundError,
    InvalidSealError,
    MissingEntitlementsError,
    MissingPropertyListError,
)
from .fetch import DEFAULT_RETRY_WAIT, ArtifactFetcher, artifact_name
from .logging import ConsoleLogger, default_logger
from .models.seal import Asset, FairSeal
from .plist import PropertyList

TINT_SETTING: Final[str] = "ICON_TINT"
_HEX_COLOR_RE: Final[re.Pattern[str]] = re.compile(r"^#?([0-9A-Fa-f]{6})$")
_HASH_CHUNK: Final[int] = 1 << 20
DEFAULT_ENTITLEMENTS: Final[dict[Platform, str]] = {
    Platform.MACOS: "sandbox-macos.entitlements",
    Platform.IOS: "sandbox-ios.entitlements",
}


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of ``path``."""

    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_HASH_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _url_folder(artifact_url: str) -> str:
    return artifact_url.rsplit("/", 1)[0] + "/"


def hash_staging_assets(
    staging_dirs: Iterable[Path],
    *,
    artifact_url: str,
    downloaded_artifact: Path,
) -> list[Asset]:
    """Hash every file staged for release next to the artifact.

    Files are published in the same folder as the artifact, so their URLs are
    the artifact URL's parent plus the file name. The staged copy of the
    artifact itself is not trusted: its digest and size come from the
    downloaded artifact instead.

    Args:
        staging_dirs: Folders holding the release assets.
        artifact_url: Public URL of the untrusted artifact.
        downloaded_artifact: Local copy of the artifact fetched from ``artifact_url``.

    Returns:
        list[Asset]: One asset per staged file, folder by folder, sorted by name.
    """

    folder_url = _url_folder(artifact_url)
    published_name = artifact_name(artifact_url)
    assets: list[Asset] = []
    for staging in staging_dirs:
        for path in sorted(Path(staging).iterdir(), key=lambda item: item.name):
            if not path.is_file():
                continue
            source = downloaded_artifact if path.name == published_name else path
            assets.append(
                Asset(url=folder_url + path.name, size=source.stat().st_size, sha256=sha256_file(source)),
            )
    return assets


def parse_build_settings(path: Path) -> dict[str, str]:
    """Parse an xcconfig-style ``KEY = VALUE`` file, ignoring ``//`` comments."""

    settings: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.split("//", 1)[0].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        settings[key.strip()] = value.strip()
    return settings


def normalize_tint(value: str) -> str:
    """Return ``value`` as six upper-case hex digits.

    Raises:
        InvalidSealError: If ``value`` is not a ``RRGGBB`` hex colour.
    """

    match = _HEX_COLOR_RE.match(value.strip())
    if match is None:
        raise InvalidSealError(f"Invalid tint color: {value!r}")
    return match.group(1).upper()


def resolve_tint(tint: str | None = None, build_settings: Path | None = None) -> str | None:
    """Return the seal tint from an explicit value or the ``ICON_TINT`` build setting."""

    if tint:
        return normalize_tint(tint)
    if build_settings is not None:
        configured = parse_build_settings(build_settings).get(TINT_SETTING)
        if configured:
            return normalize_tint(configured)
    return None


def assemble_fairseal(
    draft: FairSealDraft,
    *,
    assets: Sequence[Asset],
    permissions: Sequence[AppPermission],
    tint: str | None = None,
) -> FairSeal:
    """Combine a comparison result with hashed assets into a seal.

    Raises:
        InvalidSealError: If the comparison never observed the main executable.
    """

    if draft.core_size is None:
        raise InvalidSealError(
            f"Archive for {draft.app_name} does not contain the main executable "
            f"{draft.platform.executable_path(draft.app_name)}",
        )
    return FairSeal(
        assets=list(assets),
        permissions=list(permissions),
        core_size=draft.core_size,
        tint=tint,
    )


@dataclass(slots=True)
class FairsealRequest:
    """Inputs of a single fairseal run.

    Attributes:
        trusted_artifact: Local archive produced by the trusted build.
        untrusted_artifact: Local copy of the published archive. When it does
            not exist yet and ``artifact_url`` is set, the download lands here.
        artifact_url: Public URL of the published archive.
        fairseal_match: Exclusive byte-change threshold for app binaries.
        retry_duration: Seconds during which downloads are retried.
        retry_wait: Seconds between download attempts.
        artifact_staging: Folders whose files are published with the artifact.
        entitlements: Entitlements document of the app; defaults to the
            platform's document under ``project_root``.
        project_root: Project folder holding ``sandbox-macos.entitlements``
            and ``sandbox-ios.entitlements``.
        tint: Explicit tint colour.
        build_settings: xcconfig file consulted for ``ICON_TINT``.
    """

    trusted_artifact: Path
    untrusted_artifact: Path | None = None
    artifact_url: str | None = None
    fairseal_match: int | None = None
    retry_duration: float = 0.0
    retry_wait: float = DEFAULT_RETRY_WAIT
    artifact_staging: list[Path] = field(default_factory=list)
    entitlements: Path | None = None
    project_root: Path | None = None
    tint: str | None = None
    build_settings: Path | None = None


@dataclass(slots=True)
class FairsealRunner:
    """Verify a published artifact against its trusted build and emit a seal."""

    fetcher: ArtifactFetcher
    comparator: ArchiveComparator
    validator: EntitlementValidator = field(default_factory=EntitlementValidator)
    logger: ConsoleLogger = field(default_factory=default_logger)

    def run(self, request: FairsealRequest) -> FairSeal:
        """Execute the full verification for ``request``.

        Returns:
            FairSeal: The assembled attestation.

        Raises:
            FairgroundError: For any structural, content, policy or download failure.
        """

        with tempfile.TemporaryDirectory(prefix="fairground-seal-") as scratch:
            untrusted_path = self._untrusted_artifact(request, Path(scratch))
            if untrusted_path.resolve() == request.trusted_artifact.resolve():
                raise FairgroundError("Trusted and untrusted artifacts must be different files")

            with (
                ArchiveReader.open(request.trusted_artifact) as trusted,
                ArchiveReader.open(untrusted_path) as untrusted,
            ):
                draft = self.comparator.compare(trusted, untrusted, request.fairseal_match)
            self.logger.ok(
                f"{draft.compared_entries} entries of {draft.app_name} match "
                f"({len(draft.differences)} tolerated binary differences)",
            )

            assets: list[Asset] = []
            if request.artifact_staging:
                artifact_url = request.artifact_url or untrusted_path.resolve().as_uri()
                assets = hash_staging_assets(
                    request.artifact_staging,
                    artifact_url=artifact_url,
                    downloaded_artifact=untrusted_path,
                )

            if draft.info_properties is None:
                raise MissingPropertyListError(f"Missing property list in archive for {draft.app_name}")
            permissions = self.validator.validate(
                PropertyList.load(self._entitlements_document(request, draft)),
                draft.info_properties,
                app_name=draft.app_name,
                require_sandbox=draft.platform is Platform.MACOS,
            )
            for permission in permissions:
                self.logger.info(
                    f"entitlement: {permission.type.entitlement_key} usage: {permission.usage_description}",
                )

            tint = resolve_tint(request.tint, request.build_settings)
            return assemble_fairseal(draft, assets=assets, permissions=permissions, tint=tint)

    def _untrusted_artifact(self, request: FairsealRequest, scratch: Path) -> Path:
        target = request.untrusted_artifact
        if target is not None and (target.exists() or request.artifact_url is None):
            return target
        if request.artifact_url is None:
            raise FairgroundError("Either an untrusted artifact or an artifact URL is required")
        downloaded = self.fetcher.fetch(
            request.artifact_url,
            request.retry_duration,
            request.retry_wait,
            destination=scratch,
        )
        if target is None:
            return downloaded
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(downloaded, target)
        self.logger.info(f"saved {request.artifact_url} to {target}")
        return target

    @staticmethod
    def _entitlements_document(request: FairsealRequest, draft: FairSealDraft) -> Path:
        if request.entitlements is not None:
            return request.entitlements
        if request.project_root is None:
            raise MissingEntitlementsError(
                f"No entitlements document for {draft.app_name}: pass one or the project root",
            )
        path = request.project_root / DEFAULT_ENTITLEMENTS[draft.platform]
        if not path.is_file():
            raise MissingEntitlementsError(f"Missing entitlements document: {path}")
        return path


__all__ = [
    "DEFAULT_ENTITLEMENTS",
    "FairsealRequest",
    "FairsealRunner",
    "assemble_fairseal",
    "hash_staging_assets",
    "normalize_tint",
    "parse_build_settings",
    "resolve_tint",
    "sha256_file",
]
