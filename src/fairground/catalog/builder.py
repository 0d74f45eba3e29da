# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Assemble an :class:`AppCatalog` from the forks published on the hub.

Each fork of the base repository is one app, named after the organisation
that owns it. For every fork the newest releases are inspected; a release is
listed only when it carries the expected assets and, when seal checking is
enabled, when the fairseal issuer attested to the digests of its artifact,
metadata and README.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from pydantic import ValidationError

from ..entitlements import AppPermission, EntitlementValidator
from ..errors import CatalogDeadlineError, EntitlementError
from ..hub import HubClient
from ..logging import ConsoleLogger, default_logger
from ..models.catalog import AppCatalog, AppCatalogItem, AppFundingLink, AppStats
from ..models.hub import HubAsset, HubFork, HubRelease
from ..models.seal import FairSeal
from .naming import (
    BASE_REPOSITORY,
    AppVersion,
    categories_for_topics,
    dehyphenated,
    is_valid_email,
    validate_app_name,
)

INFO_PLIST_ASSET: Final[str] = "Info.plist"
README_ASSET: Final[str] = "README.md"
RELEASE_NOTES_ASSET: Final[str] = "RELEASE_NOTES.md"
SCREENSHOT_PREFIX: Final[str] = "screenshot"
SCREENSHOT_SUFFIXES: Final[tuple[str, ...]] = (".png", ".jpg")
BUNDLE_PREFIX: Final[str] = "app."


class ArtifactTarget(StrEnum):
    """Platforms a catalog can be built for."""

    MACOS = "macos"
    IOS = "ios"

    @property
    def artifact_type(self) -> str:
        return ".ipa" if self is ArtifactTarget.IOS else ".zip"

    @property
    def devices(self) -> tuple[str, ...]:
        return ("iphone", "ipad") if self is ArtifactTarget.IOS else ("mac",)


@dataclass(frozen=True, slots=True)
class ArtifactFilter:
    """Selects the release asset that is the installable artifact."""

    target: ArtifactTarget = ArtifactTarget.MACOS
    extension: str | None = None

    @property
    def artifact_type(self) -> str:
        return self.extension or self.target.artifact_type

    def matches(self, asset_name: str) -> bool:
        return asset_name.endswith(self.artifact_type)


def parse_seal_comment(body: str) -> FairSeal | None:
    """Decode a seal posted as a fenced JSON comment, ``None`` when it is not one."""

    text = body.strip().strip("`").strip()
    if not text.startswith("{"):
        return None
    try:
        return FairSeal.model_validate_json(text)
    except ValidationError:
        return None


def issued_seals(fork: HubFork, issuer: str) -> list[FairSeal]:
    """Return the seals the issuer commented on the fork's pull requests."""

    seals: list[FairSeal] = []
    for comment in fork.comments:
        if comment.author != issuer:
            continue
        if (seal := parse_seal_comment(comment.body)) is not None:
            seals.append(seal)
    return seals


def collect_seals(seals: Iterable[FairSeal]) -> dict[str, set[str]]:
    """Return the sealed digests keyed by asset URL."""

    sealed: dict[str, set[str]] = {}
    for seal in seals:
        for url, digests in seal.checksums().items():
            sealed.setdefault(url, set()).update(digests)
    return sealed


def unique_funding_links(links: Iterable[AppFundingLink]) -> list[AppFundingLink]:
    """Return valid links in their original order, keeping the first per URL."""

    seen: set[str] = set()
    unique: list[AppFundingLink] = []
    for link in links:
        if not link.is_valid or link.url in seen:
            continue
        seen.add(link.url)
        unique.append(link)
    return unique


def _with_digest(url: str, digest: str | None) -> str:
    return f"{url}#{digest}" if digest else url


def _first_digest(sealed: Mapping[str, set[str]], url: str) -> str | None:
    digests = sealed.get(url)
    return min(digests) if digests else None


@dataclass(slots=True)
class CatalogBuilder:
    """Build catalogs from hub fork listings."""

    hub: HubClient
    fairseal_issuer: str
    validator: EntitlementValidator = field(default_factory=EntitlementValidator)
    logger: ConsoleLogger = field(default_factory=default_logger)
    clock: Callable[[], float] = time.monotonic

    def build(
        self,
        owner: str,
        fairseal_check: bool,
        artifact_filter: ArtifactFilter,
        request_limit: int | None = None,
        *,
        title: str | None = None,
        base_repository: str = BASE_REPOSITORY,
        source_url: str | None = None,
        deadline: float | None = None,
    ) -> AppCatalog:
        """Return the catalog of apps published as forks of ``owner/base_repository``.

        Args:
            owner: Hub organisation owning the base repository.
            fairseal_check: Whether releases must be sealed to be listed.
            artifact_filter: Selects the installable asset of each release.
            request_limit: Upper bound on hub requests.
            title: Catalog display name; defaults to ``owner``.
            base_repository: Name of the repository apps fork.
            source_url: Public URL where the catalog will be published.
            deadline: Seconds after which assembly is aborted between pages.

        Returns:
            AppCatalog: Catalog with apps sorted by bundle identifier.

        Raises:
            HubError: If the hub cannot be queried.
            CatalogDeadlineError: If ``deadline`` elapses.
        """

        started = self.clock()
        apps: list[AppCatalogItem] = []
        for page in self.hub.fork_pages(owner, base_repository, request_limit=request_limit):
            if deadline is not None and self.clock() - started > deadline:
                raise CatalogDeadlineError(f"Catalog assembly exceeded its deadline of {deadline:g}s")
            for fork in page.forks:
                apps.extend(self.items_for_fork(fork, fairseal_check=fairseal_check, artifact_filter=artifact_filter))
        apps.sort(key=lambda item: item.bundle_identifier)
        self.logger.info(f"catalog {owner} lists {len(apps)} app versions")
        return AppCatalog(
            name=title or owner,
            identifier=owner,
            platform=artifact_filter.target.value,
            source_url=source_url,
            apps=apps,
        )

    def items_for_fork(
        self,
        fork: HubFork,
        *,
        fairseal_check: bool,
        artifact_filter: ArtifactFilter,
    ) -> list[AppCatalogItem]:
        """Return at most one stable and one prerelease item for ``fork``."""

        app_id = fork.owner.login
        if reason := validate_app_name(app_id):
            self.logger.debug(f"skip fork={fork.name_with_owner} reason=\"{reason}\"")
            return []

        issued = issued_seals(fork, self.fairseal_issuer)
        sealed = collect_seals(issued)
        seals: dict[str, FairSeal] = {}
        for seal in issued:
            for asset in seal.assets:
                seals.setdefault(asset.url, seal)
        funding = unique_funding_links(
            AppFundingLink(platform=link.platform, url=link.url) for link in fork.funding_links
        )
        categories = categories_for_topics(fork.topics)

        items: list[AppCatalogItem] = []
        have_beta = False
        for release in fork.releases:
            if release.is_draft or (release.is_prerelease and have_beta):
                continue
            item = self._item_for_release(
                fork,
                release,
                sealed=sealed,
                seals=seals,
                fairseal_check=fairseal_check,
                artifact_filter=artifact_filter,
                funding=funding,
                categories=categories,
            )
            if item is None:
                continue
            items.append(item)
            if release.is_prerelease:
                have_beta = True
            else:
                break
        return items

    def _item_for_release(
        self,
        fork: HubFork,
        release: HubRelease,
        *,
        sealed: Mapping[str, set[str]],
        seals: Mapping[str, FairSeal],
        fairseal_check: bool,
        artifact_filter: ArtifactFilter,
        funding: list[AppFundingLink],
        categories: list[str],
    ) -> AppCatalogItem | None:
        app_id = fork.owner.login
        context = f"fork={fork.name_with_owner} tag={release.tag_name}"

        version = AppVersion.parse(release.tag_name, prerelease=release.is_prerelease)
        if version is None:
            self.logger.debug(f"skip {context} reason=\"invalid version tag\"")
            return None
        author = release.author
        if author is None or author.email is None or not is_valid_email(author.email):
            self.logger.debug(f"skip {context} reason=\"missing or invalid author email\"")
            return None
        developer_name = f"{author.name} <{author.email}>" if author.name else author.email

        artifact = next((asset for asset in release.assets if artifact_filter.matches(asset.name)), None)
        metadata = release.asset_named(INFO_PLIST_ASSET)
        readme = release.asset_named(README_ASSET)
        icon = release.asset_named(f"{app_id}.png")
        if artifact is None or metadata is None or readme is None or icon is None:
            self.logger.debug(f"skip {context} reason=\"missing release assets\"")
            return None
        release_notes = release.asset_named(RELEASE_NOTES_ASSET)

        artifact_digest = _first_digest(sealed, artifact.download_url)
        metadata_digest = _first_digest(sealed, metadata.download_url)
        readme_digest = _first_digest(sealed, readme.download_url)
        if fairseal_check and (artifact_digest is None or metadata_digest is None or readme_digest is None):
            self.logger.debug(f"skip {context} reason=\"unsealed\"")
            return None

        seal = seals.get(artifact.download_url)
        try:
            permissions = self._permissions(seal)
        except EntitlementError as exc:
            self.logger.warn(f"excluding {fork.name_with_owner} {release.tag_name}: {exc}")
            return None

        return AppCatalogItem(
            name=dehyphenated(app_id),
            bundle_identifier=BUNDLE_PREFIX + app_id,
            subtitle=fork.description,
            developer_name=developer_name,
            localized_description=fork.description or "",
            size=artifact.size,
            version=str(version),
            version_date=release.created_at,
            download_url=artifact.download_url,
            icon_url=icon.download_url,
            screenshot_urls=self._screenshots(release.assets, sealed, artifact_filter) or None,
            version_description=release.description,
            tint_color=seal.tint if seal is not None else None,
            beta=release.is_prerelease,
            categories=categories or None,
            sha256=artifact_digest,
            permissions=permissions,
            metadata_url=_with_digest(metadata.download_url, metadata_digest),
            readme_url=_with_digest(readme.download_url, readme_digest),
            release_notes_url=release_notes.download_url if release_notes is not None else None,
            homepage=fork.homepage_url or f"https://{app_id}.github.io/{fork.name}/",
            funding_links=funding or None,
            stats=AppStats(
                download_count=artifact.download_count,
                impression_count=icon.download_count,
                view_count=readme.download_count,
                star_count=fork.stargazer_count,
                watcher_count=fork.watcher_count,
                issue_count=fork.issue_count,
                core_size=seal.core_size if seal is not None else None,
            ),
        )

    def _permissions(self, seal: FairSeal | None) -> list[AppPermission] | None:
        if seal is not None and seal.permissions is not None:
            return self.validator.validate_permissions(seal.permissions)
        return None

    @staticmethod
    def _screenshots(
        assets: Iterable[HubAsset],
        sealed: Mapping[str, set[str]],
        artifact_filter: ArtifactFilter,
    ) -> list[str]:
        urls: list[str] = []
        for asset in assets:
            name = asset.name
            if not name.startswith(SCREENSHOT_PREFIX) or not name.endswith(SCREENSHOT_SUFFIXES):
                continue
            if not any(f"-{device}-" in name for device in artifact_filter.target.devices):
                continue
            urls.append(_with_digest(asset.download_url, _first_digest(sealed, asset.download_url)))
        return urls


__all__ = [
    "ArtifactFilter",
    "ArtifactTarget",
    "CatalogBuilder",
    "collect_seals",
    "issued_seals",
    "parse_seal_comment",
    "unique_funding_links",
]
