# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""App catalog models and their derived URLs."""

from __future__ import annotations

from enum import StrEnum
from typing import Final, TypeAlias

from pydantic import ConfigDict, Field

from ..catalog.naming import hyphenated, project_urls
from ..entitlements import AppPermission
from .base import LenientDateTime, WireModel


class FundingPlatform(StrEnum):
    """Funding services whose links are accepted in catalogs."""

    GITHUB = "GITHUB"
    PATREON = "PATREON"

    @property
    def url_prefixes(self) -> tuple[str, ...]:
        return _FUNDING_PREFIXES[self]


_FUNDING_PREFIXES: Final[dict[FundingPlatform, tuple[str, ...]]] = {
    FundingPlatform.GITHUB: ("https://github.com/",),
    FundingPlatform.PATREON: ("https://patreon.com/", "https://www.patreon.com/"),
}


class AppFundingLink(WireModel):
    """A funding link attached to a single app."""

    model_config = ConfigDict(frozen=True)

    platform: str
    url: str
    localized_title: str | None = None
    localized_description: str | None = None

    @property
    def funding_platform(self) -> FundingPlatform | None:
        try:
            return FundingPlatform(self.platform.upper())
        except ValueError:
            return None

    @property
    def is_valid(self) -> bool:
        """Return whether the link targets a supported platform at its own host."""

        platform = self.funding_platform
        return platform is not None and self.url.startswith(platform.url_prefixes)


class FundingGoal(WireModel):
    kind: str | None = None
    title: str | None = None
    description: str | None = None
    percent_complete: int | None = None
    target_value: int | None = None


class AppFundingSource(WireModel):
    """A catalog-wide funding source with optional goals."""

    platform: str
    url: str
    goals: list[FundingGoal] | None = None


class AppStats(WireModel):
    """Hub counters recorded for a catalog item."""

    download_count: int | None = None
    impression_count: int | None = None
    view_count: int | None = None
    star_count: int | None = None
    watcher_count: int | None = None
    fork_count: int | None = None
    issue_count: int | None = None
    core_size: int | None = None


class AppNewsPost(WireModel):
    """An announcement shown alongside the catalog."""

    identifier: str
    date: str
    title: str
    caption: str
    notify: bool | None = None
    tint_color: str | None = None
    url: str | None = None
    image_url: str | None = Field(default=None, alias="imageURL")
    app_id: str | None = Field(default=None, alias="appID")


class AppCatalogItem(WireModel):
    """A single released version of an app as listed in a catalog."""

    name: str
    bundle_identifier: str
    subtitle: str | None = None
    developer_name: str
    localized_description: str
    size: int
    version: str | None = None
    version_date: LenientDateTime | None = None
    download_url: str = Field(alias="downloadURL")
    icon_url: str | None = Field(default=None, alias="iconURL")
    screenshot_urls: list[str] | None = Field(default=None, alias="screenshotURLs")
    version_description: str | None = None
    tint_color: str | None = None
    beta: bool | None = None
    categories: list[str] | None = None
    sha256: str | None = None
    permissions: list[AppPermission] | None = None
    metadata_url: str | None = Field(default=None, alias="metadataURL")
    readme_url: str | None = Field(default=None, alias="readmeURL")
    release_notes_url: str | None = Field(default=None, alias="releaseNotesURL")
    homepage: str | None = None
    funding_links: list[AppFundingLink] | None = None
    stats: AppStats | None = None

    @property
    def app_name_hyphenated(self) -> str:
        return hyphenated(self.name)

    @property
    def landing_page(self) -> str:
        return project_urls(self.name).landing_page

    @property
    def project_url(self) -> str:
        return project_urls(self.name).project

    @property
    def issues_url(self) -> str:
        return project_urls(self.name).issues

    @property
    def discussions_url(self) -> str:
        return project_urls(self.name).discussions

    @property
    def releases_url(self) -> str:
        return project_urls(self.name).releases

    @property
    def fairseal_url(self) -> str | None:
        """Return the ``#sha256`` fragment URL identifying the sealed artifact."""

        if self.sha256 is None:
            return None
        return f"{self.download_url}#{self.sha256}"


class AppCatalog(WireModel):
    """A catalog of apps published through a hub organisation.

    ``localizations`` maps locale identifiers to either an inline catalog or
    the URL of a catalog document (see :data:`AppCatalogSource`).
    """

    name: str
    identifier: str
    localized_description: str | None = None
    platform: str | None = None
    homepage: str | None = None
    source_url: str | None = Field(default=None, alias="sourceURL")
    icon_url: str | None = Field(default=None, alias="iconURL")
    tint_color: str | None = None
    apps: list[AppCatalogItem] = Field(default_factory=list)
    news: list[AppNewsPost] | None = None
    funding_sources: list[AppFundingSource] | None = None
    base_locale: str | None = None
    localizations: dict[str, AppCatalog | str] | None = None


AppCatalogSource: TypeAlias = AppCatalog | str

AppCatalog.model_rebuild()

__all__ = [
    "AppCatalog",
    "AppCatalogItem",
    "AppCatalogSource",
    "AppFundingLink",
    "AppFundingSource",
    "AppNewsPost",
    "AppStats",
    "FundingGoal",
    "FundingPlatform",
]
