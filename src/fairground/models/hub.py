# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Result shapes returned by the project hub collaborator.

These mirror the fields of the hub's GraphQL responses that catalog assembly
consumes, flattened so that nested ``totalCount``/``nodes`` wrappers do not
leak into the builder.
"""

from __future__ import annotations

from pydantic import Field

from .base import LenientDateTime, WireModel


class HubOwner(WireModel):
    login: str
    email: str | None = None
    is_verified: bool | None = None
    website_url: str | None = None


class HubAsset(WireModel):
    name: str
    size: int = 0
    download_count: int = 0
    download_url: str


class HubCommitAuthor(WireModel):
    name: str | None = None
    email: str | None = None


class HubRelease(WireModel):
    """A tagged release and its assets."""

    tag_name: str
    name: str | None = None
    is_prerelease: bool = False
    is_draft: bool = False
    created_at: LenientDateTime | None = None
    description: str | None = None
    author: HubCommitAuthor | None = None
    assets: list[HubAsset] = Field(default_factory=list)

    def asset_named(self, name: str) -> HubAsset | None:
        return next((asset for asset in self.assets if asset.name == name), None)


class HubComment(WireModel):
    author: str | None = None
    body: str = ""


class HubFundingLink(WireModel):
    platform: str
    url: str


class HubFork(WireModel):
    """A fork of the base repository, one per published app."""

    name: str
    name_with_owner: str
    owner: HubOwner
    description: str | None = None
    homepage_url: str | None = None
    stargazer_count: int = 0
    watcher_count: int = 0
    fork_count: int = 0
    issue_count: int = 0
    topics: list[str] = Field(default_factory=list)
    releases: list[HubRelease] = Field(default_factory=list)
    comments: list[HubComment] = Field(default_factory=list)
    funding_links: list[HubFundingLink] = Field(default_factory=list)
    pushed_at: LenientDateTime | None = None


class HubForkPage(WireModel):
    forks: list[HubFork] = Field(default_factory=list)
    has_next_page: bool = False
    end_cursor: str | None = None


__all__ = [
    "HubAsset",
    "HubComment",
    "HubCommitAuthor",
    "HubFork",
    "HubForkPage",
    "HubFundingLink",
    "HubOwner",
    "HubRelease",
]
