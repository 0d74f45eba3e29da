# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Serialisable models for seals, catalogs and hub results."""

from __future__ import annotations

from .base import LenientDateTime, WireModel, format_datetime, parse_lenient_datetime
from .catalog import (
    AppCatalog,
    AppCatalogItem,
    AppCatalogSource,
    AppFundingLink,
    AppFundingSource,
    AppNewsPost,
    AppStats,
    FundingGoal,
    FundingPlatform,
)
from .hub import (
    HubAsset,
    HubComment,
    HubCommitAuthor,
    HubFork,
    HubForkPage,
    HubFundingLink,
    HubOwner,
    HubRelease,
)
from .seal import Asset, FairSeal

__all__ = [
    "AppCatalog",
    "AppCatalogItem",
    "AppCatalogSource",
    "AppFundingLink",
    "AppFundingSource",
    "AppNewsPost",
    "AppStats",
    "Asset",
    "FairSeal",
    "FundingGoal",
    "FundingPlatform",
    "HubAsset",
    "HubComment",
    "HubCommitAuthor",
    "HubFork",
    "HubForkPage",
    "HubFundingLink",
    "HubOwner",
    "HubRelease",
    "LenientDateTime",
    "WireModel",
    "format_datetime",
    "parse_lenient_datetime",
]
