# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models for the fairground tool."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..catalog.builder import ArtifactTarget
from ..catalog.cask import DEFAULT_CATALOG_APP_ORG
from ..catalog.naming import BASE_REPOSITORY
from ..diff import DEFAULT_EDIT_LIMIT
from ..entitlements import DEFAULT_CATALOG_APP_NAMES
from ..fetch import DEFAULT_RETRY_WAIT, DEFAULT_TIMEOUT
from ..hub import DEFAULT_ENDPOINT


class SealConfig(BaseModel):
    """Settings applied when verifying artifacts and emitting seals."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    retry_duration: float = Field(default=0.0, ge=0)
    retry_wait: float = Field(default=DEFAULT_RETRY_WAIT, ge=0)
    fairseal_match: int | None = Field(default=None, ge=0)
    artifact_staging: list[Path] = Field(default_factory=list)
    signature_stripper: Literal["builtin", "codesign"] = "builtin"
    diff_limit: int = Field(default=DEFAULT_EDIT_LIMIT, gt=0)
    entitlements: Path | None = None


class CatalogConfig(BaseModel):
    """Settings applied when assembling catalogs and casks."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    owner: str | None = None
    base_repository: str = BASE_REPOSITORY
    title: str | None = None
    source_url: str | None = None
    target: ArtifactTarget = ArtifactTarget.MACOS
    artifact_extension: str | None = None
    fairseal_check: bool = True
    fairseal_issuer: str | None = None
    request_limit: int | None = Field(default=None, gt=0)
    deadline: float | None = Field(default=None, gt=0)
    catalog_app_names: list[str] = Field(default_factory=lambda: list(DEFAULT_CATALOG_APP_NAMES))
    catalog_app_org: str = DEFAULT_CATALOG_APP_ORG
    prerelease_suffix: str | None = "-prerelease"
    cask_folder: Path | None = None


class HubConfig(BaseModel):
    """Connection settings for the project hub."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    endpoint: str = DEFAULT_ENDPOINT
    token_env: str = "GITHUB_TOKEN"
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    @field_validator("endpoint")
    @classmethod
    def _require_http(cls, value: str) -> str:
        if not value.startswith(("https://", "http://")):
            raise ValueError("endpoint must be an http(s) URL")
        return value


class FairgroundConfig(BaseModel):
    """Top-level configuration merged from defaults and TOML documents."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    seal: SealConfig = Field(default_factory=SealConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    hub: HubConfig = Field(default_factory=HubConfig)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain mapping suitable for merging with TOML fragments."""

        return self.model_dump(mode="python")


__all__ = ["CatalogConfig", "FairgroundConfig", "HubConfig", "SealConfig"]
