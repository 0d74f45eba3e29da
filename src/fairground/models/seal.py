# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""FairSeal attestation model."""

from __future__ import annotations

import json
from typing import Final
from urllib.parse import urlsplit

from pydantic import ConfigDict, Field

from ..entitlements import AppPermission
from .base import WireModel

FAIRSEAL_VERSION: Final[int] = 1


class Asset(WireModel):
    """A published release asset and its digest."""

    model_config = ConfigDict(frozen=True)

    url: str
    size: int
    sha256: str


class FairSeal(WireModel):
    """Attestation that a published artifact matches the trusted build.

    Seals are produced once by the verification pipeline and never mutated.
    ``coreSize`` is optional on the wire so that seals posted by older tools
    can still be read; freshly assembled seals always carry it.
    """

    model_config = ConfigDict(frozen=True)

    fairseal_version: int | None = Field(default=FAIRSEAL_VERSION, alias="fairsealVersion")
    assets: list[Asset] = Field(default_factory=list)
    permissions: list[AppPermission] | None = None
    core_size: int | None = Field(default=None, alias="coreSize")
    tint: str | None = None

    @property
    def app_org(self) -> str | None:
        """Return the hub organisation that published the first asset."""

        if not self.assets:
            return None
        parts = [part for part in urlsplit(self.assets[0].url).path.split("/") if part]
        return parts[0] if parts else None

    def checksums(self) -> dict[str, set[str]]:
        """Return the sealed SHA-256 digests keyed by asset URL."""

        sealed: dict[str, set[str]] = {}
        for asset in self.assets:
            sealed.setdefault(asset.url, set()).add(asset.sha256)
        return sealed

    def to_json(self, *, indent: int | None = 2) -> str:
        """Serialise the seal as sorted-key JSON without ``null`` members."""

        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(payload, indent=indent, sort_keys=True)


__all__ = ["Asset", "FAIRSEAL_VERSION", "FairSeal"]
