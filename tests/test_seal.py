# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for seal assembly and the end-to-end fairseal run."""

from __future__ import annotations

import hashlib
import json
import plistlib
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from fairground.compare import ArchiveComparator, FairSealDraft, Platform
from fairground.entitlements import AppEntitlement
from fairground.errors import (
    ContentMismatchError,
    FairgroundError,
    InvalidSealError,
    MissingEntitlementsError,
    MissingPropertyListError,
    MissingUsageDescriptionError,
)
from fairground.fetch import ArtifactFetcher
from fairground.logging import ConsoleLogger
from fairground.models.seal import Asset, FairSeal
from fairground.seal import (
    FairsealRequest,
    FairsealRunner,
    assemble_fairseal,
    hash_staging_assets,
    normalize_tint,
    parse_build_settings,
    resolve_tint,
)

from tests.helpers.archives import info_plist, mac_app_entries, write_zip

ARTIFACT_URL = "https://github.com/App-Name/App/releases/download/1.0.0/App-Name-macOS.zip"
EXECUTABLE = bytes(range(100))


def _digest(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def test_hash_staging_assets_uses_downloaded_artifact(tmp_path: Path) -> None:
    staging = tmp_path / "staging"
    staging.mkdir()
    (staging / "README.md").write_bytes(b"readme")
    (staging / "App-Name-macOS.zip").write_bytes(b"locally rebuilt")
    (staging / "nested").mkdir()
    downloaded = tmp_path / "download.zip"
    downloaded.write_bytes(b"published artifact")

    assets = hash_staging_assets([staging], artifact_url=ARTIFACT_URL, downloaded_artifact=downloaded)

    folder = ARTIFACT_URL.rsplit("/", 1)[0]
    assert assets == [
        Asset(url=f"{folder}/App-Name-macOS.zip", size=len(b"published artifact"), sha256=_digest(b"published artifact")),
        Asset(url=f"{folder}/README.md", size=6, sha256=_digest(b"readme")),
    ]


def test_build_settings_parsing(tmp_path: Path) -> None:
    settings = tmp_path / "Info.xcconfig"
    settings.write_text("// comment\nICON_TINT = #a1b2c3 // trailing\nPRODUCT_NAME = App\n\n", encoding="utf-8")

    assert parse_build_settings(settings) == {"ICON_TINT": "#a1b2c3", "PRODUCT_NAME": "App"}
    assert resolve_tint(None, settings) == "A1B2C3"
    assert resolve_tint("00ff00", settings) == "00FF00"
    assert resolve_tint() is None


def test_invalid_tint_is_rejected() -> None:
    with pytest.raises(InvalidSealError):
        normalize_tint("red")


def test_assemble_requires_core_size() -> None:
    draft = FairSealDraft(app_name="App", platform=Platform.MACOS)

    with pytest.raises(InvalidSealError, match="main executable"):
        assemble_fairseal(draft, assets=[], permissions=[])


def test_assembled_seal_serialises_camel_case() -> None:
    draft = FairSealDraft(app_name="App", platform=Platform.MACOS, core_size=100)
    asset = Asset(url=ARTIFACT_URL, size=3, sha256="abc")

    seal = assemble_fairseal(draft, assets=[asset], permissions=[], tint="FF0000")
    payload = json.loads(seal.to_json())

    assert payload == {
        "assets": [{"sha256": "abc", "size": 3, "url": ARTIFACT_URL}],
        "coreSize": 100,
        "fairsealVersion": 1,
        "permissions": [],
        "tint": "FF0000",
    }
    assert seal.app_org == "App-Name"
    assert FairSeal.model_validate_json(seal.to_json()) == seal


def _runner(logger: ConsoleLogger) -> FairsealRunner:
    return FairsealRunner(
        fetcher=ArtifactFetcher(logger=logger),
        comparator=ArchiveComparator(logger=logger),
        logger=logger,
    )


def _entitlements(tmp_path: Path) -> Path:
    path = tmp_path / "App.entitlements"
    path.write_bytes(
        plistlib.dumps(
            {
                "com.apple.security.app-sandbox": True,
                "com.apple.security.network.client": True,
            },
        ),
    )
    return path


def test_end_to_end_seal_for_matching_archives(tmp_path: Path, logger: ConsoleLogger) -> None:
    plist = info_plist({"FairUsage": {"com.apple.security.network.client": "Loads the catalog"}})
    trusted = write_zip(
        tmp_path / "trusted.zip",
        mac_app_entries(EXECUTABLE, plist=plist, extra=[("App.app/Contents/_CodeSignature/CodeResources", b"A")]),
    )
    untrusted = write_zip(
        tmp_path / "untrusted.zip",
        mac_app_entries(EXECUTABLE, plist=plist, extra=[("App.app/Contents/_CodeSignature/CodeResources", b"B")]),
    )
    staging = tmp_path / "staging"
    staging.mkdir()
    (staging / "README.md").write_bytes(b"readme")

    seal = _runner(logger).run(
        FairsealRequest(
            trusted_artifact=trusted,
            untrusted_artifact=untrusted,
            artifact_url=ARTIFACT_URL,
            artifact_staging=[staging],
            entitlements=_entitlements(tmp_path),
            tint="123abc",
        ),
    )

    assert seal.core_size == 100
    assert seal.tint == "123ABC"
    assert [permission.type for permission in seal.permissions or []] == [AppEntitlement.NETWORK_CLIENT]
    assert [asset.url.rsplit("/", 1)[-1] for asset in seal.assets] == ["README.md"]


@pytest.mark.parametrize("with_entitlements", [True, False])
def test_seal_requires_info_plist(tmp_path: Path, logger: ConsoleLogger, with_entitlements: bool) -> None:
    entries = [("App.app/Contents/MacOS/App", EXECUTABLE)]
    trusted = write_zip(tmp_path / "trusted.zip", entries)
    untrusted = write_zip(tmp_path / "untrusted.zip", entries)

    with pytest.raises(MissingPropertyListError):
        _runner(logger).run(
            FairsealRequest(
                trusted_artifact=trusted,
                untrusted_artifact=untrusted,
                entitlements=_entitlements(tmp_path) if with_entitlements else None,
            ),
        )


def test_project_entitlements_are_checked_by_default(tmp_path: Path, logger: ConsoleLogger) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_app_entries(EXECUTABLE))
    untrusted = write_zip(tmp_path / "untrusted.zip", mac_app_entries(EXECUTABLE))
    _entitlements(tmp_path).rename(tmp_path / "sandbox-macos.entitlements")
    request = FairsealRequest(trusted_artifact=trusted, untrusted_artifact=untrusted, project_root=tmp_path)

    with pytest.raises(MissingUsageDescriptionError, match="network.client"):
        _runner(logger).run(request)


def test_missing_project_entitlements_are_an_error(tmp_path: Path, logger: ConsoleLogger) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_app_entries(EXECUTABLE))
    untrusted = write_zip(tmp_path / "untrusted.zip", mac_app_entries(EXECUTABLE))

    with pytest.raises(MissingEntitlementsError, match="sandbox-macos.entitlements"):
        _runner(logger).run(
            FairsealRequest(trusted_artifact=trusted, untrusted_artifact=untrusted, project_root=tmp_path),
        )
    with pytest.raises(MissingEntitlementsError, match="project root"):
        _runner(logger).run(FairsealRequest(trusted_artifact=trusted, untrusted_artifact=untrusted))


def test_same_file_is_refused(tmp_path: Path, logger: ConsoleLogger) -> None:
    archive = write_zip(tmp_path / "app.zip", mac_app_entries(EXECUTABLE))

    with pytest.raises(FairgroundError, match="different files"):
        _runner(logger).run(FairsealRequest(trusted_artifact=archive, untrusted_artifact=archive))


def test_content_mismatch_propagates(tmp_path: Path, logger: ConsoleLogger) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_app_entries(EXECUTABLE))
    untrusted = write_zip(tmp_path / "untrusted.zip", mac_app_entries(EXECUTABLE[::-1]))

    with pytest.raises(ContentMismatchError):
        _runner(logger).run(FairsealRequest(trusted_artifact=trusted, untrusted_artifact=untrusted))


def test_request_needs_an_untrusted_source(tmp_path: Path, logger: ConsoleLogger) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", mac_app_entries(EXECUTABLE))

    with pytest.raises(FairgroundError, match="untrusted artifact"):
        _runner(logger).run(FairsealRequest(trusted_artifact=trusted))


def _justified_entries() -> list[tuple[str, bytes]]:
    plist = info_plist({"FairUsage": {"com.apple.security.network.client": "Loads the catalog"}})
    return mac_app_entries(EXECUTABLE, plist=plist)


@dataclass
class ArchiveResponse:
    body: bytes
    status_code: int = 200

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        yield self.body

    def close(self) -> None:
        pass


@dataclass
class ArchiveSession:
    body: bytes
    urls: list[str] = field(default_factory=list)

    def get(self, url: str, **kwargs: Any) -> ArchiveResponse:
        self.urls.append(url)
        return ArchiveResponse(self.body)


def test_missing_untrusted_artifact_is_downloaded_to_its_path(tmp_path: Path, logger: ConsoleLogger) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", _justified_entries())
    published = write_zip(tmp_path / "published.zip", _justified_entries()).read_bytes()
    target = tmp_path / "downloads" / "untrusted.zip"
    session = ArchiveSession(published)
    runner = FairsealRunner(
        fetcher=ArtifactFetcher(session=session, logger=logger),  # type: ignore[arg-type]
        comparator=ArchiveComparator(logger=logger),
        logger=logger,
    )

    seal = runner.run(
        FairsealRequest(
            trusted_artifact=trusted,
            untrusted_artifact=target,
            artifact_url=ARTIFACT_URL,
            entitlements=_entitlements(tmp_path),
        ),
    )

    assert session.urls == [ARTIFACT_URL]
    assert target.read_bytes() == published
    assert seal.core_size == 100


def test_existing_untrusted_artifact_is_not_downloaded(tmp_path: Path, logger: ConsoleLogger) -> None:
    trusted = write_zip(tmp_path / "trusted.zip", _justified_entries())
    untrusted = write_zip(tmp_path / "untrusted.zip", _justified_entries())
    session = ArchiveSession(b"unused")
    runner = FairsealRunner(
        fetcher=ArtifactFetcher(session=session, logger=logger),  # type: ignore[arg-type]
        comparator=ArchiveComparator(logger=logger),
        logger=logger,
    )

    runner.run(
        FairsealRequest(
            trusted_artifact=trusted,
            untrusted_artifact=untrusted,
            artifact_url=ARTIFACT_URL,
            entitlements=_entitlements(tmp_path),
        ),
    )

    assert session.urls == []
