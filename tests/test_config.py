# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for layered configuration loading."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from fairground.catalog.builder import ArtifactTarget
from fairground.config import FairgroundConfig, TomlConfigSource, load_config
from fairground.errors import ConfigError
from fairground.fetch import DEFAULT_RETRY_WAIT


def _write(path: Path, text: str) -> Path:
    path.write_text(dedent(text), encoding="utf-8")
    return path


def test_defaults_without_files(project_root: Path) -> None:
    config = load_config(project_root, env={})

    assert config == FairgroundConfig()
    assert config.seal.retry_wait == DEFAULT_RETRY_WAIT
    assert config.catalog.fairseal_check is True
    assert config.catalog.target is ArtifactTarget.MACOS
    assert config.hub.token_env == "GITHUB_TOKEN"


def test_pyproject_section_is_applied(project_root: Path) -> None:
    _write(
        project_root / "pyproject.toml",
        """
        [project]
        name = "unrelated"

        [tool.fairground.catalog]
        owner = "appfair"
        target = "ios"
        """,
    )

    config = load_config(project_root, env={})

    assert config.catalog.owner == "appfair"
    assert config.catalog.target is ArtifactTarget.IOS


def test_precedence_runs_pyproject_then_local_then_explicit(project_root: Path, tmp_path: Path) -> None:
    _write(
        project_root / "pyproject.toml",
        """
        [tool.fairground.catalog]
        owner = "from-pyproject"
        title = "Pyproject title"
        fairseal_issuer = "pyproject-bot"
        """,
    )
    _write(
        project_root / "fairground.toml",
        """
        [catalog]
        title = "Local title"
        fairseal_issuer = "local-bot"
        """,
    )
    explicit = _write(
        tmp_path / "override.toml",
        """
        [catalog]
        fairseal_issuer = "explicit-bot"
        """,
    )

    catalog = load_config(project_root, explicit, env={}).catalog

    assert (catalog.owner, catalog.title, catalog.fairseal_issuer) == (
        "from-pyproject",
        "Local title",
        "explicit-bot",
    )
    assert catalog.fairseal_check is True


def test_environment_variables_are_expanded(project_root: Path) -> None:
    _write(
        project_root / "fairground.toml",
        """
        [catalog]
        owner = "$ORG"
        source_url = "https://${HOST}/catalog.json"
        title = "$UNSET"
        """,
    )

    catalog = load_config(project_root, env={"ORG": "appfair", "HOST": "appfair.net"}).catalog

    assert catalog.owner == "appfair"
    assert catalog.source_url == "https://appfair.net/catalog.json"
    assert catalog.title == "$UNSET"


def test_includes_are_merged_before_the_including_file(project_root: Path) -> None:
    shared = project_root / "shared"
    shared.mkdir()
    _write(
        shared / "base.toml",
        """
        [seal]
        retry_duration = 600
        retry_wait = 10
        """,
    )
    _write(
        project_root / "fairground.toml",
        """
        include = ["shared/base.toml"]

        [seal]
        retry_wait = 20
        """,
    )

    seal = load_config(project_root, env={}).seal

    assert (seal.retry_duration, seal.retry_wait) == (600, 20)


def test_circular_include_is_rejected(tmp_path: Path) -> None:
    first = tmp_path / "first.toml"
    second = tmp_path / "second.toml"
    _write(first, 'include = "second.toml"\n')
    _write(second, 'include = "first.toml"\n')

    with pytest.raises(ConfigError, match="Circular include"):
        TomlConfigSource(first, env={}).load()


def test_invalid_toml_is_a_config_error(project_root: Path) -> None:
    _write(project_root / "fairground.toml", "[catalog\nowner = 1\n")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(project_root, env={})


@pytest.mark.parametrize(
    "document",
    [
        "[catalog]\nunknown = 1\n",
        '[hub]\nendpoint = "ftp://example.com"\n',
        "[seal]\nretry_wait = -1\n",
        '[seal]\nsignature_stripper = "strip"\n',
    ],
)
def test_invalid_values_are_rejected(project_root: Path, document: str) -> None:
    _write(project_root / "fairground.toml", document)

    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_config(project_root, env={})


def test_missing_explicit_file_is_rejected(project_root: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(project_root, project_root / "missing.toml", env={})
