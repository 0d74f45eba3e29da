# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``casks`` command: write Homebrew casks for a catalog."""

from pathlib import Path
from typing import Annotated

import typer

from ...catalog.cask import write_casks
from ...catalog.io import read_catalog
from ..shared import get_state, register_command, report_failures

CatalogArgument = Annotated[
    Path,
    typer.Argument(help="Catalog JSON document.", exists=True, dir_okay=False),
]
CaskFolderOption = Annotated[
    Path,
    typer.Option("--cask-folder", file_okay=False, help="Folder receiving the cask files."),
]
PrereleaseSuffixOption = Annotated[
    str | None,
    typer.Option("--prerelease-suffix", help="Suffix of prerelease cask names."),
]
SkipPrereleasesOption = Annotated[
    bool,
    typer.Option("--skip-prereleases", help="Do not write casks for prereleases."),
]


def casks_command(
    ctx: typer.Context,
    catalog: CatalogArgument,
    cask_folder: CaskFolderOption,
    prerelease_suffix: PrereleaseSuffixOption = None,
    skip_prereleases: SkipPrereleasesOption = False,
) -> None:
    """Write one cask per versioned, sealed app of CATALOG."""

    state = get_state(ctx)
    config = state.config.catalog
    with report_failures(state.logger):
        suffix = None if skip_prereleases else (prerelease_suffix or config.prerelease_suffix)
        written = write_casks(
            read_catalog(catalog).apps,
            cask_folder,
            catalog_app_org=config.catalog_app_org,
            prerelease_suffix=suffix,
            logger=state.logger,
        )
        state.logger.ok(f"wrote {len(written)} casks to {cask_folder}")


def register(app: typer.Typer) -> None:
    """Register the ``casks`` command with ``app``."""

    register_command(app, casks_command, name="casks")


__all__ = ["casks_command", "register"]
