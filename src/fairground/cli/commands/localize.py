# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``localize`` command: render a catalog for a single locale."""

from pathlib import Path
from typing import Annotated

import typer

from ...catalog.io import STDOUT_MARKER, read_catalog, write_catalog
from ...catalog.localize import localize_catalog
from ...fetch import ArtifactFetcher
from ..shared import get_state, register_command, report_failures

CatalogArgument = Annotated[
    Path,
    typer.Argument(help="Catalog JSON document.", exists=True, dir_okay=False),
]
LocaleOption = Annotated[str, typer.Option("--locale", help="Locale identifier such as fr_CA or de.")]
OutputOption = Annotated[str, typer.Option("--output", help="Catalog destination, '-' for stdout.")]


def localize_command(
    ctx: typer.Context,
    catalog: CatalogArgument,
    locale: LocaleOption,
    output: OutputOption = STDOUT_MARKER,
) -> None:
    """Merge a catalog with its localization for LOCALE."""

    state = get_state(ctx)
    with report_failures(state.logger):
        fetcher = ArtifactFetcher(timeout=state.config.hub.timeout, logger=state.logger)
        base = read_catalog(catalog)
        localized = localize_catalog(base, locale, resolve=fetcher.fetch_json)
        if localized is base:
            state.logger.info(f"no localization for {locale}; catalog unchanged")
        write_catalog(localized, output)


def register(app: typer.Typer) -> None:
    """Register the ``localize`` command with ``app``."""

    register_command(app, localize_command, name="localize")


__all__ = ["localize_command", "register"]
