# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``entitlements`` command: check an app's entitlements against its Info.plist."""

import json
from pathlib import Path
from typing import Annotated

import typer

from ...entitlements import EntitlementValidator
from ...plist import PropertyList
from ..shared import get_state, register_command, report_failures

EntitlementsOption = Annotated[
    Path,
    typer.Option("--entitlements", help="Entitlements property list.", exists=True, dir_okay=False),
]
InfoPlistOption = Annotated[
    Path,
    typer.Option("--info-plist", help="Info.plist of the app.", exists=True, dir_okay=False),
]
AppNameOption = Annotated[str | None, typer.Option("--app-name", help="Hyphenated app name.")]


def entitlements_command(
    ctx: typer.Context,
    entitlements: EntitlementsOption,
    info_plist: InfoPlistOption,
    app_name: AppNameOption = None,
) -> None:
    """Print the permissions an app's entitlements justify, as JSON."""

    state = get_state(ctx)
    validator = EntitlementValidator(catalog_app_names=tuple(state.config.catalog.catalog_app_names))
    with report_failures(state.logger):
        permissions = validator.validate(
            PropertyList.load(entitlements),
            PropertyList.load(info_plist),
            app_name=app_name,
        )
        payload = [permission.model_dump(mode="json", by_alias=True) for permission in permissions]
        typer.echo(json.dumps(payload, indent=2))
        state.logger.ok(f"{len(permissions)} permissions justified")


def register(app: typer.Typer) -> None:
    """Register the ``entitlements`` command with ``app``."""

    register_command(app, entitlements_command, name="entitlements")


__all__ = ["entitlements_command", "register"]
