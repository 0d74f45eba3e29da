# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""CLI command registry."""

from __future__ import annotations

import typer

from . import casks, catalog, entitlements, fairseal, localize

__all__ = ["register_commands"]


def register_commands(app: typer.Typer) -> None:
    """Register the built-in commands on ``app``."""

    fairseal.register(app)
    catalog.register(app)
    localize.register(app)
    casks.register(app)
    entitlements.register(app)
