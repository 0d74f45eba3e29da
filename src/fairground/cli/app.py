# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands and shared services."""

from pathlib import Path
from typing import Annotated

import typer

from ..config import load_config
from .commands import register_commands
from .shared import CLIState, build_cli_logger, report_failures

app = typer.Typer(
    help="Fair-ground artifact verification and app catalog tooling.",
    no_args_is_help=True,
    add_completion=False,
)

RootOption = Annotated[
    Path,
    typer.Option("--root", file_okay=False, help="Project root searched for configuration."),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", dir_okay=False, help="Configuration file applied after project defaults."),
]
DebugOption = Annotated[bool, typer.Option("--debug", help="Emit debug diagnostics.")]
NoColorOption = Annotated[bool, typer.Option("--no-color", help="Disable ANSI colour output.")]
EmojiOption = Annotated[bool, typer.Option("--emoji/--no-emoji", help="Prefix log lines with emoji.")]


@app.callback()
def global_options(
    ctx: typer.Context,
    root: RootOption = Path(),
    config: ConfigOption = None,
    debug: DebugOption = False,
    no_color: NoColorOption = False,
    emoji: EmojiOption = False,
) -> None:
    """Load configuration and logging shared by every command."""

    logger = build_cli_logger(emoji=emoji, debug=debug, no_color=no_color)
    with report_failures(logger):
        settings = load_config(root.resolve(), config)
    logger.debug(f"root={root} config={config or '-'}")
    ctx.obj = CLIState(root=root, logger=logger, config=settings)


register_commands(app)


def main() -> None:
    """Console script entry point."""

    app()


__all__ = ["app", "main"]
