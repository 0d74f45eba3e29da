# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared utilities for CLI commands (state, logging, errors, registration)."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

import typer

from ..config import FairgroundConfig
from ..errors import ConfigError, FairgroundError
from ..hub import GitHubHub
from ..logging import ConsoleLogger

CONFIG_EXIT_CODE: Final[int] = 2


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


@dataclass(slots=True)
class CLIState:
    """Per-invocation state shared by the global callback and commands."""

    root: Path
    logger: ConsoleLogger
    config: FairgroundConfig = field(default_factory=FairgroundConfig)


def build_cli_logger(*, emoji: bool, debug: bool = False, no_color: bool = False) -> ConsoleLogger:
    """Return a ``ConsoleLogger`` configured from the global CLI flags.

    Args:
        emoji: Whether log output may include emoji glyphs.
        debug: Whether debug logging should be enabled.
        no_color: Whether terminal colour output should be disabled.

    Returns:
        ConsoleLogger: Logger bound to the shared stderr console.
    """

    return ConsoleLogger(use_emoji=emoji, use_color=not no_color, debug_enabled=debug)


def build_hub(state: CLIState) -> GitHubHub:
    """Return a GitHub hub client using the configured endpoint and token variable."""

    hub_config = state.config.hub
    return GitHubHub(
        token=os.environ.get(hub_config.token_env),
        endpoint=hub_config.endpoint,
        timeout=hub_config.timeout,
        logger=state.logger,
    )


def get_state(ctx: typer.Context) -> CLIState:
    """Return the :class:`CLIState` stored by the global callback."""

    state = ctx.find_object(CLIState)
    if state is None:
        raise CLIError("CLI state is not initialised")
    return state


@contextmanager
def report_failures(logger: ConsoleLogger) -> Iterator[None]:
    """Convert tool failures into an ``ERROR`` line and a non-zero exit."""

    try:
        yield
    except CLIError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc
    except ConfigError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=CONFIG_EXIT_CODE) from exc
    except FairgroundError as exc:
        logger.error(str(exc))
        raise typer.Exit(code=1) from exc


def register_command(
    app: typer.Typer,
    callback: Callable[..., Any],
    *,
    name: str | None = None,
    help_text: str | None = None,
) -> Callable[..., Any]:
    """Register ``callback`` on ``app`` and return it unchanged."""

    app.command(name=name, help=help_text)(callback)
    return callback


__all__: Final = [
    "CLIError",
    "CLIState",
    "CONFIG_EXIT_CODE",
    "build_cli_logger",
    "build_hub",
    "get_state",
    "register_command",
    "report_failures",
]
