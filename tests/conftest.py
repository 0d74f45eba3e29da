# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from fairground.logging import ConsoleLogger


@pytest.fixture
def log_stream() -> io.StringIO:
    """Return the buffer receiving log lines from :func:`logger`."""

    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> ConsoleLogger:
    """Return a debug-enabled logger writing plain text into ``log_stream``."""

    console = Console(file=log_stream, color_system=None, width=400, emoji=False, highlight=False)
    return ConsoleLogger(use_emoji=False, use_color=False, debug_enabled=True, console=console)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Return an empty project directory without configuration files."""

    root = tmp_path / "project"
    root.mkdir()
    return root
