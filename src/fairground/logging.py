# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing diagnostics rendered through Rich with severity prefixes."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from enum import StrEnum
from functools import cache
from typing import Final, Literal

from rich.console import Console
from rich.text import Text

_KEY_VALUE_RE: Final[re.Pattern[str]] = re.compile(r"([\w-]+)=(\".*?\"|\S+)")


class Severity(StrEnum):
    """Enumerate diagnostic severities in ascending order of importance."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    OK = "OK"
    WARN = "WARN"
    ERROR = "ERROR"


_STYLES: Final[dict[Severity, str]] = {
    Severity.DEBUG: "dim cyan",
    Severity.INFO: "cyan",
    Severity.OK: "green",
    Severity.WARN: "yellow",
    Severity.ERROR: "bold red",
}

_EMOJI: Final[dict[Severity, str]] = {
    Severity.DEBUG: "🔎 ",
    Severity.INFO: "ℹ️ ",
    Severity.OK: "✅ ",
    Severity.WARN: "⚠️ ",
    Severity.ERROR: "❌ ",
}


def detect_tty() -> bool:
    """Return ``True`` when stderr appears to be backed by a terminal.

    Returns:
        bool: ``True`` when ``sys.stderr`` reports TTY support, ``False`` otherwise.
    """

    try:
        return sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


class RichConsoleManager:
    """Provision stderr-bound Rich consoles keyed by colour and emoji settings."""

    def __init__(self) -> None:
        self._cache: dict[tuple[bool, bool, bool], Console] = {}

    def get(self, *, color: bool, emoji: bool) -> Console:
        """Return a Rich console configured for ``color`` and ``emoji`` preferences.

        Args:
            color: ``True`` when ANSI colour output should be enabled.
            emoji: ``True`` when Rich should render emoji glyphs.

        Returns:
            Console: Cached or newly constructed console matching the preferences.
        """

        tty = detect_tty()
        key = (color, emoji, tty)
        if key not in self._cache:
            color_system: Literal["auto"] | None = "auto" if color and tty else None
            self._cache[key] = Console(
                stderr=True,
                color_system=color_system,
                no_color=not (color and tty),
                emoji=emoji,
                highlight=False,
                soft_wrap=True,
            )
        return self._cache[key]


@cache
def get_console_manager() -> RichConsoleManager:
    """Return the process-wide console manager."""

    return RichConsoleManager()


def format_line(severity: Severity, message: str, *, use_emoji: bool) -> str:
    """Return ``message`` prefixed with its severity label.

    Args:
        severity: Severity assigned to the diagnostic.
        message: Diagnostic text.
        use_emoji: Whether an emoji glyph precedes the label.

    Returns:
        str: Single-line diagnostic such as ``"WARN  skipping fork"``.
    """

    glyph = _EMOJI[severity] if use_emoji else ""
    return f"{glyph}{severity.value:<5} {message}"


@dataclass(slots=True)
class ConsoleLogger:
    """Emit single-line diagnostics honouring emoji, colour and debug settings."""

    use_emoji: bool = False
    use_color: bool = True
    debug_enabled: bool = False
    console: Console | None = field(default=None, repr=False)

    def _console(self) -> Console:
        if self.console is not None:
            return self.console
        return get_console_manager().get(color=self.use_color, emoji=self.use_emoji)

    def _emit(self, severity: Severity, message: str) -> None:
        text = Text(format_line(severity, message, use_emoji=self.use_emoji))
        if self.use_color:
            text.stylize(_STYLES[severity])
        self._console().print(text)

    def debug(self, message: str) -> None:
        """Emit a debug message when debug logging is enabled.

        ``key=value`` pairs inside ``message`` are highlighted.

        Args:
            message: Debug payload rendered with simple highlighting.
        """

        if not self.debug_enabled:
            return
        prefix = format_line(Severity.DEBUG, "", use_emoji=self.use_emoji)
        text = Text(prefix, style=_STYLES[Severity.DEBUG] if self.use_color else "")
        cursor = 0
        for match in _KEY_VALUE_RE.finditer(message):
            start, end = match.span()
            if start > cursor:
                text.append(message[cursor:start])
            text.append(match.group(1), style="bold magenta" if self.use_color else "")
            text.append("=")
            text.append(match.group(2), style="bold green" if self.use_color else "")
            cursor = end
        if cursor < len(message):
            text.append(message[cursor:])
        self._console().print(text)

    def info(self, message: str) -> None:
        """Emit an informational message."""

        self._emit(Severity.INFO, message)

    def ok(self, message: str) -> None:
        """Emit a success message."""

        self._emit(Severity.OK, message)

    def warn(self, message: str) -> None:
        """Emit a warning message."""

        self._emit(Severity.WARN, message)

    def error(self, message: str) -> None:
        """Emit an error message."""

        self._emit(Severity.ERROR, message)


@cache
def default_logger() -> ConsoleLogger:
    """Return the logger used by library components when none is supplied."""

    return ConsoleLogger(use_emoji=False, use_color=detect_tty())


__all__ = [
    "ConsoleLogger",
    "RichConsoleManager",
    "Severity",
    "default_logger",
    "detect_tty",
    "format_line",
    "get_console_manager",
]
