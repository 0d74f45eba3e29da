# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Artifact downloads with bounded retry."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Protocol
from urllib.parse import unquote, urlsplit

import requests

from .errors import DownloadError
from .logging import ConsoleLogger, default_logger

DEFAULT_RETRY_WAIT: Final[float] = 30.0
DEFAULT_TIMEOUT: Final[float] = 60.0
CHUNK_SIZE: Final[int] = 1 << 16
NO_CACHE_HEADERS: Final[dict[str, str]] = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


class _HttpResponse(Protocol):
    """Subset of ``requests.Response`` used by downloads."""

    status_code: int

    def iter_content(self, chunk_size: int = ...) -> Iterable[bytes]:
        """Yield body chunks."""

    def json(self) -> Any:
        """Return the decoded JSON body."""

    def close(self) -> None:
        """Release the connection."""


class HttpSession(Protocol):
    """Subset of ``requests.Session`` used by downloads."""

    def get(self, url: str, **kwargs: Any) -> _HttpResponse:
        """Issue a GET request."""


def artifact_name(url: str) -> str:
    """Return the decoded last path component of ``url``."""

    name = unquote(urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1])
    return name or "artifact"


@dataclass(slots=True)
class ArtifactFetcher:
    """Download artifacts over HTTP, retrying transient failures.

    ``sleep`` and ``clock`` are injectable so tests can exercise the retry
    policy without waiting.
    """

    session: HttpSession = field(default_factory=requests.Session)
    sleep: Callable[[float], None] = time.sleep
    clock: Callable[[], float] = time.monotonic
    timeout: float = DEFAULT_TIMEOUT
    logger: ConsoleLogger = field(default_factory=default_logger)

    def fetch(
        self,
        url: str,
        retry_duration: float = 0.0,
        retry_wait: float = DEFAULT_RETRY_WAIT,
        *,
        destination: Path,
    ) -> Path:
        """Download ``url`` and return the local file path.

        The request bypasses intermediary caches. Any non-2xx status or
        transport failure is retried after ``retry_wait`` seconds while the
        next attempt would still start before ``retry_duration`` has elapsed.

        Args:
            url: Location of the artifact.
            retry_duration: Total seconds during which retries are allowed;
                ``0`` performs a single attempt.
            retry_wait: Seconds to sleep between attempts.
            destination: Directory receiving the file, created when missing.
                The caller owns it and its cleanup.

        Returns:
            Path: Path of the downloaded file, named after the URL's last component.

        Raises:
            DownloadError: If no attempt succeeded before the deadline. It
                carries the last HTTP status seen by any attempt.
        """

        deadline = self.clock() + retry_duration
        attempt = 0
        last_status: int | None = None
        while True:
            attempt += 1
            try:
                return self._attempt(url, destination)
            except DownloadError as exc:
                if exc.status_code is not None:
                    last_status = exc.status_code
                can_retry = retry_duration > 0 and retry_wait > 0 and self.clock() + retry_wait <= deadline
                if not can_retry:
                    if exc.status_code is None and last_status is not None:
                        raise DownloadError(url, last_status, reason=exc.reason) from exc
                    raise
                self.logger.warn(f"{exc}; retrying in {retry_wait:g}s (attempt {attempt})")
                self.sleep(retry_wait)

    def _attempt(self, url: str, destination: Path) -> Path:
        self.logger.debug(f"download url={url}")
        try:
            response = self.session.get(url, headers=NO_CACHE_HEADERS, stream=True, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DownloadError(url, reason=str(exc)) from exc
        try:
            if not 200 <= response.status_code < 300:
                raise DownloadError(url, response.status_code)
            destination.mkdir(parents=True, exist_ok=True)
            target = destination / artifact_name(url)
            try:
                with target.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
            except requests.RequestException as exc:
                target.unlink(missing_ok=True)
                raise DownloadError(url, response.status_code, reason=str(exc)) from exc
            return target
        finally:
            response.close()

    def fetch_json(self, url: str) -> Any:
        """Return the decoded JSON document at ``url`` (single attempt).

        Raises:
            DownloadError: If the request fails or the body is not JSON.
        """

        try:
            response = self.session.get(url, headers=NO_CACHE_HEADERS, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DownloadError(url, reason=str(exc)) from exc
        try:
            if not 200 <= response.status_code < 300:
                raise DownloadError(url, response.status_code)
            try:
                return response.json()
            except ValueError as exc:
                raise DownloadError(url, response.status_code, reason=f"invalid JSON: {exc}") from exc
        finally:
            response.close()


__all__ = ["ArtifactFetcher", "DEFAULT_RETRY_WAIT", "HttpSession", "artifact_name"]
