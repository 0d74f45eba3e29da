# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for artifact downloads and the retry policy."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
import requests

from fairground.errors import DownloadError
from fairground.fetch import NO_CACHE_HEADERS, ArtifactFetcher, artifact_name
from fairground.logging import ConsoleLogger

URL = "https://example.com/releases/download/1.2.3/My%20App-macOS.zip"


@dataclass
class FakeResponse:
    status_code: int
    body: bytes = b""
    payload: Any = None
    closed: bool = False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start : start + chunk_size]

    def json(self) -> Any:
        if self.payload is None:
            raise ValueError("no JSON")
        return self.payload

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeSession:
    responses: list[FakeResponse | Exception]
    calls: list[dict[str, Any]] = field(default_factory=list)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class FakeClock:
    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _fetcher(session: FakeSession, clock: FakeClock, logger: ConsoleLogger) -> ArtifactFetcher:
    return ArtifactFetcher(session=session, sleep=clock.sleep, clock=clock, logger=logger)


def test_successful_download_is_named_after_url(tmp_path: Path, logger: ConsoleLogger) -> None:
    session = FakeSession([FakeResponse(200, body=b"zip bytes")])
    clock = FakeClock()

    path = _fetcher(session, clock, logger).fetch(URL, destination=tmp_path)

    assert path == tmp_path / "My App-macOS.zip"
    assert path.read_bytes() == b"zip bytes"
    assert session.calls[0]["headers"] == NO_CACHE_HEADERS
    assert session.calls[0]["stream"] is True
    assert clock.sleeps == []


def test_non_success_status_without_retry_fails(tmp_path: Path, logger: ConsoleLogger) -> None:
    response = FakeResponse(404)
    session = FakeSession([response])

    with pytest.raises(DownloadError) as excinfo:
        _fetcher(session, FakeClock(), logger).fetch(URL, destination=tmp_path)

    assert excinfo.value.status_code == 404
    assert str(excinfo.value) == f"Unable to download: {URL} code: 404"
    assert response.closed


def test_retries_until_success(tmp_path: Path, logger: ConsoleLogger) -> None:
    session = FakeSession([FakeResponse(503), FakeResponse(503), FakeResponse(200, body=b"ok")])
    clock = FakeClock()

    path = _fetcher(session, clock, logger).fetch(URL, retry_duration=100, retry_wait=30, destination=tmp_path)

    assert path.read_bytes() == b"ok"
    assert clock.sleeps == [30, 30]
    assert len(session.calls) == 3


def test_retry_stops_when_next_attempt_would_pass_deadline(tmp_path: Path, logger: ConsoleLogger) -> None:
    session = FakeSession([FakeResponse(500)] * 5)
    clock = FakeClock()

    with pytest.raises(DownloadError):
        _fetcher(session, clock, logger).fetch(URL, retry_duration=70, retry_wait=30, destination=tmp_path)

    assert clock.sleeps == [30, 30]
    assert len(session.calls) == 3


def test_transport_errors_are_retried(tmp_path: Path, logger: ConsoleLogger) -> None:
    session = FakeSession([requests.ConnectionError("reset"), FakeResponse(200, body=b"ok")])
    clock = FakeClock()

    path = _fetcher(session, clock, logger).fetch(URL, retry_duration=60, retry_wait=10, destination=tmp_path)

    assert path.read_bytes() == b"ok"
    assert clock.sleeps == [10]


def test_last_status_survives_transport_failure(tmp_path: Path, logger: ConsoleLogger) -> None:
    session = FakeSession([FakeResponse(503), requests.ConnectionError("reset")])
    clock = FakeClock()

    with pytest.raises(DownloadError) as excinfo:
        _fetcher(session, clock, logger).fetch(URL, retry_duration=15, retry_wait=10, destination=tmp_path)

    assert excinfo.value.status_code == 503
    assert excinfo.value.reason == "reset"
    assert str(excinfo.value) == f"Unable to download: {URL} code: 503 reset"


@dataclass
class BrokenStream(FakeResponse):
    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        yield b"partial"
        raise requests.ConnectionError("stream cut")


def test_download_writes_only_into_destination(tmp_path: Path, logger: ConsoleLogger) -> None:
    destination = tmp_path / "nested" / "downloads"
    session = FakeSession([BrokenStream(200), FakeResponse(200, body=b"ok")])

    with pytest.raises(DownloadError, match="stream cut"):
        _fetcher(session, FakeClock(), logger).fetch(URL, destination=destination)
    assert list(destination.iterdir()) == []

    path = _fetcher(session, FakeClock(), logger).fetch(URL, destination=destination)
    assert path.parent == destination
    assert [item.name for item in destination.iterdir()] == ["My App-macOS.zip"]


def test_fetch_json_decodes_document(logger: ConsoleLogger) -> None:
    session = FakeSession([FakeResponse(200, payload={"name": "Catalog"})])

    assert _fetcher(session, FakeClock(), logger).fetch_json("https://example.com/c.json") == {"name": "Catalog"}


def test_fetch_json_rejects_invalid_body(logger: ConsoleLogger) -> None:
    session = FakeSession([FakeResponse(200)])

    with pytest.raises(DownloadError, match="invalid JSON"):
        _fetcher(session, FakeClock(), logger).fetch_json("https://example.com/c.json")


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (URL, "My App-macOS.zip"),
        ("https://example.com/a/b/", "b"),
        ("https://example.com", "artifact"),
    ],
)
def test_artifact_name(url: str, expected: str) -> None:
    assert artifact_name(url) == expected
