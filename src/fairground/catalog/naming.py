# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""App naming rules and the hub URLs derived from an app name."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from functools import total_ordering
from typing import Final, Self

HUB_HOST: Final[str] = "github.com"
BASE_REPOSITORY: Final[str] = "App"
MAX_NAME_WORDS: Final[int] = 4
MIN_WORD_LENGTH: Final[int] = 3
MAX_WORD_LENGTH: Final[int] = 12
CATEGORY_TOPIC_PREFIX: Final[str] = "appfair-"
CATEGORY_METADATA_PREFIX: Final[str] = "public.app-category."

_EMAIL_RE: Final[re.Pattern[str]] = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_VERSION_RE: Final[re.Pattern[str]] = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


def hyphenated(name: str) -> str:
    """Return ``name`` with spaces replaced by hyphens (``"Cloud Cuckoo"`` -> ``"Cloud-Cuckoo"``)."""

    return name.replace(" ", "-")


def dehyphenated(name: str) -> str:
    """Return ``name`` with hyphens replaced by spaces."""

    return name.replace("-", " ")


@dataclass(frozen=True, slots=True)
class ProjectURLs:
    """Hub locations derived from an app's hyphenated name."""

    owner: str
    repository: str = BASE_REPOSITORY

    @property
    def landing_page(self) -> str:
        return f"https://{self.owner}.github.io/{self.repository}/"

    @property
    def project(self) -> str:
        return f"https://{HUB_HOST}/{self.owner}/{self.repository}/"

    @property
    def issues(self) -> str:
        return f"{self.project}issues"

    @property
    def discussions(self) -> str:
        return f"{self.project}discussions"

    @property
    def stargazers(self) -> str:
        return f"{self.project}stargazers"

    @property
    def releases(self) -> str:
        return f"{self.project}releases/"


class AppCategory(StrEnum):
    """``LSApplicationCategoryType`` values an app can be listed under."""

    BUSINESS = "business"
    DEVELOPER_TOOLS = "developer-tools"
    EDUCATION = "education"
    ENTERTAINMENT = "entertainment"
    FINANCE = "finance"
    GRAPHICS_DESIGN = "graphics-design"
    HEALTHCARE_FITNESS = "healthcare-fitness"
    LIFESTYLE = "lifestyle"
    MEDICAL = "medical"
    MUSIC = "music"
    NEWS = "news"
    PHOTOGRAPHY = "photography"
    PRODUCTIVITY = "productivity"
    REFERENCE = "reference"
    SOCIAL_NETWORKING = "social-networking"
    SPORTS = "sports"
    TRAVEL = "travel"
    UTILITIES = "utilities"
    VIDEO = "video"
    WEATHER = "weather"
    GAMES = "games"
    ACTION_GAMES = "action-games"
    ADVENTURE_GAMES = "adventure-games"
    ARCADE_GAMES = "arcade-games"
    BOARD_GAMES = "board-games"
    CARD_GAMES = "card-games"
    CASINO_GAMES = "casino-games"
    DICE_GAMES = "dice-games"
    EDUCATIONAL_GAMES = "educational-games"
    FAMILY_GAMES = "family-games"
    KIDS_GAMES = "kids-games"
    MUSIC_GAMES = "music-games"
    PUZZLE_GAMES = "puzzle-games"
    RACING_GAMES = "racing-games"
    ROLE_PLAYING_GAMES = "role-playing-games"
    SIMULATION_GAMES = "simulation-games"
    SPORTS_GAMES = "sports-games"
    STRATEGY_GAMES = "strategy-games"
    TRIVIA_GAMES = "trivia-games"
    WORD_GAMES = "word-games"

    @property
    def metadata_identifier(self) -> str:
        """Info.plist form, e.g. ``public.app-category.utilities``."""

        return CATEGORY_METADATA_PREFIX + self.value

    @property
    def topic_identifier(self) -> str:
        """Hub topic form, e.g. ``appfair-utilities``."""

        return CATEGORY_TOPIC_PREFIX + self.value

    @classmethod
    def from_topic(cls, topic: str) -> AppCategory | None:
        if not topic.startswith(CATEGORY_TOPIC_PREFIX):
            return None
        try:
            return cls(topic.removeprefix(CATEGORY_TOPIC_PREFIX))
        except ValueError:
            return None


def categories_for_topics(topics: Iterable[str]) -> list[str]:
    """Return the metadata identifiers of known category topics, in topic order."""

    found = (AppCategory.from_topic(topic) for topic in topics)
    return list(dict.fromkeys(category.metadata_identifier for category in found if category is not None))


def project_urls(app_name: str, *, repository: str = BASE_REPOSITORY) -> ProjectURLs:
    return ProjectURLs(owner=hyphenated(app_name), repository=repository)


def validate_app_name(name: str) -> str | None:
    """Return a reason why ``name`` is not an acceptable app name, or ``None``.

    App names are up to four hyphen-separated words of three to twelve
    letters each, such as ``Cloud-Cuckoo`` or ``Tune-Out``.

    Args:
        name: Hyphenated app name (the hub organisation login).

    Returns:
        str | None: Human-readable reason for rejection, ``None`` when valid.
    """

    words = name.split("-")
    if len(words) > MAX_NAME_WORDS:
        return f"too many words in {name!r}"
    for word in words:
        if not MIN_WORD_LENGTH <= len(word) <= MAX_WORD_LENGTH:
            return f"word {word!r} must be between {MIN_WORD_LENGTH} and {MAX_WORD_LENGTH} letters"
        if not word.isalpha():
            return f"word {word!r} may only contain letters"
    return None


def is_valid_email(value: str | None) -> bool:
    return value is not None and _EMAIL_RE.match(value) is not None


@total_ordering
@dataclass(frozen=True, slots=True)
class AppVersion:
    """Semantic ``major.minor.patch`` release version."""

    major: int
    minor: int
    patch: int
    prerelease: bool = False

    @classmethod
    def parse(cls, tag: str, *, prerelease: bool = False) -> Self | None:
        """Parse a release tag, returning ``None`` when it is not ``X.Y.Z``."""

        match = _VERSION_RE.match(tag.strip())
        if match is None:
            return None
        major, minor, patch = (int(group) for group in match.groups())
        return cls(major, minor, patch, prerelease)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, AppVersion):
            return NotImplemented
        # a prerelease sorts before the release with the same numbers
        return (self.major, self.minor, self.patch, not self.prerelease) < (
            other.major,
            other.minor,
            other.patch,
            not other.prerelease,
        )

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


__all__ = [
    "AppCategory",
    "AppVersion",
    "BASE_REPOSITORY",
    "CATEGORY_METADATA_PREFIX",
    "CATEGORY_TOPIC_PREFIX",
    "ProjectURLs",
    "categories_for_topics",
    "dehyphenated",
    "hyphenated",
    "is_valid_email",
    "project_urls",
    "validate_app_name",
]
