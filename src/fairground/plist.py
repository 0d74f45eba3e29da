# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Typed access to property list documents (Info.plist, entitlements)."""

from __future__ import annotations

import plistlib
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Final, Self
from xml.parsers.expat import ExpatError

from .errors import InvalidSealError

FAIR_USAGE_KEY: Final[str] = "FairUsage"
BUNDLE_IDENTIFIER_KEY: Final[str] = "CFBundleIdentifier"
BUNDLE_EXECUTABLE_KEY: Final[str] = "CFBundleExecutable"
BUNDLE_NAME_KEY: Final[str] = "CFBundleName"
BUNDLE_VERSION_KEY: Final[str] = "CFBundleShortVersionString"


class PropertyListError(InvalidSealError):
    """Raised when a document cannot be decoded as a property list dictionary."""


class PropertyList(Mapping[str, Any]):
    """Read-only, string-keyed view over a decoded property list dictionary."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(values or {})

    @classmethod
    def loads(cls, payload: bytes) -> Self:
        """Decode an XML or binary property list.

        Args:
            payload: Raw document bytes.

        Returns:
            PropertyList: Wrapper around the decoded top-level dictionary.

        Raises:
            PropertyListError: If the payload is not a property list dictionary.
        """

        try:
            decoded = plistlib.loads(payload)
        except (plistlib.InvalidFileException, ExpatError, ValueError, OverflowError) as exc:
            raise PropertyListError(f"Unable to parse property list: {exc}") from exc
        if not isinstance(decoded, dict):
            raise PropertyListError("Property list root must be a dictionary")
        return cls(decoded)

    @classmethod
    def load(cls, path: Path) -> Self:
        return cls.loads(Path(path).read_bytes())

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"PropertyList({self._values!r})"

    def string(self, key: str) -> str | None:
        value = self._values.get(key)
        return value if isinstance(value, str) else None

    def boolean(self, key: str) -> bool | None:
        value = self._values.get(key)
        return value if isinstance(value, bool) else None

    def dictionary(self, key: str) -> PropertyList | None:
        value = self._values.get(key)
        return PropertyList(value) if isinstance(value, dict) else None

    @property
    def bundle_identifier(self) -> str | None:
        return self.string(BUNDLE_IDENTIFIER_KEY)

    @property
    def bundle_executable(self) -> str | None:
        return self.string(BUNDLE_EXECUTABLE_KEY)

    @property
    def bundle_name(self) -> str | None:
        return self.string(BUNDLE_NAME_KEY)

    @property
    def version_string(self) -> str | None:
        return self.string(BUNDLE_VERSION_KEY)

    @property
    def fair_usage(self) -> PropertyList:
        """Return the ``FairUsage`` dictionary of usage descriptions (empty when absent)."""

        return self.dictionary(FAIR_USAGE_KEY) or PropertyList()

    def to_dict(self) -> dict[str, Any]:
        return dict(self._values)


__all__ = ["FAIR_USAGE_KEY", "PropertyList", "PropertyListError"]
