# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pydantic configuration for wire-format models."""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def parse_lenient_datetime(value: Any) -> Any:
    """Accept date-only ISO-8601 strings as midnight UTC.

    Args:
        value: Raw value supplied to a datetime field.

    Returns:
        Any: A timezone-aware :class:`datetime` for recognised strings, the
        original value otherwise so pydantic reports the validation error.
    """

    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            try:
                return datetime.combine(date.fromisoformat(text), time(), tzinfo=UTC)
            except ValueError:
                return value
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return value
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    return value


def format_datetime(value: datetime) -> str:
    """Render ``value`` as an ISO-8601 UTC timestamp with a ``Z`` suffix."""

    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


LenientDateTime = Annotated[
    datetime,
    BeforeValidator(parse_lenient_datetime),
    PlainSerializer(format_datetime, return_type=str, when_used="json"),
]


class WireModel(BaseModel):
    """Base model using camelCase aliases on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


__all__ = ["LenientDateTime", "WireModel", "format_datetime", "parse_lenient_datetime"]
