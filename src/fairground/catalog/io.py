# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Catalog serialisation helpers."""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Final

from pydantic import ValidationError

from ..errors import CatalogIntegrityError
from ..models.catalog import AppCatalog

STDOUT_MARKER: Final[str] = "-"


def catalog_payload(catalog: AppCatalog) -> dict[str, Any]:
    """Return the JSON-compatible mapping for ``catalog`` (aliases, no nulls)."""

    return catalog.model_dump(mode="json", by_alias=True, exclude_none=True)


def dump_catalog(catalog: AppCatalog, *, indent: int | None = 2) -> str:
    """Serialise ``catalog`` deterministically with sorted keys."""

    return json.dumps(catalog_payload(catalog), indent=indent, sort_keys=True, ensure_ascii=False)


def parse_catalog_document(document: Any, *, context: str) -> AppCatalog:
    """Validate a decoded JSON document as an :class:`AppCatalog`.

    Raises:
        CatalogIntegrityError: If ``document`` does not describe a catalog.
    """

    try:
        return AppCatalog.model_validate(document)
    except ValidationError as exc:
        raise CatalogIntegrityError(f"{context}: invalid catalog: {exc}") from exc


def parse_catalog(text: str | bytes, *, context: str = "<catalog>") -> AppCatalog:
    """Parse catalog JSON, accepting date-only and full ISO-8601 timestamps.

    Raises:
        CatalogIntegrityError: If ``text`` is not valid catalog JSON.
    """

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CatalogIntegrityError(f"{context}: invalid JSON: {exc}") from exc
    return parse_catalog_document(document, context=context)


def read_catalog(path: Path) -> AppCatalog:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogIntegrityError(f"{path}: unable to read catalog: {exc}") from exc
    return parse_catalog(text, context=str(path))


def write_text_atomic(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` so readers never observe a partial file."""

    path.parent.mkdir(parents=True, exist_ok=True)
    handle, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            stream.write(text)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


def write_output(text: str, output: str | Path) -> None:
    """Write ``text`` to ``output``, or to stdout when ``output`` is ``-``."""

    if str(output) == STDOUT_MARKER:
        sys.stdout.write(text + "\n")
        sys.stdout.flush()
        return
    write_text_atomic(Path(output), text + "\n")


def write_catalog(catalog: AppCatalog, output: str | Path) -> None:
    write_output(dump_catalog(catalog), output)


__all__ = [
    "STDOUT_MARKER",
    "catalog_payload",
    "dump_catalog",
    "parse_catalog",
    "parse_catalog_document",
    "read_catalog",
    "write_catalog",
    "write_output",
    "write_text_atomic",
]
