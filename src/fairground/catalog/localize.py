# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Locale-specific views of a catalog."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Final, TypeAlias

from ..models.catalog import AppCatalog, AppCatalogSource
from .io import parse_catalog_document

CatalogResolver: TypeAlias = Callable[[str], Any]

SCALAR_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "identifier",
    "localized_description",
    "platform",
    "homepage",
    "source_url",
    "tint_color",
    "icon_url",
    "funding_sources",
    "base_locale",
)


def _language_code(locale: str) -> str:
    return locale.replace("-", "_").split("_", 1)[0]


def resolve_source(source: AppCatalogSource, resolve: CatalogResolver) -> AppCatalog:
    """Return the catalog behind ``source``, fetching it when it is a URL.

    Args:
        source: Inline catalog or catalog URL.
        resolve: Callable returning the decoded JSON document at a URL.

    Returns:
        AppCatalog: The localized catalog.

    Raises:
        CatalogIntegrityError: If a fetched document is not a valid catalog.
    """

    match source:
        case AppCatalog():
            return source
        case str():
            return parse_catalog_document(resolve(source), context=source)


def localize_catalog(catalog: AppCatalog, locale: str, *, resolve: CatalogResolver) -> AppCatalog:
    """Return ``catalog`` as seen from ``locale``.

    The localized source is looked up by full locale identifier, then by
    language code. Scalar fields are overridden individually when the
    localized source sets them. ``apps`` and ``news`` are replaced as a whole,
    and only when the localized list is non-empty. The result carries no
    ``localizations``.

    Args:
        catalog: Base catalog.
        locale: Locale identifier such as ``fr_CA`` or ``de``.
        resolve: Callable returning the decoded JSON document at a URL.

    Returns:
        AppCatalog: Merged catalog, or ``catalog`` itself when it has no
        localization for ``locale``.
    """

    localizations = catalog.localizations or {}
    source = localizations.get(locale)
    if source is None:
        source = localizations.get(_language_code(locale))
    if source is None:
        return catalog
    localized = resolve_source(source, resolve)

    updates: dict[str, Any] = {"localizations": None}
    for name in SCALAR_FIELDS:
        value = getattr(localized, name)
        if value is not None:
            updates[name] = value
    if localized.apps:
        updates["apps"] = localized.apps
    if localized.news:
        updates["news"] = localized.news
    return catalog.model_copy(update=updates)


__all__ = ["SCALAR_FIELDS", "localize_catalog", "resolve_source"]
