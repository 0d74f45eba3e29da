# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Layered configuration for fairground."""

from __future__ import annotations

from .models import CatalogConfig, FairgroundConfig, HubConfig, SealConfig
from .sources import (
    CONFIG_FILENAME,
    DefaultConfigSource,
    PyProjectConfigSource,
    TomlConfigSource,
    default_sources,
    load_config,
)

__all__ = [
    "CONFIG_FILENAME",
    "CatalogConfig",
    "DefaultConfigSource",
    "FairgroundConfig",
    "HubConfig",
    "PyProjectConfigSource",
    "SealConfig",
    "TomlConfigSource",
    "default_sources",
    "load_config",
]
