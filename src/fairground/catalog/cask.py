# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Homebrew cask generation for catalog items."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Final

from ..logging import ConsoleLogger, default_logger
from ..models.catalog import AppCatalogItem
from .io import write_text_atomic
from .naming import dehyphenated, hyphenated

DEFAULT_CATALOG_APP_ORG: Final[str] = "App-Fair"
DEFAULT_PRERELEASE_SUFFIX: Final[str] = "-prerelease"

CASK_TEMPLATE: Final[Template] = Template(
    """cask "$cask_name" do
  version "$version"
  sha256 "$sha256"

  url "$url",
      verified: "$repo_base"
  name "$name"
  desc "$desc"
  homepage "https://${repo_base}App/"

  depends_on macos: ">= :monterey"

  app "$name.app", target: "$install_prefix$name.app"
  binary "#{appdir}/$install_prefix$name.app/Contents/MacOS/$name", target: "$cask_name"

  postflight do
    system "xattr", "-r", "-d", "com.apple.quarantine", "#{appdir}/$install_prefix$name.app"
  end

  zap trash: [
    "~/Library/Caches/$bundle",
    "~/Library/Containers/$bundle",
    "~/Library/Preferences/$bundle.plist",
    "~/Library/Application Scripts/$bundle",
    "~/Library/Saved Application State/$bundle.savedState",
  ]
end
""",
)


@dataclass(frozen=True, slots=True)
class Cask:
    """A rendered cask and the file name it is stored under."""

    name: str
    content: str

    @property
    def filename(self) -> str:
        return f"{self.name}.rb"


def render_cask(
    item: AppCatalogItem,
    *,
    catalog_app_org: str = DEFAULT_CATALOG_APP_ORG,
    prerelease_suffix: str | None = DEFAULT_PRERELEASE_SUFFIX,
) -> Cask | None:
    """Render the cask installing ``item``.

    Apps other than the catalog browser are installed into a folder named
    after the catalog app. The version inside the download URL is replaced
    by the ``#{version}`` token so upgrades only change the version stanza.

    Args:
        item: Catalog item to install.
        catalog_app_org: Hyphenated name of the catalog browser app.
        prerelease_suffix: Suffix appended to prerelease cask names; ``None``
            skips prereleases.

    Returns:
        Cask | None: Rendered cask, or ``None`` when the item has no version,
        no digest, or is a skipped prerelease.
    """

    if item.version is None or item.sha256 is None:
        return None
    name_hyphen = hyphenated(item.name)
    cask_name = name_hyphen.lower()
    if item.beta:
        if prerelease_suffix is None:
            return None
        cask_name += prerelease_suffix
    install_prefix = "" if name_hyphen == catalog_app_org else f"{dehyphenated(catalog_app_org)}/"
    content = CASK_TEMPLATE.substitute(
        cask_name=cask_name,
        version=item.version,
        sha256=item.sha256,
        url=item.download_url.replace(f"/{item.version}/", "/#{version}/"),
        repo_base=f"github.com/{name_hyphen}/",
        name=item.name,
        desc=(item.subtitle or item.name).replace('"', "'"),
        install_prefix=install_prefix,
        bundle=f"app.{name_hyphen}",
    )
    return Cask(name=cask_name, content=content)


def write_casks(
    items: Iterable[AppCatalogItem],
    folder: Path,
    *,
    catalog_app_org: str = DEFAULT_CATALOG_APP_ORG,
    prerelease_suffix: str | None = DEFAULT_PRERELEASE_SUFFIX,
    logger: ConsoleLogger | None = None,
) -> list[Path]:
    """Write one cask per eligible item into ``folder`` and return the paths."""

    log = logger or default_logger()
    written: list[Path] = []
    for item in items:
        cask = render_cask(item, catalog_app_org=catalog_app_org, prerelease_suffix=prerelease_suffix)
        if cask is None:
            log.debug(f"no cask app={item.bundle_identifier} version={item.version}")
            continue
        target = folder / cask.filename
        write_text_atomic(target, cask.content)
        written.append(target)
    return written


__all__ = ["Cask", "DEFAULT_CATALOG_APP_ORG", "render_cask", "write_casks"]
