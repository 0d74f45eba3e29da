# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``catalog`` command: assemble a catalog from the forks on the hub."""

from pathlib import Path
from typing import Annotated

import typer

from ...catalog.builder import ArtifactFilter, ArtifactTarget, CatalogBuilder
from ...catalog.cask import write_casks
from ...catalog.io import STDOUT_MARKER, write_catalog
from ...entitlements import EntitlementValidator
from ..shared import CLIError, build_hub, get_state, register_command, report_failures

OwnerOption = Annotated[str | None, typer.Option("--owner", help="Hub organisation owning the base repository.")]
BaseRepositoryOption = Annotated[str | None, typer.Option("--base-repository", help="Repository apps fork.")]
TitleOption = Annotated[str | None, typer.Option("--title", help="Catalog display name.")]
SourceUrlOption = Annotated[str | None, typer.Option("--source-url", help="Public URL of the published catalog.")]
TargetOption = Annotated[
    ArtifactTarget | None,
    typer.Option("--target", case_sensitive=False, help="Platform the catalog lists."),
]
ExtensionOption = Annotated[
    str | None,
    typer.Option("--artifact-extension", help="Suffix of the installable release asset."),
]
FairsealCheckOption = Annotated[
    bool | None,
    typer.Option("--fairseal-check/--no-fairseal-check", help="Only list releases with a matching fairseal."),
]
IssuerOption = Annotated[str | None, typer.Option("--fairseal-issuer", help="Hub login that posts fairseals.")]
RequestLimitOption = Annotated[
    int | None,
    typer.Option("--request-limit", min=1, help="Maximum number of fork pages requested from the hub."),
]
CaskFolderOption = Annotated[
    Path | None,
    typer.Option("--cask-folder", file_okay=False, help="Also write a cask per listed app into this folder."),
]
OutputOption = Annotated[str, typer.Option("--output", help="Catalog destination, '-' for stdout.")]


def catalog_command(
    ctx: typer.Context,
    owner: OwnerOption = None,
    base_repository: BaseRepositoryOption = None,
    title: TitleOption = None,
    source_url: SourceUrlOption = None,
    target: TargetOption = None,
    artifact_extension: ExtensionOption = None,
    fairseal_check: FairsealCheckOption = None,
    fairseal_issuer: IssuerOption = None,
    request_limit: RequestLimitOption = None,
    cask_folder: CaskFolderOption = None,
    output: OutputOption = STDOUT_MARKER,
) -> None:
    """Build the app catalog from the forks of the base repository."""

    state = get_state(ctx)
    config = state.config.catalog
    with report_failures(state.logger):
        resolved_owner = owner or config.owner
        if resolved_owner is None:
            raise CLIError("--owner is required", exit_code=2)
        check = config.fairseal_check if fairseal_check is None else fairseal_check
        issuer = fairseal_issuer or config.fairseal_issuer
        if check and issuer is None:
            raise CLIError("--fairseal-issuer is required when seals are checked", exit_code=2)
        builder = CatalogBuilder(
            hub=build_hub(state),
            fairseal_issuer=issuer or "",
            validator=EntitlementValidator(catalog_app_names=tuple(config.catalog_app_names)),
            logger=state.logger,
        )
        catalog = builder.build(
            resolved_owner,
            check,
            ArtifactFilter(
                target=target or config.target,
                extension=artifact_extension or config.artifact_extension,
            ),
            request_limit if request_limit is not None else config.request_limit,
            title=title or config.title,
            base_repository=base_repository or config.base_repository,
            source_url=source_url or config.source_url,
            deadline=config.deadline,
        )
        write_catalog(catalog, output)
        folder = cask_folder or config.cask_folder
        if folder is not None:
            written = write_casks(
                catalog.apps,
                folder,
                catalog_app_org=config.catalog_app_org,
                prerelease_suffix=config.prerelease_suffix,
                logger=state.logger,
            )
            state.logger.ok(f"wrote {len(written)} casks to {folder}")


def register(app: typer.Typer) -> None:
    """Register the ``catalog`` command with ``app``."""

    register_command(app, catalog_command, name="catalog")


__all__ = ["catalog_command", "register"]
