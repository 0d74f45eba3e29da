# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""``fairseal`` command: verify a published artifact and emit its seal."""

from pathlib import Path
from typing import Annotated

import typer

from ...catalog.io import STDOUT_MARKER, write_output
from ...catalog.naming import BASE_REPOSITORY
from ...compare import ArchiveComparator
from ...entitlements import EntitlementValidator
from ...fetch import ArtifactFetcher
from ...macho import build_stripper
from ...models.seal import FairSeal
from ...seal import FairsealRequest, FairsealRunner
from ..shared import CLIError, CLIState, build_hub, get_state, register_command, report_failures

TrustedArtifactOption = Annotated[
    Path,
    typer.Option("--trusted-artifact", help="Archive produced by the trusted build.", exists=True, dir_okay=False),
]
UntrustedArtifactOption = Annotated[
    Path | None,
    typer.Option(
        "--untrusted-artifact",
        help="Local copy of the published archive; downloaded from --artifact-url when missing.",
        dir_okay=False,
    ),
]
ArtifactUrlOption = Annotated[
    str | None,
    typer.Option("--artifact-url", help="Public URL of the published archive."),
]
FairsealMatchOption = Annotated[
    int | None,
    typer.Option("--fairseal-match", min=0, help="Exclusive byte-change threshold for app binaries."),
]
RetryDurationOption = Annotated[
    float | None,
    typer.Option("--retry-duration", min=0, help="Seconds during which downloads are retried."),
]
RetryWaitOption = Annotated[
    float | None,
    typer.Option("--retry-wait", min=0, help="Seconds between download attempts."),
]
StagingOption = Annotated[
    list[Path] | None,
    typer.Option("--artifact-staging", help="Folder whose files are published with the artifact."),
]
EntitlementsOption = Annotated[
    Path | None,
    typer.Option(
        "--entitlements",
        help="Entitlements property list; defaults to the project's sandbox-<platform>.entitlements.",
        exists=True,
        dir_okay=False,
    ),
]
TintOption = Annotated[str | None, typer.Option("--tint", help="Tint colour as RRGGBB hex.")]
BuildSettingsOption = Annotated[
    Path | None,
    typer.Option("--build-settings", help="xcconfig file consulted for ICON_TINT.", exists=True, dir_okay=False),
]
OutputOption = Annotated[str, typer.Option("--output", help="Seal destination, '-' for stdout.")]
PostOption = Annotated[bool, typer.Option("--post/--no-post", help="Comment the seal on the app's pull request.")]
OwnerOption = Annotated[str | None, typer.Option("--owner", help="Hub organisation owning the base repository.")]
BaseRepositoryOption = Annotated[str | None, typer.Option("--base-repository", help="Repository apps fork.")]


def fairseal_command(
    ctx: typer.Context,
    trusted_artifact: TrustedArtifactOption,
    untrusted_artifact: UntrustedArtifactOption = None,
    artifact_url: ArtifactUrlOption = None,
    fairseal_match: FairsealMatchOption = None,
    retry_duration: RetryDurationOption = None,
    retry_wait: RetryWaitOption = None,
    artifact_staging: StagingOption = None,
    entitlements: EntitlementsOption = None,
    tint: TintOption = None,
    build_settings: BuildSettingsOption = None,
    output: OutputOption = STDOUT_MARKER,
    post: PostOption = False,
    owner: OwnerOption = None,
    base_repository: BaseRepositoryOption = None,
) -> None:
    """Compare a published artifact with its trusted build and emit a fairseal."""

    state = get_state(ctx)
    seal_config = state.config.seal
    with report_failures(state.logger):
        if untrusted_artifact is None and artifact_url is None:
            raise CLIError("Either --untrusted-artifact or --artifact-url is required", exit_code=2)
        request = FairsealRequest(
            trusted_artifact=trusted_artifact,
            untrusted_artifact=untrusted_artifact,
            artifact_url=artifact_url,
            fairseal_match=fairseal_match if fairseal_match is not None else seal_config.fairseal_match,
            retry_duration=retry_duration if retry_duration is not None else seal_config.retry_duration,
            retry_wait=retry_wait if retry_wait is not None else seal_config.retry_wait,
            artifact_staging=list(artifact_staging or seal_config.artifact_staging),
            entitlements=_entitlements_document(state, entitlements),
            project_root=state.root,
            tint=tint,
            build_settings=build_settings,
        )
        seal = _build_runner(state).run(request)
        write_output(seal.to_json(), output)
        if post:
            _post(state, seal, seal_owner=owner, base_repository=base_repository)


def _entitlements_document(state: CLIState, entitlements: Path | None) -> Path | None:
    if entitlements is not None:
        return entitlements
    configured = state.config.seal.entitlements
    return state.root / configured if configured is not None else None


def _build_runner(state: CLIState) -> FairsealRunner:
    logger = state.logger
    seal_config = state.config.seal
    return FairsealRunner(
        fetcher=ArtifactFetcher(timeout=state.config.hub.timeout, logger=logger),
        comparator=ArchiveComparator(
            stripper=build_stripper(seal_config.signature_stripper, logger=logger),
            logger=logger,
            diff_limit=seal_config.diff_limit,
        ),
        validator=EntitlementValidator(catalog_app_names=tuple(state.config.catalog.catalog_app_names)),
        logger=logger,
    )


def _post(state: CLIState, seal: FairSeal, *, seal_owner: str | None, base_repository: str | None) -> None:
    owner = seal_owner or state.config.catalog.owner
    if owner is None:
        raise CLIError("--owner is required to post a fairseal", exit_code=2)
    repository = base_repository or state.config.catalog.base_repository or BASE_REPOSITORY
    url = build_hub(state).post_fairseal(seal, owner=owner, base_repository=repository)
    if url is not None:
        state.logger.ok(f"posted fairseal: {url}")


def register(app: typer.Typer) -> None:
    """Register the ``fairseal`` command with ``app``."""

    register_command(app, fairseal_command, name="fairseal")


__all__ = ["fairseal_command", "register"]
