"""Chart release commands.

This module provides commands for identifying changed charts, releasing
new chart versions and rolling them out to their autorelease targets.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from src.charts.changedfiles import ChangedFiles
from src.charts.deploy import ConfigLoader, Deployer, DeployOptions
from src.charts.releaser import ChartReleaser, PostUpdateSyncer, VersionPair
from src.cli.context import get_cli_context
from src.cli.shared.console import with_error_handling

# ---------------------------------------------------------------------------
# Typer App
# ---------------------------------------------------------------------------

charts_app = typer.Typer(
    name="charts",
    help="Chart release commands.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


def _print_versions(versions: dict[str, VersionPair], title: str) -> None:
    table = Table(title=title)
    table.add_column("Chart", style="cyan")
    table.add_column("Prior Version")
    table.add_column("New Version", style="green")
    for name, pair in versions.items():
        table.add_row(name, pair.prior_version or "-", pair.new_version)
    get_cli_context().console.print(table)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@charts_app.command(name="list-changed")
@with_error_handling
def list_changed(
    changed_files_list: Annotated[
        Path,
        typer.Option(
            "--changed-files-list",
            help="File listing changed paths, one per line, relative to the repo root",
        ),
    ],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write chart names to this file instead of stdout",
        ),
    ] = None,
) -> None:
    """List charts impacted by a set of changed files.

    Includes every chart downstream of a changed chart.

    Examples:
        chartrelease charts list-changed --changed-files-list changed.txt
    """
    ctx = get_cli_context()
    with ctx.sherlock_client() as client:
        changed = ChangedFiles(ctx.charts_dir(), ctx.state_loader(client))
        names = changed.chart_list(changed_files_list)

    if output is not None:
        output.write_text("".join(f"{name}\n" for name in names), encoding="utf-8")
        ctx.console.ok(f"Wrote {len(names)} chart names to {output}")
        return

    for name in names:
        typer.echo(name)


@charts_app.command()
@with_error_handling
def release(
    charts: Annotated[list[str], typer.Argument(help="Charts to release")],
    description: Annotated[
        str,
        typer.Option("--description", "-d", help="Change description recorded with each version"),
    ] = "",
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Package and index charts without uploading or reporting"),
    ] = False,
) -> None:
    """Release new versions of charts and their downstream dependents.

    Examples:
        chartrelease charts release agora
        chartrelease charts release agora sam --description "fix probes" --dry-run
    """
    _release(charts, description, dry_run=dry_run, deploy=False, ignore_sync_failure=False)


@charts_app.command()
@with_error_handling
def publish(
    charts: Annotated[list[str], typer.Argument(help="Charts to publish")],
    description: Annotated[
        str,
        typer.Option("--description", "-d", help="Change description recorded with each version"),
    ] = "",
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Do not upload, update the registry or sync"),
    ] = False,
    deploy: Annotated[
        bool,
        typer.Option("--deploy", help="Roll new versions out to their autorelease targets"),
    ] = False,
    ignore_sync_failure: Annotated[
        bool,
        typer.Option("--ignore-sync-failure", help="Warn instead of failing when a sync fails"),
    ] = False,
) -> None:
    """Release charts and optionally deploy them to their autorelease targets.

    Examples:
        chartrelease charts publish agora --deploy
        chartrelease charts publish agora --deploy --ignore-sync-failure
    """
    _release(
        charts,
        description,
        dry_run=dry_run,
        deploy=deploy,
        ignore_sync_failure=ignore_sync_failure,
    )


@charts_app.command()
@with_error_handling
def sync(
    releases: Annotated[
        list[str], typer.Argument(help="Chart release full names, e.g. agora-dev")
    ],
    max_parallel: Annotated[
        int | None,
        typer.Option("--max-parallel", help="Maximum number of releases to sync at once"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Only report what would be synced"),
    ] = False,
) -> None:
    """Sync chart releases in ArgoCD.

    Examples:
        chartrelease charts sync agora-dev sam-dev
    """
    ctx = get_cli_context()
    ctx.console.print_header("Syncing chart releases")

    with ctx.sherlock_client() as client:
        syncer = PostUpdateSyncer(
            lambda: ctx.syncer(client),
            ctx.state_loader(client).load(),
            dry_run=dry_run,
            max_parallel=max_parallel or ctx.config.sync.max_parallel,
        )
        syncer.sync(releases)

    ctx.console.ok("Sync complete")


def _release(
    chart_names: list[str],
    description: str,
    *,
    dry_run: bool,
    deploy: bool,
    ignore_sync_failure: bool,
) -> None:
    ctx = get_cli_context()
    ctx.console.print_header("Releasing charts" + (" (dry run)" if dry_run else ""))

    charts_dir = ctx.charts_dir()
    with (
        ctx.sherlock_client() as client,
        ctx.version_updater(client, dry_run=dry_run) as updater,
    ):
        with ctx.publisher(dry_run=dry_run) as publisher:
            versions = ChartReleaser(charts_dir, publisher, updater).release(
                chart_names, description
            )
        _print_versions(versions, "Released chart versions")

        if not deploy:
            return

        state_loader = ctx.state_loader(client)
        deployer = Deployer(
            ConfigLoader(charts_dir, state_loader.load()),
            updater,
            state_loader,
            lambda: ctx.syncer(client),
            DeployOptions(
                dry_run=dry_run,
                ignore_sync_failure=ignore_sync_failure or ctx.config.sync.ignore_failure,
                max_parallel_sync=ctx.config.sync.max_parallel,
            ),
        )
        deployer.deploy(versions, description)

    ctx.console.ok(f"Released {len(versions)} charts")
