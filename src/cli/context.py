"""CLI context and dependency container."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
import typer
from dotenv import load_dotenv

from src.charts.publish import Publisher
from src.charts.repo import LocalRepo
from src.charts.source import ChartsDir
from src.cli.shared.console import CLIConsole, console
from src.clients.sherlock import DeployedVersionUpdater, SherlockClient, SherlockStateLoader
from src.config import ChartReleaseConfig, default_config_path, load_config
from src.infra.argocd import ArgoCD
from src.infra.shell import ShellCommands
from src.ops import StatusReader, Syncer
from src.utils.paths import get_project_root


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands.

    Network clients are built on demand so commands that only read the
    chart tree never need registry or ArgoCD credentials.
    """

    console: CLIConsole
    project_root: Path
    config: ChartReleaseConfig
    commands: ShellCommands

    @property
    def source_dir(self) -> Path:
        return self.project_root / self.config.charts.source_dir

    def charts_dir(self) -> ChartsDir:
        return ChartsDir(self.source_dir, self.commands)

    def publisher(self, dry_run: bool = False) -> Publisher:
        publish = self.config.publish
        staging_dir = Path(publish.staging_dir) if publish.staging_dir else None
        repo = LocalRepo(self.project_root / publish.repo_dir, publish.repo_url)
        return Publisher(repo, self.commands, staging_dir=staging_dir, dry_run=dry_run)

    def sherlock_client(self, address: str | None = None) -> SherlockClient:
        sherlock = self.config.sherlock
        return SherlockClient(
            address or sherlock.addresses[0],
            sherlock.iap_token,
            gha_oidc_token=sherlock.gha_oidc_token or None,
            trusted_addresses=sherlock.addresses + sherlock.soft_fail_addresses,
            timeout=sherlock.timeout_seconds,
        )

    @contextmanager
    def version_updater(
        self, client: SherlockClient, dry_run: bool = False
    ) -> Iterator[DeployedVersionUpdater]:
        """Updater reporting to ``client`` and the soft-fail registries.

        Soft-fail clients are closed on exit. A dry run reports nowhere.
        """
        if dry_run:
            yield DeployedVersionUpdater()
            return
        with ExitStack() as stack:
            soft_fail = [
                stack.enter_context(self.sherlock_client(a))
                for a in self.config.sherlock.soft_fail_addresses
            ]
            yield DeployedVersionUpdater([client], soft_fail)

    def state_loader(self, client: SherlockClient) -> SherlockStateLoader:
        return SherlockStateLoader(client)

    def syncer(self, client: SherlockClient | None = None) -> Syncer:
        argocd = ArgoCD(self.config.argocd, self.commands.runner)
        publisher = client.update_chart_release_statuses if client is not None else None
        return Syncer(argocd, StatusReader(argocd), status_publisher=publisher)


def build_cli_context(config_path: Path | None = None) -> CLIContext:
    """Build a fresh CLIContext."""
    project_root = get_project_root()
    load_dotenv(project_root / ".env", override=False)
    config = load_config(config_path or default_config_path(project_root))

    return CLIContext(
        console=console,
        project_root=project_root,
        config=config,
        commands=ShellCommands(project_root),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context:
        root = context.find_root()
        if isinstance(root.obj, CLIContext):
            return root.obj
    return build_cli_context()
