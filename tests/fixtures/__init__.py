"""Shared test fixtures: chart trees, deployment state and mocked shell commands."""

from collections.abc import Callable, Generator, Sequence
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from src.infra.shell import CommandResult, HelmCommands, HelmDocsCommands, ShellCommands
from src.state import Cluster, Environment, Lifecycle, Release, State, StaticStateLoader
from src.utils.secrets import clear_secrets

# Local chart dependencies of the sample chart tree (chart -> dependencies)
SAMPLE_CHART_DEPENDENCIES: dict[str, list[str]] = {
    "agora": ["ingress", "mysql"],
    "foundation": ["ingress", "postgres"],
    "ingress": [],
    "mysql": [],
    "postgres": [],
    "rawls": ["ingress", "mysql"],
    "sam": ["ingress", "postgres"],
    "secrets-manager": [],
    "workspacemanager": ["foundation"],
    "yale": [],
}

__all__ = [
    "SAMPLE_CHART_DEPENDENCIES",
    "build_sample_state",
    "charts_tree",
    "masked_secrets",
    "mock_runner",
    "ok",
    "sample_state",
    "sample_state_loader",
    "shell_commands",
    "write_chart",
]


def ok(stdout: str = "") -> CommandResult:
    """A successful command result."""
    return CommandResult(success=True, stdout=stdout, stderr="", returncode=0)


def write_chart(
    source_dir: Path,
    name: str,
    version: str = "0.1.0",
    dependencies: Sequence[str] = (),
    extra: dict | None = None,
) -> Path:
    """Write a minimal chart with local dependencies and return its directory."""
    chart_dir = source_dir / name
    chart_dir.mkdir(parents=True, exist_ok=True)
    manifest: dict = {"apiVersion": "v2", "name": name, "version": version}
    if extra:
        manifest.update(extra)
    if dependencies:
        manifest["dependencies"] = [
            {"name": dep, "version": "0.1.0", "repository": f"file://../{dep}"}
            for dep in dependencies
        ]
    (chart_dir / "Chart.yaml").write_text(yaml.safe_dump(manifest, sort_keys=False))
    return chart_dir


def build_sample_state() -> State:
    """State with a handful of app and cluster releases.

    Releases: sam-dev, rawls-staging, workspacemanager-swatomation,
    datarepo-my-bee (app) and yale-terra-dev, yale-terra-staging,
    secrets-manager-terra-dev (cluster).
    """
    dev = Environment("dev", base="live", default_cluster="terra-dev")
    staging = Environment("staging", base="live", default_cluster="terra-staging")
    swatomation = Environment("swatomation", base="bee", lifecycle=Lifecycle.TEMPLATE)
    my_bee = Environment(
        "my-bee", base="bee", lifecycle=Lifecycle.DYNAMIC, template_name="swatomation"
    )
    terra_dev = Cluster("terra-dev", base="terra", address="https://10.0.0.1")
    terra_staging = Cluster("terra-staging", base="terra", address="https://10.0.0.2")

    releases = [
        Release("sam", "sam", dev, namespace="terra-dev", chart_version="0.5.0"),
        Release("rawls", "rawls", staging, namespace="terra-staging"),
        Release("workspacemanager", "workspacemanager", swatomation),
        Release("datarepo", "datarepo", my_bee),
        Release("yale", "yale", terra_dev, namespace="yale"),
        Release("yale", "yale", terra_staging, namespace="yale"),
        Release("secrets-manager", "secrets-manager", terra_dev, namespace="secrets-manager"),
    ]
    return State(
        [dev, staging, swatomation, my_bee],
        [terra_dev, terra_staging],
        releases,
    )


@pytest.fixture
def sample_state() -> State:
    """Sample deployment state."""
    return build_sample_state()


@pytest.fixture
def mock_runner() -> MagicMock:
    """Create a mock command runner whose commands all succeed."""
    runner = MagicMock()
    runner.run.return_value = ok()
    return runner


@pytest.fixture
def shell_commands(tmp_path: Path, mock_runner: MagicMock) -> ShellCommands:
    """ShellCommands whose tool wrappers run through the mock runner."""
    commands = ShellCommands(tmp_path)
    commands.runner = mock_runner
    commands.helm = HelmCommands(mock_runner)
    commands.helm_docs = HelmDocsCommands(mock_runner)
    return commands


@pytest.fixture
def charts_tree(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing the sample chart tree; returns the source directory.

    Pass ``charts`` to write a subset or a different dependency map.
    """

    def _build(charts: dict[str, list[str]] | None = None) -> Path:
        source_dir = tmp_path / "charts"
        for name, deps in (charts or SAMPLE_CHART_DEPENDENCIES).items():
            write_chart(source_dir, name, dependencies=deps)
        return source_dir

    return _build


@pytest.fixture
def sample_state_loader(sample_state: State) -> StaticStateLoader:
    """State loader returning the sample state."""
    return StaticStateLoader(sample_state)


@pytest.fixture(autouse=True)
def masked_secrets() -> Generator[None, None, None]:
    """Forget secrets registered for log masking after each test."""
    yield
    clear_secrets()
