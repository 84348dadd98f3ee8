"""Tests for autorelease config resolution and the deploy pipeline."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.charts.deploy import (
    ConfigLoader,
    Deployer,
    DeployOptions,
    load_autorelease_config,
)
from src.charts.releaser import VersionPair
from src.charts.source import ChartsDir
from src.infra.shell import ShellCommands
from src.state import Environment, Release, State, StaticStateLoader
from src.utils.errors import ChartError, ChartReleaseError, RegistryError
from src.utils.pool import PoolError


@pytest.fixture
def source_dir(charts_tree: Callable[..., Path]) -> Path:
    """Chart tree with agora, sam and yale."""
    return charts_tree({"agora": [], "sam": [], "yale": []})


@pytest.fixture
def charts_dir(source_dir: Path, shell_commands: ShellCommands) -> ChartsDir:
    """ChartsDir over the small tree."""
    return ChartsDir(source_dir, shell_commands)


@pytest.fixture
def state() -> State:
    """State with agora and sam releases in dev and staging."""
    dev = Environment("dev")
    staging = Environment("staging")
    return State(
        [dev, staging],
        [],
        [
            Release("agora", "agora", dev),
            Release("agora", "agora", staging),
            Release("sam", "sam", dev),
        ],
    )


def _write_autorelease(source_dir: Path, chart: str, content: str) -> None:
    (source_dir / chart / ".autorelease.yaml").write_text(content)


class TestAutoreleaseConfig:
    """Tests for loading .autorelease.yaml."""

    def test_defaults_without_file(self, charts_dir: ChartsDir) -> None:
        """A chart without the file is enabled with no explicit targets."""
        config = load_autorelease_config(charts_dir.get_chart("agora"))

        assert config.enabled
        assert config.sherlock.chart_releases_to_use_latest == []

    def test_invalid_file_falls_back_to_defaults(
        self, source_dir: Path, charts_dir: ChartsDir
    ) -> None:
        """Unparseable config is ignored."""
        _write_autorelease(source_dir, "agora", "enabled: [not, a, bool]\n")

        assert load_autorelease_config(charts_dir.get_chart("agora")).enabled

    def test_default_target_is_dev_release(self, charts_dir: ChartsDir, state: State) -> None:
        """Without explicit targets the <chart>-dev release is used."""
        releases = ConfigLoader(charts_dir, state).find_releases_to_update("agora")

        assert [r.full_name for r in releases] == ["agora-dev"]

    def test_explicit_targets_in_configured_order(
        self, source_dir: Path, charts_dir: ChartsDir, state: State
    ) -> None:
        """Explicit targets are kept in order; unknown names are dropped."""
        _write_autorelease(
            source_dir,
            "agora",
            "sherlock:\n  chartReleasesToUseLatest:\n"
            "    - agora-staging\n    - agora-nowhere\n    - agora-dev\n",
        )

        releases = ConfigLoader(charts_dir, state).find_releases_to_update("agora")

        assert [r.full_name for r in releases] == ["agora-staging", "agora-dev"]

    def test_disabled(self, source_dir: Path, charts_dir: ChartsDir, state: State) -> None:
        """A disabled chart has no targets."""
        _write_autorelease(source_dir, "agora", "enabled: false\n")

        assert ConfigLoader(charts_dir, state).find_releases_to_update("agora") == []

    def test_missing_dev_release(self, charts_dir: ChartsDir, state: State) -> None:
        """No default target when the dev release does not exist."""
        assert ConfigLoader(charts_dir, state).find_releases_to_update("yale") == []

    def test_unknown_chart_raises(self, charts_dir: ChartsDir, state: State) -> None:
        """Charts outside the source directory are an error."""
        with pytest.raises(ChartError):
            ConfigLoader(charts_dir, state).find_releases_to_update("rawls")


class TestDeployer:
    """Tests for Deployer.deploy."""

    @pytest.fixture
    def updater(self) -> MagicMock:
        """Mock deployed version updater."""
        return MagicMock()

    @pytest.fixture
    def syncer(self) -> MagicMock:
        """Mock sync driver."""
        return MagicMock()

    @pytest.fixture
    def syncer_factory(self, syncer: MagicMock) -> MagicMock:
        """Factory returning the mock syncer."""
        return MagicMock(return_value=syncer)

    @pytest.fixture
    def make_deployer(
        self,
        charts_dir: ChartsDir,
        state: State,
        updater: MagicMock,
        syncer_factory: MagicMock,
    ) -> Callable[..., Deployer]:
        """Build a deployer with the given options."""

        def _make(**options) -> Deployer:
            return Deployer(
                ConfigLoader(charts_dir, state),
                updater,
                StaticStateLoader(state),
                syncer_factory,
                DeployOptions(**options),
            )

        return _make

    def test_updates_and_syncs_targets(
        self,
        make_deployer: Callable[..., Deployer],
        updater: MagicMock,
        syncer: MagicMock,
    ) -> None:
        """Targets are updated in the registry and then synced."""
        pair = VersionPair("1.2.3", "1.2.4")

        make_deployer(max_parallel_sync=5).deploy({"agora": pair, "yale": pair}, "bump")

        updater.update_chart_release_versions.assert_called_once()
        chart, releases, versions, description = (
            updater.update_chart_release_versions.call_args[0]
        )
        assert chart == "agora"
        assert [r.full_name for r in releases] == ["agora-dev"]
        assert versions == pair
        assert description == "bump"
        synced, max_parallel = syncer.sync.call_args[0]
        assert [r.full_name for r in synced] == ["agora-dev"]
        assert max_parallel == 5

    def test_dry_run_makes_no_calls(
        self,
        make_deployer: Callable[..., Deployer],
        updater: MagicMock,
        syncer_factory: MagicMock,
    ) -> None:
        """A dry run neither updates the registry nor builds a syncer."""
        make_deployer(dry_run=True).deploy({"agora": VersionPair("1.2.3", "1.2.4")}, "bump")

        updater.update_chart_release_versions.assert_not_called()
        syncer_factory.assert_not_called()

    def test_nothing_to_sync(
        self, make_deployer: Callable[..., Deployer], syncer_factory: MagicMock
    ) -> None:
        """Charts without targets never construct a syncer."""
        make_deployer().deploy({"yale": VersionPair("", "0.1.0")}, "first")

        syncer_factory.assert_not_called()

    def test_registry_failure_is_wrapped(
        self, make_deployer: Callable[..., Deployer], updater: MagicMock
    ) -> None:
        """Registry errors name the chart being deployed."""
        updater.update_chart_release_versions.side_effect = RegistryError("HTTP 500")

        with pytest.raises(ChartReleaseError, match="error updating chart releases for agora"):
            make_deployer().deploy({"agora": VersionPair("1.2.3", "1.2.4")}, "bump")

    def test_release_removed_after_update_is_not_synced(
        self,
        charts_dir: ChartsDir,
        state: State,
        updater: MagicMock,
        syncer_factory: MagicMock,
    ) -> None:
        """Releases missing from the reloaded state are skipped."""
        loader = MagicMock()
        loader.reload.return_value = State()
        deployer = Deployer(ConfigLoader(charts_dir, state), updater, loader, syncer_factory)

        deployer.deploy({"agora": VersionPair("1.2.3", "1.2.4")}, "bump")

        updater.update_chart_release_versions.assert_called_once()
        syncer_factory.assert_not_called()

    def test_sync_failure_raises(
        self, make_deployer: Callable[..., Deployer], syncer: MagicMock
    ) -> None:
        """Sync errors propagate by default."""
        syncer.sync.side_effect = PoolError([("agora", RuntimeError("degraded"))])

        with pytest.raises(ChartReleaseError, match="error syncing releases"):
            make_deployer().deploy({"agora": VersionPair("1.2.3", "1.2.4")}, "bump")

    def test_sync_failure_ignored(
        self, make_deployer: Callable[..., Deployer], syncer: MagicMock
    ) -> None:
        """With ignore_sync_failure the deploy still succeeds."""
        syncer.sync.side_effect = PoolError([("agora", RuntimeError("degraded"))])

        make_deployer(ignore_sync_failure=True).deploy(
            {"agora": VersionPair("1.2.3", "1.2.4")}, "bump"
        )

        syncer.sync.assert_called_once()
