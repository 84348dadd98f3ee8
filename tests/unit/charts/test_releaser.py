"""Tests for the chart releaser and the post-update syncer."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from src.charts.releaser import ChartReleaser, PostUpdateSyncer, VersionPair
from src.charts.repo import Index, IndexEntry
from src.charts.source import ChartsDir
from src.infra.shell import ShellCommands
from src.state import State
from src.utils.errors import ChartError, ChartReleaseError, RegistryError, ReleaseError


@pytest.fixture
def charts_dir(charts_tree: Callable[..., Path], shell_commands: ShellCommands) -> ChartsDir:
    """Tree where bar depends on foo and baz is independent."""
    return ChartsDir(charts_tree({"foo": [], "bar": ["foo"], "baz": []}), shell_commands)


@pytest.fixture
def publisher(tmp_path: Path) -> MagicMock:
    """Mock publisher whose repository already has foo 1.0.0."""
    publisher = MagicMock()
    publisher.chart_dir = tmp_path / "staging"
    publisher.index = Index(entries={"foo": [IndexEntry(version="1.0.0")]})
    publisher.publish.return_value = 2
    return publisher


@pytest.fixture
def updater() -> MagicMock:
    """Mock deployed version updater."""
    return MagicMock()


class TestChartReleaser:
    """Tests for ChartReleaser.release."""

    def test_releases_chart_and_dependents(
        self,
        charts_dir: ChartsDir,
        publisher: MagicMock,
        updater: MagicMock,
        mock_runner: MagicMock,
    ) -> None:
        """Releasing foo also releases bar, pinned to the new foo."""
        versions = ChartReleaser(charts_dir, publisher, updater).release(["foo"], "fix thing")

        assert versions == {
            "foo": VersionPair("1.0.0", "1.1.0"),
            "bar": VersionPair("", "0.1.0"),
        }
        manifest = yaml.safe_load((charts_dir.get_chart("bar").manifest_file).read_text())
        assert manifest["dependencies"][0]["version"] == "1.1.0"
        publisher.publish.assert_called_once()
        reported = [c.args[:2] for c in updater.report_new_chart_version.call_args_list]
        assert reported == [("foo", versions["foo"]), ("bar", versions["bar"])]

    def test_tool_steps_run_in_order(
        self,
        charts_dir: ChartsDir,
        publisher: MagicMock,
        updater: MagicMock,
        mock_runner: MagicMock,
    ) -> None:
        """Dependencies are updated first, then each chart is documented and packaged."""
        ChartReleaser(charts_dir, publisher, updater).release(["foo"], "fix thing")

        steps = [(c.args[0][0], c.args[0][1], c.kwargs["cwd"].name) for c in mock_runner.run.call_args_list]
        assert steps == [
            ("helm", "dependency", "foo"),
            ("helm", "dependency", "bar"),
            ("helm-docs", ".", "foo"),
            ("helm", "package", "foo"),
            ("helm-docs", ".", "bar"),
            ("helm", "package", "bar"),
        ]

    def test_missing_chart(
        self, charts_dir: ChartsDir, publisher: MagicMock, updater: MagicMock
    ) -> None:
        """Unknown charts are rejected before anything changes."""
        with pytest.raises(ChartError, match="chart nope does not exist"):
            ChartReleaser(charts_dir, publisher, updater).release(["nope"], "x")

        publisher.publish.assert_not_called()

    def test_report_failure_carries_published_versions(
        self, charts_dir: ChartsDir, publisher: MagicMock, updater: MagicMock
    ) -> None:
        """A registry failure after publishing still reports what was published."""
        updater.report_new_chart_version.side_effect = [None, RegistryError("HTTP 503")]

        with pytest.raises(ReleaseError, match="error reporting new version of chart bar") as exc_info:
            ChartReleaser(charts_dir, publisher, updater).release(["foo"], "x")

        assert set(exc_info.value.published_versions) == {"foo", "bar"}
        publisher.publish.assert_called_once()

    def test_publish_failure_reports_nothing(
        self, charts_dir: ChartsDir, publisher: MagicMock, updater: MagicMock
    ) -> None:
        """If publishing fails no versions are reported."""
        publisher.publish.side_effect = ChartError("upload failed")

        with pytest.raises(ChartError):
            ChartReleaser(charts_dir, publisher, updater).release(["baz"], "x")

        updater.report_new_chart_version.assert_not_called()


class TestPostUpdateSyncer:
    """Tests for syncing releases by full name."""

    def test_syncs_known_releases(self, sample_state: State) -> None:
        """Known names are synced; unknown names are skipped."""
        syncer = MagicMock()

        PostUpdateSyncer(lambda: syncer, sample_state, max_parallel=4).sync(
            ["sam-dev", "nope-dev", "yale-terra-dev"]
        )

        releases, max_parallel = syncer.sync.call_args[0]
        assert [r.full_name for r in releases] == ["sam-dev", "yale-terra-dev"]
        assert max_parallel == 4

    def test_dry_run(self, sample_state: State) -> None:
        """A dry run never builds a syncer."""
        factory = MagicMock()

        PostUpdateSyncer(factory, sample_state, dry_run=True).sync(["sam-dev"])

        factory.assert_not_called()

    def test_nothing_to_sync(self, sample_state: State) -> None:
        """No syncer is built when no names resolve."""
        factory = MagicMock()

        PostUpdateSyncer(factory, sample_state).sync(["nope-dev"])

        factory.assert_not_called()

    def test_factory_failure(self, sample_state: State) -> None:
        """Syncer construction errors are wrapped."""
        factory = MagicMock(side_effect=ChartReleaseError("no argocd token"))

        with pytest.raises(ChartReleaseError, match="error creating sync driver: no argocd token"):
            PostUpdateSyncer(factory, sample_state).sync(["sam-dev"])
