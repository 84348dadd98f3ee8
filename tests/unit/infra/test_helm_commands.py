"""Tests for Helm and helm-docs command construction."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.infra.shell import CommandResult, HelmCommands, HelmDocsCommands


class TestHelmCommands:
    """Tests for Helm packaging commands."""

    @pytest.fixture
    def helm_commands(self, mock_runner: MagicMock) -> HelmCommands:
        """Create HelmCommands instance with mock runner."""
        return HelmCommands(mock_runner)

    def test_dependency_update_skips_refresh(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        """Dependency update runs in the chart directory without refreshing repos."""
        helm_commands.dependency_update(Path("/charts/sam"))

        mock_runner.run.assert_called_once_with(
            ["helm", "dependency", "update", "--skip-refresh"], cwd=Path("/charts/sam")
        )

    def test_repo_index_with_merge(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        """Repo index merges into the previous index when given one."""
        helm_commands.repo_index(
            Path("/stage"), "https://charts.example.org", merge=Path("/stage/prev-index.yaml")
        )

        cmd = mock_runner.run.call_args[0][0]
        assert cmd == [
            "helm",
            "repo",
            "index",
            "--merge",
            "/stage/prev-index.yaml",
            "--url",
            "https://charts.example.org",
            ".",
        ]

    def test_repo_index_without_merge(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        """Without a previous index no --merge flag is passed."""
        helm_commands.repo_index(Path("/stage"), "https://charts.example.org")

        assert "--merge" not in mock_runner.run.call_args[0][0]

    def test_helm_docs(self, mock_runner: MagicMock) -> None:
        """helm-docs runs from the chart directory."""
        HelmDocsCommands(mock_runner).generate(Path("/charts/sam"))

        mock_runner.run.assert_called_once_with(["helm-docs", "."], cwd=Path("/charts/sam"))


class TestCommandResult:
    """Tests for CommandResult."""

    def test_output_joins_streams(self) -> None:
        """Output combines stdout and stderr, skipping empty streams."""
        assert CommandResult(False, "out\n", "err\n", 1).output == "out\n\nerr"
        assert CommandResult(False, "", "err", 1).output == "err"
