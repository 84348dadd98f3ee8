"""Helm and helm-docs command abstractions.

Only the packaging side of Helm is used: dependency vendoring, chart
archives and repository index generation.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner

HELM_PROG = "helm"
HELM_DOCS_PROG = "helm-docs"


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Dependency vendoring (dependency update)
    - Packaging (package)
    - Repository index generation (repo index)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Chart Packaging
    # =========================================================================

    def dependency_update(self, chart_dir: Path) -> CommandResult:
        """Rebuild the chart's vendored dependencies without refreshing repos.

        Args:
            chart_dir: Path to the chart directory

        Returns:
            CommandResult with update status
        """
        cmd = [HELM_PROG, "dependency", "update", "--skip-refresh"]
        return self._runner.run(cmd, cwd=chart_dir)

    def package(self, chart_dir: Path, destination: Path) -> CommandResult:
        """Package a chart directory into a versioned archive.

        Args:
            chart_dir: Path to the chart directory
            destination: Directory the .tgz archive is written to

        Returns:
            CommandResult with packaging status
        """
        cmd = [HELM_PROG, "package", ".", "--destination", str(destination)]
        return self._runner.run(cmd, cwd=chart_dir)

    # =========================================================================
    # Repository Index
    # =========================================================================

    def repo_index(
        self,
        directory: Path,
        url: str,
        *,
        merge: Path | None = None,
    ) -> CommandResult:
        """Generate index.yaml for the chart archives in a directory.

        Args:
            directory: Directory containing packaged charts
            url: Base URL the charts will be served from
            merge: Existing index to merge new entries into

        Returns:
            CommandResult with indexing status
        """
        cmd = [HELM_PROG, "repo", "index"]
        if merge is not None:
            cmd.extend(["--merge", str(merge)])
        cmd.extend(["--url", url, "."])
        return self._runner.run(cmd, cwd=directory)


class HelmDocsCommands:
    """helm-docs shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def generate(self, chart_dir: Path) -> CommandResult:
        """Regenerate README documentation for a chart.

        Args:
            chart_dir: Path to the chart directory

        Returns:
            CommandResult with generation status
        """
        return self._runner.run([HELM_DOCS_PROG, "."], cwd=chart_dir)
